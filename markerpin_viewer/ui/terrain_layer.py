"""Basemaps for the marker viewport using free raster tiles.

Two modes:

2D (map_style dict):
    A Mapbox GL style with a single raster source. Pydeck renders XYZ raster
    basemaps this way (TileLayer needs a JavaScript renderSubLayers callback).
    Requires map_provider="mapbox" in pdk.Deck() (no API key for raster).

3D (TerrainLayer):
    AWS Terrarium elevation tiles draped with the same raster tiles.

No API key required - OpenStreetMap, OpenTopoMap (CC-BY-SA) and AWS tiles.
"""

import logging

import pydeck as pdk

logger = logging.getLogger(__name__)

# AWS Terrain Tiles (free, open, no API key)
AWS_TERRAIN_TILES = "https://s3.amazonaws.com/elevation-tiles-prod/terrarium/{z}/{x}/{y}.png"

# Terrarium decoder for AWS tiles
AWS_ELEVATION_DECODER = {
    "rScaler": 256,
    "gScaler": 1,
    "bScaler": 1 / 256,
    "offset": -32768,
}

# Raster providers: tile URLs (a/b/c subdomains where offered), attribution, max zoom
RASTER_PROVIDERS: dict[str, dict[str, object]] = {
    "openstreetmap": {
        "tiles": ["https://tile.openstreetmap.org/{z}/{x}/{y}.png"],
        "attribution": '© <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
        "maxzoom": 19,
    },
    "opentopomap": {
        "tiles": [f"https://{s}.tile.opentopomap.org/{{z}}/{{x}}/{{y}}.png" for s in "abc"],
        "attribution": (
            '© <a href="https://www.opentopomap.org/">OpenTopoMap</a> '
            '(<a href="https://creativecommons.org/licenses/by-sa/3.0/">CC-BY-SA</a>)'
        ),
        "maxzoom": 17,
    },
}
DEFAULT_PROVIDER = "openstreetmap"


def raster_style(provider: str = DEFAULT_PROVIDER) -> dict[str, object]:
    """Mapbox GL style dict showing one raster provider.

    Raises:
        KeyError: If the provider is unknown.
    """
    source = RASTER_PROVIDERS[provider]
    return {
        "version": 8,
        "sources": {
            provider: {
                "type": "raster",
                "tiles": source["tiles"],
                "tileSize": 256,
                "attribution": source["attribution"],
            }
        },
        "layers": [
            {
                "id": provider,
                "type": "raster",
                "source": provider,
                "minzoom": 0,
                "maxzoom": source["maxzoom"],
            }
        ],
    }


def create_aws_terrain_layer(provider: str = "opentopomap", mesh_max_error: float = 4.0) -> pdk.Layer:
    """Create a 3D TerrainLayer from AWS elevation tiles, textured with a raster provider.

    Args:
        provider: Key of RASTER_PROVIDERS used as texture
        mesh_max_error: Mesh approximation error in meters (lower = finer, slower)

    Returns:
        Non-pickable pdk.Layer with the global terrain mesh
    """
    texture = RASTER_PROVIDERS[provider]["tiles"][0]
    return pdk.Layer(
        "TerrainLayer",
        elevation_data=AWS_TERRAIN_TILES,
        elevation_decoder=AWS_ELEVATION_DECODER,
        texture=texture,
        mesh_max_error=mesh_max_error,
        id="terrain_3d_aws",
        pickable=False,
    )

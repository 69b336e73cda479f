"""Geographic coordinates and geocoder results.

- Cartographic: longitude/latitude/height in WGS84
- GeoLocation: a resolved place (centre plus optional extent), transient
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Cartographic:
    """A geographic coordinate.

    Attributes:
        lon: Longitude in decimal degrees (WGS84)
        lat: Latitude in decimal degrees (WGS84)
        height: Height in meters above the ellipsoid
    """

    lon: float
    lat: float
    height: float = 0.0

    @property
    def lon_lat(self) -> tuple[float, float]:
        """Return (lon, lat) tuple - GeoJSON/Pydeck order."""
        return (self.lon, self.lat)

    def with_height(self, height: float) -> "Cartographic":
        """Return a copy at a different height."""
        return replace(self, height=height)

    def __repr__(self) -> str:
        return f"Cartographic(lon={self.lon:.5f}, lat={self.lat:.5f}, h={self.height:.1f}m)"


@dataclass(frozen=True)
class GeoLocation:
    """A place resolved by the Geocoder.

    Consumed immediately by the flyover, never stored.

    Attributes:
        center: Location of the place
        name: Display name returned by the lookup service
        bounding_box: (south, north, west, east) in degrees, if known
    """

    center: Cartographic
    name: str = ""
    bounding_box: tuple[float, float, float, float] | None = None

    def with_height(self, height: float) -> "GeoLocation":
        """Return a copy whose centre sits at a refined height."""
        return replace(self, center=self.center.with_height(height))

"""Data model classes for marker pins.

Separates geographic coordinates (where things are on Earth) from local
spatial coordinates (where things are in the viewport):
- Cartographic: Geographic atom (lon, lat, height)
- GeoLocation: Resolved place from the Geocoder
- SpatialPoint: Local spatial atom (x, y, z meters)
- PinImage: Loaded pin image shared by markers
- SpatialMarker: Pin at a spatial position
- FeedRow: Live feed row describing a marker location
"""

from markerpin_viewer.model.feed_row import FeedRow
from markerpin_viewer.model.geo_location import Cartographic, GeoLocation
from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.model.spatial_marker import SpatialMarker
from markerpin_viewer.model.spatial_point import SpatialPoint

__all__ = [
    "Cartographic",
    "GeoLocation",
    "SpatialPoint",
    "PinImage",
    "SpatialMarker",
    "FeedRow",
]

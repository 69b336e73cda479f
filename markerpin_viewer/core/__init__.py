"""Core services for geographic data and external feeds.

This module provides the collaborators the marker subsystem depends on:
- CoordinateConverter: Geographic <-> local spatial (ENU) conversion
- GeoCalculator: Geodesic distance helpers
- DEMService: Terrain elevation from a GeoTIFF
- Geocoder: Place-name lookup and elevation refinement
- LiveFeed: Bulk reads and insert subscriptions (in-memory and REST)
"""

from markerpin_viewer.core.coordinate_converter import CoordinateConverter
from markerpin_viewer.core.dem_service import DEMService
from markerpin_viewer.core.geo_calculator import GeoCalculator
from markerpin_viewer.core.geocoder import Geocoder
from markerpin_viewer.core.live_feed import (
    FeedSubscription,
    InMemoryLiveFeed,
    LiveFeed,
    RestLiveFeed,
)

__all__ = [
    "CoordinateConverter",
    "GeoCalculator",
    "DEMService",
    "Geocoder",
    "LiveFeed",
    "FeedSubscription",
    "InMemoryLiveFeed",
    "RestLiveFeed",
]

"""Coordinate conversion between geographic and local spatial coordinates.

Local spatial coordinates are a topocentric East-North-Up (ENU) frame in
meters, centred on the project origin:
1. Geographic (lon, lat, ellipsoidal height) -> ECEF via PyProj (EPSG:4979 -> EPSG:4978)
2. ECEF -> ENU by subtracting the origin and rotating with the origin's ENU basis

The ENU frame matches deck.gl's METER_OFFSETS coordinate system, so spatial
points can be rendered directly with the project origin as coordinate origin.
"""

import logging
import math

import numpy as np
import pyproj

from markerpin_viewer.constants import MapConfig
from markerpin_viewer.model.geo_location import Cartographic
from markerpin_viewer.model.spatial_point import SpatialPoint

logger = logging.getLogger(__name__)


def _enu_rotation(lon_deg: float, lat_deg: float) -> np.ndarray:
    """Rows are the east, north and up unit vectors expressed in ECEF."""
    lon = math.radians(lon_deg)
    lat = math.radians(lat_deg)
    return np.array(
        [
            [-math.sin(lon), math.cos(lon), 0.0],
            [-math.sin(lat) * math.cos(lon), -math.sin(lat) * math.sin(lon), math.cos(lat)],
            [math.cos(lat) * math.cos(lon), math.cos(lat) * math.sin(lon), math.sin(lat)],
        ]
    )


class CoordinateConverter:
    """Converts WGS84 coordinates to and from the local ENU frame.

    Conversions are pure functions of the origin: idempotent and side-effect free.

    Example:
        converter = CoordinateConverter()
        point = await converter.to_spatial(lon=-1.20, lat=52.77, height=0.0)
    """

    def __init__(self, origin: Cartographic | None = None) -> None:
        """Initialize converter for a project origin.

        Args:
            origin: Geographic origin of the local frame (MapConfig origin by default)
        """
        self.origin = origin or Cartographic(
            lon=MapConfig.ORIGIN_LON,
            lat=MapConfig.ORIGIN_LAT,
            height=MapConfig.ORIGIN_HEIGHT_M,
        )
        wgs84 = pyproj.CRS("EPSG:4979")
        ecef = pyproj.CRS("EPSG:4978")
        self._to_ecef = pyproj.Transformer.from_crs(wgs84, ecef, always_xy=True)
        self._from_ecef = pyproj.Transformer.from_crs(ecef, wgs84, always_xy=True)
        self._rotation = _enu_rotation(lon_deg=self.origin.lon, lat_deg=self.origin.lat)
        self._origin_ecef = np.array(
            self._to_ecef.transform(self.origin.lon, self.origin.lat, self.origin.height)
        )

    def convert(self, lon: float, lat: float, height: float = 0.0) -> SpatialPoint:
        """Convert a geographic coordinate to local spatial coordinates.

        Args:
            lon: Longitude in decimal degrees
            lat: Latitude in decimal degrees
            height: Ellipsoidal height in meters

        Returns:
            SpatialPoint in meters east/north/up of the origin.

        Raises:
            ValueError: If any coordinate is not finite or latitude/longitude is out of range.
        """
        if not all(math.isfinite(v) for v in (lon, lat, height)):
            raise ValueError(f"Non-finite coordinate: lon={lon}, lat={lat}, height={height}")
        if abs(lat) > 90.0 or abs(lon) > 180.0:
            raise ValueError(f"Coordinate out of range: lon={lon}, lat={lat}")

        ecef = np.array(self._to_ecef.transform(lon, lat, height))
        east, north, up = self._rotation @ (ecef - self._origin_ecef)
        return SpatialPoint(x=float(east), y=float(north), z=float(up))

    async def to_spatial(self, lon: float, lat: float, height: float = 0.0) -> SpatialPoint:
        """Async conversion entry point used by the live sync controller.

        Remote converters suspend here; this local one computes in place.
        """
        return self.convert(lon=lon, lat=lat, height=height)

    def to_geographic(self, point: SpatialPoint) -> Cartographic:
        """Convert a local spatial point back to a geographic coordinate."""
        ecef = self._rotation.T @ np.array([point.x, point.y, point.z]) + self._origin_ecef
        lon, lat, height = self._from_ecef.transform(*ecef)
        return Cartographic(lon=float(lon), lat=float(lat), height=float(height))

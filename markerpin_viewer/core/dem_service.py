"""Digital Elevation Model (DEM) service for terrain elevation queries.

Provides elevation lookups from any single-band GeoTIFF:
- Fast O(1) elevation lookup using pre-loaded NumPy array
- Automatic coordinate transformation from WGS84 to DEM's native CRS
- Lazy, thread-safe loading on first query

The viewport holds one DEMService instance as its elevation source; the
Geocoder uses it to refine flyover destinations to ground height.
"""

import logging
import threading
import time
from pathlib import Path

import numpy as np
import rasterio
from rasterio.warp import transform

from markerpin_viewer.constants import DEMConfig

logger = logging.getLogger(__name__)


class DEMService:
    """Elevation sampling from a GeoTIFF.

    The DEM array is loaded on first access and cached for fast subsequent queries.

    Example:
        dem = DEMService(dem_path=Path("data/terrain.tif"))
        elevation = dem.get_elevation(lon=-1.206, lat=52.772)
    """

    def __init__(self, dem_path: Path | None = None) -> None:
        """Create a service for a DEM file (not loaded until first query).

        Args:
            dem_path: Optional path to DEM file (uses DEMConfig.DEM_PATH by default)
        """
        self._dem_path = dem_path or DEMConfig.DEM_PATH
        self._load_lock = threading.Lock()
        self._dem = None
        self._dem_crs: str | None = None
        self._dem_array: np.ndarray | None = None
        self._dem_transform = None
        self._dem_nodata = None

    @property
    def dem_path(self) -> Path:
        return self._dem_path

    @property
    def is_available(self) -> bool:
        """Check if the DEM file exists (it may not be loaded yet)."""
        return self._dem_path.exists()

    @property
    def is_loaded(self) -> bool:
        """Check if DEM data has been fully loaded into memory."""
        return self._dem_transform is not None

    def _ensure_loaded(self) -> None:
        """Load DEM into memory on first access (thread-safe)."""
        # Fast path: already loaded
        if self.is_loaded:
            return

        # Slow path: acquire lock and load (or wait for another thread to finish)
        with self._load_lock:
            # Double-check after acquiring lock
            if self.is_loaded:
                return

            dem_path = self._dem_path

            if not dem_path.exists():
                raise FileNotFoundError(f"DEM file not found at {dem_path}. Set MARKERPIN_DEM_PATH to a GeoTIFF.")

            logger.info(f"Loading DEM from {dem_path}...")
            start_time = time.time()

            self._dem = rasterio.open(dem_path)
            self._dem_crs = self._dem.crs.to_string() if self._dem.crs else "EPSG:4326"
            self._dem_array = self._dem.read(1)
            self._dem_nodata = self._dem.nodata
            # Set _dem_transform LAST - this is what is_loaded checks
            self._dem_transform = self._dem.transform

            elapsed = time.time() - start_time
            logger.info(f"DEM loaded in {elapsed:.2f}s (shape: {self._dem_array.shape}, CRS: {self._dem_crs})")

    def get_elevation(self, lon: float, lat: float) -> float | None:
        """Get elevation at a single point using direct NumPy array lookup.

        Args:
            lon: Longitude in decimal degrees (WGS84)
            lat: Latitude in decimal degrees (WGS84)

        Returns:
            Elevation in meters, or None if outside coverage or invalid.

        Raises:
            FileNotFoundError: If the DEM file does not exist.
        """
        self._ensure_loaded()

        # Transform WGS84 to DEM CRS if needed
        if self._dem_crs != "EPSG:4326":
            proj_coords = transform("EPSG:4326", self._dem_crs, [lon], [lat])
            x, y = proj_coords[0][0], proj_coords[1][0]
        else:
            x, y = lon, lat

        # Convert coordinates to array indices using inverse transform
        col, row = ~self._dem_transform * (x, y)
        col, row = int(col), int(row)

        # Check bounds
        if row < 0 or row >= self._dem_array.shape[0] or col < 0 or col >= self._dem_array.shape[1]:
            logger.warning(f"Coordinates outside DEM bounds: lon={lon}, lat={lat} (row={row}, col={col})")
            return None

        elev = self._dem_array[row, col]

        # Check for no-data values
        if self._dem_nodata is not None and elev == self._dem_nodata:
            logger.warning(f"No-data value at coordinates: lon={lon}, lat={lat} (raw_value={elev})")
            return None
        if np.isnan(elev):
            logger.warning(f"NaN elevation at coordinates: lon={lon}, lat={lat}")
            return None

        return float(elev)

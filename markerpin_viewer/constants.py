"""Configuration constants for Marker Pin Viewer.

All configurable parameters are centralized here for easy tuning.

Classes:
    AppConfig: UI application settings
    MapConfig: Project origin and default camera parameters
    PinConfig: Pin images, sizes and manual pin selections
    FeedConfig: Live feed table, polling and credentials
    GeocoderConfig: Place-name lookup service
    DEMConfig: Elevation data file path
    FlyoverConfig: Camera flyover animation
    ClickConfig: Picking and click dispatch
"""

import os
from pathlib import Path

# Package root directory (where markerpin_viewer/ lives)
PACKAGE_DIR = Path(__file__).parent

# Project root directory (parent of markerpin_viewer/)
PROJECT_ROOT = PACKAGE_DIR.parent

# Pin images shipped with the package
ASSETS_DIR = PACKAGE_DIR / "assets"

# Data directory outside package (downloaded separately, not shipped with package)
DATA_DIR = PROJECT_ROOT / "data"


class AppConfig:
    """UI application settings."""

    TITLE = "Marker Pin Viewer"
    ICON = "📍"
    LAYOUT = "wide"

    # Seconds between deck refreshes so streamed markers show up without a click
    REFRESH_INTERVAL_S = 2.0


class MapConfig:
    """Project origin and default camera parameters.

    Local spatial coordinates are meters east/north/up of the project origin.
    """

    # Project origin: Loughborough, UK
    ORIGIN_LAT = 52.7721
    ORIGIN_LON = -1.2062
    ORIGIN_HEIGHT_M = 0.0

    # Default camera framing around the origin
    DEFAULT_DISTANCE_M = 3000.0
    DEFAULT_PITCH_DEG = 45.0  # 90 = looking straight down
    DEFAULT_HEADING_DEG = 0.0  # 0 = looking north
    DEFAULT_FOV_DEG = 45.0

    # Canvas size used for projection (pixels)
    CANVAS_WIDTH_PX = 1200
    CANVAS_HEIGHT_PX = 700

    # Pydeck zoom derived from camera distance: zoom = ZOOM_AT_REFERENCE + log2(REFERENCE / distance)
    ZOOM_REFERENCE_DISTANCE_M = 3000.0
    ZOOM_AT_REFERENCE = 14.0
    MIN_ZOOM = 1.0
    MAX_ZOOM = 20.0

    # Near plane for projection; points closer than this to the eye are not drawn
    NEAR_PLANE_M = 0.1


class PinConfig:
    """Pin images, sizes and manual pin selections."""

    GOOGLE_PIN = "pin_google_maps.svg"
    CELERY_PIN = "pin_celery.svg"
    POLOBLUE_PIN = "pin_poloblue.svg"

    # Image used for markers coming from the live feed
    DEFAULT_PIN = GOOGLE_PIN

    # Manual pin selections offered in the UI (image -> display name)
    PIN_SELECTIONS = {
        GOOGLE_PIN: "Google Pin",
        CELERY_PIN: "Celery Pin",
        POLOBLUE_PIN: "Polo blue Pin",
    }
    assert DEFAULT_PIN in PIN_SELECTIONS

    # Drawn pin size in pixels (the pin tip sits on the marker position)
    PIN_WIDTH_PX = 30
    PIN_HEIGHT_PX = 30

    MIME_TYPES = {
        ".svg": "image/svg+xml",
        ".png": "image/png",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
    }

    # Timeout for images fetched over HTTP (seconds)
    HTTP_TIMEOUT_S = 30


class FeedConfig:
    """Live feed table, polling and credentials.

    The REST feed speaks the PostgREST dialect (as exposed by Supabase).
    """

    TABLE = "coords2"
    KEY_COLUMN = "id"

    # REST feed settings (from environment, None = use in-memory feed)
    URL = os.environ.get("MARKERPIN_FEED_URL")
    API_KEY = os.environ.get("MARKERPIN_FEED_KEY")
    REST_PATH = "/rest/v1"

    # Seconds between polls for newly inserted rows
    POLL_INTERVAL_S = 2.0

    # Timeout for a single HTTP request (seconds)
    HTTP_TIMEOUT_S = 30


class GeocoderConfig:
    """Place-name lookup service (OpenStreetMap Nominatim)."""

    SEARCH_URL = "https://nominatim.openstreetmap.org/search"
    USER_AGENT = "markerpin-viewer/1.0"
    HTTP_TIMEOUT_S = 15


class DEMConfig:
    """Elevation data file path (any single-band GeoTIFF)."""

    DEM_PATH = Path(os.environ.get("MARKERPIN_DEM_PATH", str(DATA_DIR / "terrain.tif")))


class FlyoverConfig:
    """Camera flyover animation."""

    FRAMES = 30
    # Duration grows with travel distance, clamped to this range (seconds)
    MIN_DURATION_S = 0.5
    MAX_DURATION_S = 3.0
    SECONDS_PER_1000_KM = 1.0

    # Camera framing at the destination
    ARRIVAL_DISTANCE_M = 2500.0
    ARRIVAL_PITCH_DEG = 40.0


class ClickConfig:
    """Picking and click dispatch."""

    # Deck.gl picking radius (pixels)
    PICKING_RADIUS_PX = 6

    # Object type tag on pickable marker data
    TYPE_MARKER_PIN = "marker_pin"
    LAYER_ID_MARKERS = "marker_pins"

"""Shared pytest fixtures for markerpin_viewer tests.

Provides FakeConverter, MockDEMService, deterministic cameras and pin images.
All fixtures use explicit values with documented rationale.

COORDINATE SYSTEM:
    FakeConverter maps 1 degree to 1000 meters in both directions
    (x = lon * 1000, y = lat * 1000, z = height) so expected spatial points
    can be written down by hand. Real ENU conversion is tested separately in
    test_core.py against pyproj.

SCREEN SYSTEM:
    top_down_camera looks straight down from 1000m with a 90° field of view on
    a 1000x1000 canvas, so the focal length is 500px and
        screen_x = 500 + x / 2
        screen_y = 500 - y / 2
"""

import asyncio

import pytest

from markerpin_viewer.constants import FlyoverConfig
from markerpin_viewer.model.geo_location import Cartographic
from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.model.spatial_point import SpatialPoint
from markerpin_viewer.ui.decorator import MarkerPinDecorator
from markerpin_viewer.ui.viewport import Camera, DeckViewport, ScreenPoint

METERS_PER_DEGREE = 1000.0


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class FakeConverter:
    """Linear geographic -> spatial conversion (1° = 1000m) with optional latency.

    Args:
        delays: Optional per-latitude conversion delay in seconds, used to make
            conversions finish out of order
        fail_lats: Latitudes for which to_spatial raises RuntimeError
    """

    def __init__(self, delays: dict[float, float] | None = None, fail_lats: set[float] | None = None) -> None:
        self.origin = Cartographic(lon=0.0, lat=0.0, height=0.0)
        self.delays = delays or {}
        self.fail_lats = fail_lats or set()
        self.calls: list[tuple[float, float, float]] = []

    def convert(self, lon: float, lat: float, height: float = 0.0) -> SpatialPoint:
        if abs(lat) > 90.0 or abs(lon) > 180.0:
            raise ValueError(f"Coordinate out of range: lon={lon}, lat={lat}")
        return SpatialPoint(x=lon * METERS_PER_DEGREE, y=lat * METERS_PER_DEGREE, z=height)

    async def to_spatial(self, lon: float, lat: float, height: float = 0.0) -> SpatialPoint:
        self.calls.append((lon, lat, height))
        await asyncio.sleep(self.delays.get(lat, 0.0))
        if lat in self.fail_lats:
            raise RuntimeError(f"conversion failed for lat={lat}")
        return self.convert(lon=lon, lat=lat, height=height)

    def to_geographic(self, point: SpatialPoint) -> Cartographic:
        return Cartographic(lon=point.x / METERS_PER_DEGREE, lat=point.y / METERS_PER_DEGREE, height=point.z)


class MockDEMService:
    """DEM returning a constant elevation inside [-1, 1] degrees, None outside."""

    def __init__(self, elevation: float = 150.0, available: bool = True) -> None:
        self.elevation = elevation
        self.available = available
        self.queries: list[tuple[float, float]] = []

    @property
    def is_available(self) -> bool:
        return self.available

    @property
    def dem_path(self) -> str:
        return "mock://terrain.tif"

    def get_elevation(self, lon: float, lat: float) -> float | None:
        self.queries.append((lon, lat))
        if abs(lon) > 1.0 or abs(lat) > 1.0:
            return None
        return self.elevation


def make_pin_image(name: str = "pin_test.svg", width: int = 30, height: int = 30) -> PinImage:
    return PinImage(
        name=name,
        data=b"<svg xmlns='http://www.w3.org/2000/svg'/>",
        mime_type="image/svg+xml",
        width=width,
        height=height,
    )


def make_top_down_camera() -> Camera:
    """1000m straight-down camera on a 1000x1000 canvas (see module docstring)."""
    return Camera(
        target=SpatialPoint(x=0.0, y=0.0, z=0.0),
        distance_m=1000.0,
        pitch_deg=90.0,
        heading_deg=0.0,
        fov_deg=90.0,
        width=1000,
        height=1000,
    )


def make_viewport(converter: FakeConverter | None = None) -> DeckViewport:
    return DeckViewport(converter=converter or FakeConverter(), camera=make_top_down_camera())


def expected_screen(x: float, y: float) -> ScreenPoint:
    """Screen position of a ground point under make_top_down_camera()."""
    return ScreenPoint(x=500 + x / 2, y=500 - y / 2)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def pin_image() -> PinImage:
    """30x30 pin, tip at the bottom centre."""
    return make_pin_image()


@pytest.fixture
def other_pin_image() -> PinImage:
    return make_pin_image(name="pin_other.svg")


@pytest.fixture
def top_down_camera() -> Camera:
    return make_top_down_camera()


@pytest.fixture
def viewport(converter: FakeConverter) -> DeckViewport:
    """Viewport with the FakeConverter and the straight-down camera."""
    return make_viewport(converter=converter)


@pytest.fixture
def decorator() -> MarkerPinDecorator:
    return MarkerPinDecorator()


@pytest.fixture
def mock_dem() -> MockDEMService:
    """Mock DEM: 150m everywhere within one degree of the origin."""
    return MockDEMService(elevation=150.0)


@pytest.fixture
def fast_flyover(monkeypatch: pytest.MonkeyPatch) -> None:
    """Three-frame flyover without waiting between frames."""
    monkeypatch.setattr(FlyoverConfig, "FRAMES", 3)
    monkeypatch.setattr(FlyoverConfig, "MIN_DURATION_S", 0.0)
    monkeypatch.setattr(FlyoverConfig, "MAX_DURATION_S", 0.0)


class FakeImageLoader:
    """Async image loader returning test images, failing for selected names."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.requested: list[str] = []

    async def __call__(self, identifier: str) -> PinImage:
        self.requested.append(identifier)
        await asyncio.sleep(0)
        if identifier in self.failing:
            raise FileNotFoundError(identifier)
        return make_pin_image(name=identifier)


@pytest.fixture
def image_loader() -> FakeImageLoader:
    return FakeImageLoader()

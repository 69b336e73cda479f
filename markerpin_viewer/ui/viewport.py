"""DeckViewport - 3D viewport host for marker decorations and interactive tools.

Provides the services decorations and tools rely on:
- Camera projection (world -> screen) and ray testing (screen -> world)
- Decorator registration for the per-frame render and pick pipeline
- Tool registry with a single active input tool
- Click dispatch: active tool first, then marker picking, then background
- One-shot "view opened" future
- Animated camera flyover to a geographic location
- Pydeck Deck output (basemap + decorator layers)

Coordinate conventions:
- World positions are local spatial coordinates (meters east/north/up of the origin)
- Screen positions are pixels from the top-left corner of the canvas
- Camera pitch 90 looks straight down, heading 0 looks north

Reference: deck.gl METER_OFFSETS coordinate system for rendering local points
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
import pydeck as pdk

from markerpin_viewer.constants import ClickConfig, FlyoverConfig, MapConfig
from markerpin_viewer.core.geo_calculator import GeoCalculator
from markerpin_viewer.model.spatial_point import SpatialPoint

if TYPE_CHECKING:
    from markerpin_viewer.core.coordinate_converter import CoordinateConverter
    from markerpin_viewer.core.dem_service import DEMService
    from markerpin_viewer.model.geo_location import GeoLocation
    from markerpin_viewer.model.spatial_marker import SpatialMarker

logger = logging.getLogger(__name__)


# =============================================================================
# SCREEN TYPES
# =============================================================================


@dataclass(frozen=True)
class ScreenPoint:
    """A position on the canvas in pixels (origin top-left, y down)."""

    x: float
    y: float


@dataclass(frozen=True)
class ScreenRect:
    """An axis-aligned screen rectangle (inclusive bounds)."""

    left: float
    top: float
    right: float
    bottom: float

    def contains(self, point: ScreenPoint) -> bool:
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom

    @property
    def center(self) -> ScreenPoint:
        return ScreenPoint(x=(self.left + self.right) / 2, y=(self.top + self.bottom) / 2)


class MouseButton(Enum):
    """Mouse buttons the viewport dispatches."""

    DATA = "data"  # Primary button - picks and places
    RESET = "reset"  # Secondary button - cancels the active tool


# =============================================================================
# CAMERA
# =============================================================================


@dataclass(frozen=True)
class Camera:
    """Orbit camera looking at a target point.

    Attributes:
        target: Point the camera looks at (projects to the canvas centre)
        distance_m: Distance from eye to target
        pitch_deg: Angle below the horizon (90 = straight down)
        heading_deg: Viewing direction clockwise from north
        fov_deg: Vertical field of view
        width: Canvas width in pixels
        height: Canvas height in pixels
    """

    target: SpatialPoint = SpatialPoint(x=0.0, y=0.0, z=0.0)
    distance_m: float = MapConfig.DEFAULT_DISTANCE_M
    pitch_deg: float = MapConfig.DEFAULT_PITCH_DEG
    heading_deg: float = MapConfig.DEFAULT_HEADING_DEG
    fov_deg: float = MapConfig.DEFAULT_FOV_DEG
    width: int = MapConfig.CANVAS_WIDTH_PX
    height: int = MapConfig.CANVAS_HEIGHT_PX

    def __post_init__(self) -> None:
        """Validate data after initialization."""
        if self.distance_m <= 0:
            raise ValueError(f"Camera distance must be positive, got {self.distance_m}")
        if not 0 < self.pitch_deg <= 90:
            raise ValueError(f"Camera pitch must be in (0, 90], got {self.pitch_deg}")

    @classmethod
    def looking_at(
        cls,
        target: SpatialPoint,
        distance_m: float = MapConfig.DEFAULT_DISTANCE_M,
        pitch_deg: float = MapConfig.DEFAULT_PITCH_DEG,
        heading_deg: float = MapConfig.DEFAULT_HEADING_DEG,
    ) -> "Camera":
        """Camera orbiting a target at the default canvas size and field of view."""
        return cls(target=target, distance_m=distance_m, pitch_deg=pitch_deg, heading_deg=heading_deg)

    @property
    def _forward(self) -> np.ndarray:
        pitch = math.radians(self.pitch_deg)
        heading = math.radians(self.heading_deg)
        return np.array([math.sin(heading) * math.cos(pitch), math.cos(heading) * math.cos(pitch), -math.sin(pitch)])

    @property
    def _right(self) -> np.ndarray:
        # Derived from heading so a straight-down camera keeps its orientation
        heading = math.radians(self.heading_deg)
        return np.array([math.cos(heading), -math.sin(heading), 0.0])

    @property
    def _up(self) -> np.ndarray:
        return np.cross(self._right, self._forward)

    @property
    def eye(self) -> SpatialPoint:
        """Camera position in world coordinates."""
        eye = np.array(self.target.as_list()) - self._forward * self.distance_m
        return SpatialPoint(x=float(eye[0]), y=float(eye[1]), z=float(eye[2]))

    @property
    def focal_px(self) -> float:
        """Focal length in pixels for the vertical field of view."""
        return (self.height / 2) / math.tan(math.radians(self.fov_deg) / 2)

    @property
    def center(self) -> ScreenPoint:
        return ScreenPoint(x=self.width / 2, y=self.height / 2)

    def world_to_screen(self, point: SpatialPoint) -> ScreenPoint | None:
        """Project a world point to the canvas.

        Returns:
            Screen position, or None if the point is behind the near plane.
        """
        offset = np.array(point.as_list()) - np.array(self.eye.as_list())
        depth = float(offset @ self._forward)
        if depth < MapConfig.NEAR_PLANE_M:
            return None
        x = float(offset @ self._right)
        y = float(offset @ self._up)
        return ScreenPoint(
            x=self.width / 2 + self.focal_px * x / depth,
            y=self.height / 2 - self.focal_px * y / depth,
        )

    def screen_to_world(self, screen_point: ScreenPoint, plane_z: float = 0.0) -> SpatialPoint | None:
        """Ray test: intersect the view ray through a screen point with a horizontal plane.

        Args:
            screen_point: Canvas position
            plane_z: Height of the ground plane in local coordinates

        Returns:
            World point on the plane, or None if the ray misses it (e.g., above the horizon).
        """
        a = (screen_point.x - self.width / 2) / self.focal_px
        b = (self.height / 2 - screen_point.y) / self.focal_px
        direction = self._forward + a * self._right + b * self._up
        if abs(direction[2]) < 1e-12:
            return None
        eye = np.array(self.eye.as_list())
        t = (plane_z - eye[2]) / direction[2]
        if t <= 0:
            return None
        hit = eye + t * direction
        return SpatialPoint(x=float(hit[0]), y=float(hit[1]), z=plane_z)

    def interpolate(self, other: "Camera", alpha: float) -> "Camera":
        """Camera part-way to another camera (heading snaps to the destination)."""
        lerp = GeoCalculator.lerp
        return replace(
            other,
            target=SpatialPoint(
                x=lerp(self.target.x, other.target.x, alpha),
                y=lerp(self.target.y, other.target.y, alpha),
                z=lerp(self.target.z, other.target.z, alpha),
            ),
            distance_m=lerp(self.distance_m, other.distance_m, alpha),
            pitch_deg=lerp(self.pitch_deg, other.pitch_deg, alpha),
        )


# =============================================================================
# RENDER FRAME
# =============================================================================


@dataclass(frozen=True)
class DrawnPin:
    """A marker drawn in a frame: where its tip landed and its hit area."""

    marker: "SpatialMarker"
    anchor: ScreenPoint
    rect: ScreenRect


@dataclass
class RenderFrame:
    """Output of one render pass, filled in by decorators."""

    viewport: "DeckViewport"
    pins: list[DrawnPin] = field(default_factory=list)
    layers: list[pdk.Layer] = field(default_factory=list)


class Decorator(ABC):
    """A renderable, pickable overlay registered with the viewport."""

    @abstractmethod
    def render(self, frame: RenderFrame) -> None:
        """Draw into the frame (called every render pass)."""
        raise NotImplementedError

    @abstractmethod
    def pick_test(self, screen_point: ScreenPoint, viewport: "DeckViewport") -> "SpatialMarker | None":
        """Return the topmost marker under the screen point, or None."""
        raise NotImplementedError


# =============================================================================
# TOOLS
# =============================================================================


class InteractiveTool(ABC):
    """An input tool the viewport can make active."""

    tool_id: str

    @abstractmethod
    def on_install(self) -> None:
        """Called when the tool becomes the active tool."""
        raise NotImplementedError

    @abstractmethod
    def on_cleanup(self) -> None:
        """Called when the tool stops being the active tool."""
        raise NotImplementedError

    @abstractmethod
    def on_data_button_down(self, screen_point: ScreenPoint) -> bool:
        """Handle a primary-button click. Returns True if it was consumed."""
        raise NotImplementedError


class ToolRegistry:
    """Registered tools by id, at most one active at a time."""

    def __init__(self) -> None:
        self._tools: dict[str, InteractiveTool] = {}
        self._active: InteractiveTool | None = None

    @property
    def active_tool(self) -> InteractiveTool | None:
        return self._active

    @property
    def tool_ids(self) -> list[str]:
        return list(self._tools)

    def is_registered(self, tool_id: str) -> bool:
        return tool_id in self._tools

    def register(self, tool: InteractiveTool) -> bool:
        """Register a tool. Returns False if a tool with this id is already registered."""
        if tool.tool_id in self._tools:
            logger.debug(f"[TOOL] {tool.tool_id} already registered")
            return False
        self._tools[tool.tool_id] = tool
        logger.info(f"[TOOL] Registered {tool.tool_id}")
        return True

    def unregister(self, tool_id: str) -> bool:
        """Remove a tool, exiting it first if active. No-op if not registered."""
        tool = self._tools.get(tool_id)
        if tool is None:
            return False
        if self._active is tool:
            self.exit_tool()
        del self._tools[tool_id]
        logger.info(f"[TOOL] Unregistered {tool_id}")
        return True

    def run(self, tool_id: str) -> bool:
        """Make a registered tool the active tool, cleaning up the previous one."""
        tool = self._tools.get(tool_id)
        if tool is None:
            logger.warning(f"[TOOL] Cannot run unregistered tool {tool_id}")
            return False
        self.exit_tool()
        self._active = tool
        tool.on_install()
        return True

    def exit_tool(self) -> None:
        """Deactivate the active tool, if any."""
        tool, self._active = self._active, None
        if tool is not None:
            tool.on_cleanup()


# =============================================================================
# VIEWPORT
# =============================================================================

MarkerClickListener = Callable[["SpatialMarker", ScreenPoint], None]
BackgroundClickListener = Callable[[ScreenPoint], None]


class DeckViewport:
    """Viewport host: camera, decorators, tools, click dispatch and deck output.

    Example:
        viewport = DeckViewport(converter=CoordinateConverter())
        viewport.add_decorator(decorator)
        viewport.open_view()
        deck = viewport.to_deck()
    """

    def __init__(
        self,
        converter: "CoordinateConverter",
        camera: Camera | None = None,
        elevation_source: "DEMService | None" = None,
    ) -> None:
        """Initialize viewport.

        Args:
            converter: Geographic <-> local spatial conversion for this view
            camera: Initial camera (looks at the origin by default)
            elevation_source: Terrain elevation for flyover refinement (optional)
        """
        self.converter = converter
        self.camera = camera or Camera()
        self.elevation_source = elevation_source
        self.tools = ToolRegistry()
        self._decorators: list[Decorator] = []
        self._marker_click_listeners: list[MarkerClickListener] = []
        self._background_click_listeners: list[BackgroundClickListener] = []
        self._is_view_open = False
        self._view_opened: asyncio.Future | None = None

    # =========================================================================
    # DECORATORS
    # =========================================================================

    @property
    def decorators(self) -> tuple[Decorator, ...]:
        return tuple(self._decorators)

    def add_decorator(self, decorator: Decorator) -> bool:
        """Register a decorator. Returns False if it was already registered."""
        if decorator in self._decorators:
            return False
        self._decorators.append(decorator)
        return True

    def drop_decorator(self, decorator: Decorator) -> bool:
        """Unregister a decorator. Returns False if it was not registered."""
        if decorator not in self._decorators:
            return False
        self._decorators.remove(decorator)
        return True

    # =========================================================================
    # PROJECTION
    # =========================================================================

    def world_to_screen(self, point: SpatialPoint) -> ScreenPoint | None:
        return self.camera.world_to_screen(point)

    def screen_to_world(self, screen_point: ScreenPoint) -> SpatialPoint | None:
        """Standard ray test against the ground plane (height 0 at the origin)."""
        return self.camera.screen_to_world(screen_point, plane_z=0.0)

    # =========================================================================
    # PICKING AND CLICKS
    # =========================================================================

    def pick(self, screen_point: ScreenPoint) -> "SpatialMarker | None":
        """Pick-test decorators, most recently registered first."""
        for decorator in reversed(self._decorators):
            marker = decorator.pick_test(screen_point, self)
            if marker is not None:
                return marker
        return None

    def add_marker_click_listener(self, listener: MarkerClickListener) -> None:
        self._marker_click_listeners.append(listener)

    def remove_marker_click_listener(self, listener: MarkerClickListener) -> None:
        if listener in self._marker_click_listeners:
            self._marker_click_listeners.remove(listener)

    def add_background_click_listener(self, listener: BackgroundClickListener) -> None:
        self._background_click_listeners.append(listener)

    def remove_background_click_listener(self, listener: BackgroundClickListener) -> None:
        if listener in self._background_click_listeners:
            self._background_click_listeners.remove(listener)

    def dispatch_click(self, screen_point: ScreenPoint, button: MouseButton = MouseButton.DATA) -> bool:
        """Route a click to the active tool, a picked marker, or the background.

        Returns:
            True if a tool or marker consumed the click.
        """
        active = self.tools.active_tool
        if button == MouseButton.RESET:
            if active is None:
                return False
            self.tools.exit_tool()
            return True

        if active is not None:
            return active.on_data_button_down(screen_point)

        marker = self.pick(screen_point)
        if marker is not None:
            logger.debug(f"[CLICK] Picked {marker} at {screen_point}")
            for listener in list(self._marker_click_listeners):
                listener(marker, screen_point)
            return True

        for background_listener in list(self._background_click_listeners):
            background_listener(screen_point)
        return False

    # =========================================================================
    # VIEW LIFECYCLE
    # =========================================================================

    @property
    def is_view_open(self) -> bool:
        return self._is_view_open

    def open_view(self) -> None:
        """Mark the view as open. Resolves the view-opened future exactly once."""
        if self._is_view_open:
            return
        self._is_view_open = True
        logger.info("[VIEW] View opened")
        if self._view_opened is not None and not self._view_opened.done():
            self._view_opened.set_result(self)

    def view_opened(self) -> asyncio.Future:
        """Future resolved with this viewport once the view is open.

        Must be called from the event loop that will await it.
        """
        if self._view_opened is None or self._view_opened.cancelled():
            self._view_opened = asyncio.get_running_loop().create_future()
            if self._is_view_open:
                self._view_opened.set_result(self)
        return self._view_opened

    # =========================================================================
    # CAMERA MOTION
    # =========================================================================

    async def animate_flyover_to(self, location: "GeoLocation") -> None:
        """Animate the camera to look at a geographic location.

        Duration scales with the travel distance; the final camera is exact.
        """
        center = location.center
        start = self.camera
        destination = self.converter.convert(lon=center.lon, lat=center.lat, height=center.height)
        end = replace(
            start,
            target=destination,
            distance_m=FlyoverConfig.ARRIVAL_DISTANCE_M,
            pitch_deg=FlyoverConfig.ARRIVAL_PITCH_DEG,
        )

        here = self.converter.to_geographic(start.target)
        travel_m = GeoCalculator.haversine_distance_m(lat1=here.lat, lon1=here.lon, lat2=center.lat, lon2=center.lon)
        duration_s = min(
            FlyoverConfig.MAX_DURATION_S,
            max(FlyoverConfig.MIN_DURATION_S, travel_m / 1_000_000 * FlyoverConfig.SECONDS_PER_1000_KM),
        )
        logger.info(f"[VIEW] Flyover to {location.name or center} ({travel_m / 1000:.1f} km, {duration_s:.1f}s)")

        for frame in range(1, FlyoverConfig.FRAMES + 1):
            self.camera = start.interpolate(end, alpha=frame / FlyoverConfig.FRAMES)
            await asyncio.sleep(duration_s / FlyoverConfig.FRAMES)
        self.camera = end

    # =========================================================================
    # RENDERING
    # =========================================================================

    def render_frame(self) -> RenderFrame:
        """Run one render pass over all registered decorators."""
        frame = RenderFrame(viewport=self)
        for decorator in list(self._decorators):
            decorator.render(frame)
        return frame

    def get_view_state(self) -> pdk.ViewState:
        """Create Pydeck ViewState matching the camera."""
        center = self.converter.to_geographic(self.camera.target)
        zoom = MapConfig.ZOOM_AT_REFERENCE + math.log2(MapConfig.ZOOM_REFERENCE_DISTANCE_M / self.camera.distance_m)
        return pdk.ViewState(
            latitude=center.lat,
            longitude=center.lon,
            zoom=max(MapConfig.MIN_ZOOM, min(MapConfig.MAX_ZOOM, zoom)),
            # deck.gl pitch is measured from straight down and capped at 60
            pitch=min(60.0, 90.0 - self.camera.pitch_deg),
            bearing=self.camera.heading_deg,
        )

    def to_deck(self, use_3d: bool = False) -> pdk.Deck:
        """Render the current frame as a Pydeck Deck.

        Args:
            use_3d: If True, use the 3D terrain mesh as basemap, else the 2D raster style.
        """
        from markerpin_viewer.ui.terrain_layer import create_aws_terrain_layer, raster_style

        frame = self.render_frame()
        layers = list(frame.layers)
        if use_3d:
            layers.insert(0, create_aws_terrain_layer())
            map_style = None
            map_provider = None
        else:
            map_style = raster_style()
            map_provider = "mapbox"  # Required when map_style is a dict

        return pdk.Deck(
            map_style=map_style,
            map_provider=map_provider,
            initial_view_state=self.get_view_state(),
            layers=layers,
            tooltip={"html": "<b>{name}</b>"},
            parameters={"pickingRadius": ClickConfig.PICKING_RADIUS_PX},
        )

"""Tests for DeckViewport, Camera and ToolRegistry.

Tests: projection and ray test, tool registry, click dispatch, view-opened future,
flyover, pydeck view state and deck output
Focus: Dispatch order (tool -> pick -> background) and projection consistency

Note: Fixtures are defined in conftest.py (top-down viewport: screen = (500 + x/2, 500 - y/2)).
"""

import asyncio

import pytest

from markerpin_viewer.constants import ClickConfig, FlyoverConfig
from markerpin_viewer.model.geo_location import Cartographic, GeoLocation
from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.model.spatial_point import SpatialPoint
from markerpin_viewer.ui.decorator import MarkerPinDecorator
from markerpin_viewer.ui.viewport import (
    Camera,
    DeckViewport,
    InteractiveTool,
    MouseButton,
    ScreenPoint,
    ScreenRect,
    ToolRegistry,
)

from conftest import FakeConverter, expected_screen, make_top_down_camera


class RecordingTool(InteractiveTool):
    """Tool recording its registry callbacks."""

    def __init__(self, tool_id: str, consume: bool = True) -> None:
        self.tool_id = tool_id
        self.consume = consume
        self.events: list[str] = []

    def on_install(self) -> None:
        self.events.append("install")

    def on_cleanup(self) -> None:
        self.events.append("cleanup")

    def on_data_button_down(self, screen_point: ScreenPoint) -> bool:
        self.events.append(f"click {screen_point.x:.0f},{screen_point.y:.0f}")
        return self.consume


class TestCamera:
    """Camera projection and validation."""

    def test_invalid_camera_rejected(self) -> None:
        with pytest.raises(ValueError, match="distance"):
            Camera(distance_m=0.0)
        with pytest.raises(ValueError, match="pitch"):
            Camera(pitch_deg=0.0)

    def test_top_down_projection(self, top_down_camera: Camera) -> None:
        screen = top_down_camera.world_to_screen(SpatialPoint(x=200.0, y=-100.0))
        expected = expected_screen(x=200.0, y=-100.0)
        assert (screen.x, screen.y) == pytest.approx((expected.x, expected.y))

    def test_target_projects_to_center(self) -> None:
        camera = Camera(target=SpatialPoint(x=120.0, y=-40.0), pitch_deg=35.0, heading_deg=70.0)
        screen = camera.world_to_screen(camera.target)
        assert (screen.x, screen.y) == pytest.approx((camera.center.x, camera.center.y))

    @pytest.mark.parametrize(
        "point",
        [SpatialPoint(x=0.0, y=0.0), SpatialPoint(x=300.0, y=250.0), SpatialPoint(x=-800.0, y=900.0)],
    )
    def test_ray_test_inverts_projection(self, point: SpatialPoint) -> None:
        """screen_to_world(world_to_screen(p)) == p for ground points in view."""
        camera = Camera(target=SpatialPoint(x=100.0, y=200.0), pitch_deg=45.0, heading_deg=30.0)
        hit = camera.screen_to_world(camera.world_to_screen(point))
        assert (hit.x, hit.y, hit.z) == pytest.approx((point.x, point.y, 0.0), abs=1e-6)

    def test_ray_above_horizon_misses(self) -> None:
        camera = Camera(pitch_deg=10.0)
        assert camera.screen_to_world(ScreenPoint(x=camera.center.x, y=0.0)) is None

    def test_interpolate_halfway(self) -> None:
        start = Camera(target=SpatialPoint(x=0.0, y=0.0), distance_m=1000.0, pitch_deg=90.0)
        end = Camera(target=SpatialPoint(x=100.0, y=-50.0), distance_m=3000.0, pitch_deg=40.0)
        mid = start.interpolate(end, alpha=0.5)
        assert mid.target == SpatialPoint(x=50.0, y=-25.0)
        assert mid.distance_m == 2000.0
        assert mid.pitch_deg == 65.0
        assert start.interpolate(end, alpha=1.0) == end

    def test_screen_rect_contains_is_inclusive(self) -> None:
        rect = ScreenRect(left=0.0, top=0.0, right=10.0, bottom=20.0)
        assert rect.contains(ScreenPoint(x=10.0, y=20.0))
        assert not rect.contains(ScreenPoint(x=10.5, y=20.0))
        assert rect.center == ScreenPoint(x=5.0, y=10.0)


class TestToolRegistry:
    """At most one active tool; switching cleans up the previous one."""

    def test_run_switches_tools(self) -> None:
        registry = ToolRegistry()
        first, second = RecordingTool("first"), RecordingTool("second")
        registry.register(first)
        registry.register(second)

        registry.run("first")
        registry.run("second")

        assert first.events == ["install", "cleanup"]
        assert second.events == ["install"]
        assert registry.active_tool is second

    def test_run_unregistered_fails(self) -> None:
        registry = ToolRegistry()
        assert registry.run("missing") is False
        assert registry.active_tool is None

    def test_exit_tool_without_active_is_no_op(self) -> None:
        registry = ToolRegistry()
        registry.exit_tool()
        assert registry.active_tool is None


class TestDispatchClick:
    """Active tool first, then marker picking, then background listeners."""

    def test_active_tool_gets_click_before_markers(
        self, viewport: DeckViewport, decorator: MarkerPinDecorator, pin_image: PinImage
    ) -> None:
        decorator.add_point(position=SpatialPoint(x=0.0, y=0.0), image=pin_image)
        viewport.add_decorator(decorator)
        picked = []
        viewport.add_marker_click_listener(lambda marker, point: picked.append(marker))
        tool = RecordingTool("probe")
        viewport.tools.register(tool)
        viewport.tools.run("probe")

        assert viewport.dispatch_click(ScreenPoint(x=500.0, y=490.0)) is True
        assert tool.events == ["install", "click 500,490"]
        assert picked == []

    def test_marker_click_notifies_listeners(
        self, viewport: DeckViewport, decorator: MarkerPinDecorator, pin_image: PinImage
    ) -> None:
        decorator.add_point(position=SpatialPoint(x=0.0, y=0.0), image=pin_image)
        viewport.add_decorator(decorator)
        picked, background = [], []
        viewport.add_marker_click_listener(lambda marker, point: picked.append(marker))
        viewport.add_background_click_listener(background.append)

        assert viewport.dispatch_click(ScreenPoint(x=500.0, y=490.0)) is True
        assert picked == [decorator.markers[0]]
        assert background == []

    def test_background_click(self, viewport: DeckViewport) -> None:
        background = []
        viewport.add_background_click_listener(background.append)
        assert viewport.dispatch_click(ScreenPoint(x=10.0, y=10.0)) is False
        assert background == [ScreenPoint(x=10.0, y=10.0)]

    def test_removed_listener_not_called(self, viewport: DeckViewport) -> None:
        background = []
        viewport.add_background_click_listener(background.append)
        viewport.remove_background_click_listener(background.append)
        viewport.remove_background_click_listener(background.append)
        viewport.dispatch_click(ScreenPoint(x=10.0, y=10.0))
        assert background == []

    def test_reset_without_tool_is_ignored(self, viewport: DeckViewport) -> None:
        assert viewport.dispatch_click(ScreenPoint(x=0.0, y=0.0), button=MouseButton.RESET) is False

    def test_later_decorator_picked_first(self, viewport: DeckViewport, pin_image: PinImage) -> None:
        lower, upper = MarkerPinDecorator(), MarkerPinDecorator()
        lower.add_point(position=SpatialPoint(x=0.0, y=0.0), image=pin_image)
        upper.add_point(position=SpatialPoint(x=4.0, y=0.0), image=pin_image)
        viewport.add_decorator(lower)
        viewport.add_decorator(upper)
        assert viewport.pick(ScreenPoint(x=501.0, y=490.0)) == upper.markers[0]

    def test_add_decorator_is_idempotent(self, viewport: DeckViewport, decorator: MarkerPinDecorator) -> None:
        assert viewport.add_decorator(decorator) is True
        assert viewport.add_decorator(decorator) is False
        assert viewport.drop_decorator(decorator) is True
        assert viewport.drop_decorator(decorator) is False


class TestViewOpened:
    """One-shot view-opened future."""

    def test_future_resolves_once_view_opens(self, viewport: DeckViewport) -> None:
        async def scenario() -> None:
            opened = viewport.view_opened()
            assert not opened.done()
            viewport.open_view()
            viewport.open_view()
            assert await opened is viewport
            assert viewport.view_opened() is opened

        asyncio.run(scenario())

    def test_future_already_resolved_if_open(self, viewport: DeckViewport) -> None:
        async def scenario() -> None:
            viewport.open_view()
            assert viewport.view_opened().done()

        asyncio.run(scenario())
        assert viewport.is_view_open

    def test_cancelled_future_is_replaced(self, viewport: DeckViewport) -> None:
        async def scenario() -> None:
            first = viewport.view_opened()
            first.cancel()
            second = viewport.view_opened()
            assert second is not first
            viewport.open_view()
            assert await second is viewport

        asyncio.run(scenario())


@pytest.mark.usefixtures("fast_flyover")
class TestFlyover:
    """animate_flyover_to ends exactly at the destination framing."""

    def test_final_camera(self) -> None:
        viewport = DeckViewport(converter=FakeConverter(), camera=make_top_down_camera())
        location = GeoLocation(center=Cartographic(lon=0.2, lat=-0.1, height=30.0), name="Somewhere")

        asyncio.run(viewport.animate_flyover_to(location))

        assert viewport.camera.target == SpatialPoint(x=200.0, y=-100.0, z=30.0)
        assert viewport.camera.distance_m == FlyoverConfig.ARRIVAL_DISTANCE_M
        assert viewport.camera.pitch_deg == FlyoverConfig.ARRIVAL_PITCH_DEG
        assert viewport.camera.width == 1000


class TestDeckOutput:
    """Pydeck view state and Deck assembly."""

    def test_view_state_at_default_distance(self, converter: FakeConverter) -> None:
        viewport = DeckViewport(converter=converter, camera=Camera(pitch_deg=45.0))
        view_state = viewport.get_view_state()
        assert view_state.zoom == pytest.approx(14.0)
        assert view_state.pitch == pytest.approx(45.0)
        assert (view_state.longitude, view_state.latitude) == (0.0, 0.0)

    def test_view_state_top_down(self, viewport: DeckViewport) -> None:
        assert viewport.get_view_state().pitch == 0.0

    def test_deck_contains_marker_layer(
        self, viewport: DeckViewport, decorator: MarkerPinDecorator, pin_image: PinImage
    ) -> None:
        decorator.add_point(position=SpatialPoint(x=0.0, y=0.0), image=pin_image)
        viewport.add_decorator(decorator)

        assert [layer.id for layer in viewport.to_deck(use_3d=False).layers] == [ClickConfig.LAYER_ID_MARKERS]
        assert [layer.id for layer in viewport.to_deck(use_3d=True).layers] == [
            "terrain_3d_aws",
            ClickConfig.LAYER_ID_MARKERS,
        ]

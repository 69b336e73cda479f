"""Tests for PlaceMarkerTool.

Tests: register/unregister, activate, cancel, on_data_button_down via dispatch_click
Focus: Single-shot placement, cancel leaves the marker set untouched

Note: Fixtures are defined in conftest.py (top-down viewport: screen = (500 + x/2, 500 - y/2)).
"""

import pytest

from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.model.spatial_point import SpatialPoint
from markerpin_viewer.ui.decorator import MarkerPinDecorator
from markerpin_viewer.ui.placement_tool import PlaceMarkerTool
from markerpin_viewer.ui.viewport import Camera, DeckViewport, MouseButton, ScreenPoint


@pytest.fixture
def tool(viewport: DeckViewport, decorator: MarkerPinDecorator, pin_image: PinImage) -> PlaceMarkerTool:
    """Registered tool placing pin_image into decorator."""
    tool = PlaceMarkerTool(viewport=viewport, decorator=decorator, image_provider=lambda: pin_image)
    tool.register()
    return tool


class TestRegistration:
    """Tool registry membership."""

    def test_register_is_idempotent(self, viewport: DeckViewport, tool: PlaceMarkerTool) -> None:
        assert tool.is_registered
        assert tool.register() is False
        assert viewport.tools.tool_ids == [PlaceMarkerTool.tool_id]

    def test_unregister_unknown_is_no_op(self, viewport: DeckViewport, decorator: MarkerPinDecorator) -> None:
        tool = PlaceMarkerTool(viewport=viewport, decorator=decorator, image_provider=lambda: None)
        assert tool.unregister() is False

    def test_unregister_while_armed_cancels(self, viewport: DeckViewport, tool: PlaceMarkerTool) -> None:
        tool.activate()
        assert tool.unregister() is True
        assert not tool.is_armed
        assert viewport.tools.active_tool is None
        assert tool.machine.context.cancellations == 1

    def test_activate_unregistered_fails(self, viewport: DeckViewport, decorator: MarkerPinDecorator) -> None:
        tool = PlaceMarkerTool(viewport=viewport, decorator=decorator, image_provider=lambda: None)
        assert tool.activate() is False
        assert not tool.is_armed


class TestPlacement:
    """Activate, click once, exactly one marker appended."""

    def test_click_places_marker_at_ground_point(
        self, viewport: DeckViewport, decorator: MarkerPinDecorator, tool: PlaceMarkerTool, pin_image: PinImage
    ) -> None:
        decorator.set_markers(points=[SpatialPoint(x=-300.0, y=0.0)], image=pin_image)
        click = ScreenPoint(x=550.0, y=450.0)
        expected = viewport.screen_to_world(click)

        tool.activate()
        assert viewport.dispatch_click(click) is True

        assert len(decorator) == 2
        placed = decorator.markers[-1]
        assert placed.position == expected
        assert (placed.position.x, placed.position.y) == pytest.approx((100.0, 100.0))
        assert placed.image is pin_image

    def test_single_shot(self, viewport: DeckViewport, decorator: MarkerPinDecorator, tool: PlaceMarkerTool) -> None:
        """After one placement the tool is inactive and a second click places nothing."""
        tool.activate()
        viewport.dispatch_click(ScreenPoint(x=500.0, y=500.0))
        assert not tool.is_armed
        assert viewport.tools.active_tool is None

        viewport.dispatch_click(ScreenPoint(x=600.0, y=600.0))
        assert len(decorator) == 1
        assert tool.machine.context.placements == 1

    def test_placed_marker_is_pickable(
        self, viewport: DeckViewport, decorator: MarkerPinDecorator, tool: PlaceMarkerTool
    ) -> None:
        viewport.add_decorator(decorator)
        tool.activate()
        viewport.dispatch_click(ScreenPoint(x=400.0, y=300.0))
        tip = viewport.world_to_screen(decorator.markers[0].position)
        assert viewport.pick(tip) == decorator.markers[0]

    def test_missing_image_places_nothing(self, viewport: DeckViewport, decorator: MarkerPinDecorator) -> None:
        """The click is still consumed and the tool still exits."""
        tool = PlaceMarkerTool(viewport=viewport, decorator=decorator, image_provider=lambda: None)
        tool.register()
        tool.activate()
        assert viewport.dispatch_click(ScreenPoint(x=500.0, y=500.0)) is True
        assert len(decorator) == 0
        assert not tool.is_armed

    def test_ray_miss_stays_armed(self, converter, decorator: MarkerPinDecorator, pin_image: PinImage) -> None:
        """A click above the horizon hits no ground; the tool waits for the next click."""
        viewport = DeckViewport(converter=converter, camera=Camera(pitch_deg=10.0))
        tool = PlaceMarkerTool(viewport=viewport, decorator=decorator, image_provider=lambda: pin_image)
        tool.register()
        tool.activate()

        assert viewport.dispatch_click(ScreenPoint(x=600.0, y=0.0)) is False
        assert tool.is_armed
        assert len(decorator) == 0

        assert viewport.dispatch_click(viewport.camera.center) is True
        assert len(decorator) == 1


class TestCancel:
    """Cancel paths never touch the marker set."""

    def test_activate_then_cancel_leaves_set_unchanged(
        self, decorator: MarkerPinDecorator, tool: PlaceMarkerTool, pin_image: PinImage
    ) -> None:
        decorator.set_markers(points=[SpatialPoint(x=1.0, y=2.0)], image=pin_image)
        before = decorator.markers

        tool.activate()
        tool.cancel()

        assert decorator.markers == before
        assert not tool.is_armed
        assert tool.machine.context.cancellations == 1

    def test_reset_button_cancels(
        self, viewport: DeckViewport, decorator: MarkerPinDecorator, tool: PlaceMarkerTool
    ) -> None:
        tool.activate()
        assert viewport.dispatch_click(ScreenPoint(x=500.0, y=500.0), button=MouseButton.RESET) is True
        assert not tool.is_armed
        assert len(decorator) == 0

    def test_cancel_when_inactive_is_no_op(self, tool: PlaceMarkerTool) -> None:
        tool.cancel()
        assert tool.machine.context.cancellations == 0

    def test_reactivate_after_cancel(
        self, viewport: DeckViewport, decorator: MarkerPinDecorator, tool: PlaceMarkerTool
    ) -> None:
        tool.activate()
        tool.cancel()
        tool.activate()
        viewport.dispatch_click(ScreenPoint(x=500.0, y=500.0))
        assert len(decorator) == 1
        assert tool.machine.context.activations == 2

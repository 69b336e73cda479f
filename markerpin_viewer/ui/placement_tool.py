"""PlaceMarkerTool - Single-shot interactive tool that drops one marker pin.

Flow:
1. Widget (popup action) calls activate() -> viewport.tools.run("PlaceMarker")
2. Tool registry calls on_install() -> machine arms
3. Next primary click -> on_data_button_down() ray-tests the click against the
   ground, appends a marker through the decorator and exits the tool
4. Tool switch, reset button or cancel() -> on_cleanup() -> machine cancels

The tool targets a decorator and asks an image provider for the pin image at
click time; it never holds marker data itself.
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.ui.state_machine import PlacementToolMachine
from markerpin_viewer.ui.viewport import InteractiveTool, ScreenPoint

if TYPE_CHECKING:
    from markerpin_viewer.ui.decorator import MarkerPinDecorator
    from markerpin_viewer.ui.viewport import DeckViewport

logger = logging.getLogger(__name__)

ImageProvider = Callable[[], PinImage | None]


class PlaceMarkerTool(InteractiveTool):
    """Modal tool: arm, click once, one marker appended."""

    tool_id = "PlaceMarker"

    def __init__(
        self,
        viewport: "DeckViewport",
        decorator: "MarkerPinDecorator",
        image_provider: ImageProvider,
    ) -> None:
        """Initialize tool.

        Args:
            viewport: Viewport providing the tool registry and ray test
            decorator: Decorator receiving the placed marker
            image_provider: Returns the pin image to place (None = no-op placement)
        """
        self.viewport = viewport
        self.decorator = decorator
        self.image_provider = image_provider
        self.machine = PlacementToolMachine.create()

    @property
    def is_armed(self) -> bool:
        return self.machine.is_armed

    @property
    def is_registered(self) -> bool:
        return self.viewport.tools.is_registered(self.tool_id)

    def register(self) -> bool:
        """Install the tool in the viewport's tool registry (idempotent)."""
        return self.viewport.tools.register(self)

    def unregister(self) -> bool:
        """Remove the tool, cancelling it first if armed. No-op if not registered."""
        return self.viewport.tools.unregister(self.tool_id)

    def activate(self) -> bool:
        """Make this the active tool, which arms it."""
        return self.viewport.tools.run(self.tool_id)

    def cancel(self) -> None:
        """Cancel a pending placement without touching the decorator."""
        if self.viewport.tools.active_tool is self:
            self.viewport.tools.exit_tool()
        elif self.is_armed:
            self.machine.try_transition("cancel")

    # =========================================================================
    # TOOL REGISTRY CALLBACKS
    # =========================================================================

    def on_install(self) -> None:
        self.machine.try_transition("arm")

    def on_cleanup(self) -> None:
        if self.is_armed:
            self.machine.try_transition("cancel")

    def on_data_button_down(self, screen_point: ScreenPoint) -> bool:
        """Place a marker at the clicked ground point.

        Returns:
            True if a marker was placed, False if not armed or the ray missed the ground.
        """
        if not self.is_armed:
            return False

        point = self.viewport.screen_to_world(screen_point)
        if point is None:
            logger.info(f"[TOOL] No ground under {screen_point}, still armed")
            return False

        self.decorator.add_point(position=point, image=self.image_provider())
        self.machine.try_transition("place")
        logger.info(f"[TOOL] Placed marker at {point}")
        # Single shot: leave the registry, on_cleanup sees the machine already inactive
        self.viewport.tools.exit_tool()
        return True

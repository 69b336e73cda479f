"""MarkerPinWidget - Orchestrates the marker pin subsystem for one viewport.

Owns and wires together:
- MarkerPinDecorator (the marker set) and its DecoratorLifecycleMachine
- ImageRegistry (pin images preloaded on mount, cleared on unmount)
- PlaceMarkerTool (placement input mode)
- PopupMenu (opened on marker click, actions handled here)
- LiveSyncController (feed -> decorator)

Mount order:
1. Enable the decorator (if markers are shown)
2. Preload pin images concurrently, failures leave the image absent
3. Register the placement tool and republish current marker data
4. Hook the view-opened future (non-blocking)
5. Start live sync, gated on the view being open

unmount() releases everything mount() acquired and also runs when mount()
fails part-way.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from markerpin_viewer.constants import FeedConfig, PinConfig
from markerpin_viewer.model.message import FeedErrorMessage
from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.model.spatial_marker import SpatialMarker
from markerpin_viewer.model.spatial_point import SpatialPoint
from markerpin_viewer.ui.decorator import MarkerPinDecorator
from markerpin_viewer.ui.image_registry import ImageLoader, ImageRegistry, load_image
from markerpin_viewer.ui.live_sync import LiveSyncController
from markerpin_viewer.ui.placement_tool import PlaceMarkerTool
from markerpin_viewer.ui.popup_menu import PopupAction, PopupMenu
from markerpin_viewer.ui.state_machine import DecoratorLifecycleMachine
from markerpin_viewer.ui.viewport import ScreenPoint

if TYPE_CHECKING:
    import asyncio

    from markerpin_viewer.core.coordinate_converter import CoordinateConverter
    from markerpin_viewer.core.live_feed import LiveFeed
    from markerpin_viewer.ui.viewport import DeckViewport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WidgetState:
    """Copy of the widget state a UI pass reads, taken on the event loop thread."""

    show_markers: bool
    selected_pin: str
    has_selected_image: bool
    is_placing: bool
    popup_actions: tuple[PopupAction, ...]
    marker_count: int
    last_error: FeedErrorMessage | None


class MarkerPinWidget:
    """Marker pin widget bound to one viewport and one live feed table.

    Example:
        widget = MarkerPinWidget(viewport=viewport, feed=InMemoryLiveFeed())
        async with widget:
            widget.select_pin(PinConfig.CELERY_PIN)
            widget.handle_popup_action(PopupAction.ADD_MARKER)
    """

    def __init__(
        self,
        viewport: "DeckViewport",
        feed: "LiveFeed",
        converter: "CoordinateConverter | None" = None,
        image_loader: ImageLoader = load_image,
        table: str = FeedConfig.TABLE,
    ) -> None:
        """Initialize widget (nothing is registered until mount()).

        Args:
            viewport: Viewport hosting the markers
            feed: Live feed supplying marker rows
            converter: Geographic -> spatial converter (viewport's converter by default)
            image_loader: Loads pin images by identifier
            table: Feed table name
        """
        self.viewport = viewport
        self.converter = converter or viewport.converter

        self.decorator = MarkerPinDecorator()
        self.images = ImageRegistry(loader=image_loader)
        self.lifecycle = DecoratorLifecycleMachine.create(viewport=viewport, decorator=self.decorator)
        self.popup = PopupMenu()
        self.popup.add_listener(self.handle_popup_action)
        self.tool = PlaceMarkerTool(viewport=viewport, decorator=self.decorator, image_provider=self.selected_image)
        self.live_sync = LiveSyncController(
            feed=feed,
            converter=self.converter,
            publish=self.set_markers_data,
            table=table,
            on_error=self._report_error,
        )

        self.selected_pin = PinConfig.DEFAULT_PIN
        self.show_markers = True
        self.is_mounted = False
        self.is_view_ready = False
        self.errors: list[FeedErrorMessage] = []

    def __repr__(self) -> str:
        return (
            f"MarkerPinWidget(mounted={self.is_mounted}, markers={len(self.decorator)}, "
            f"decorations={self.lifecycle.get_state_name()}, pin={self.selected_pin})"
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def mount(self) -> None:
        """Acquire all resources (see module docstring for the order). No-op if mounted."""
        if self.is_mounted:
            return
        self.is_mounted = True
        logger.info("[WIDGET] Mounting")
        try:
            if self.show_markers:
                self.enable_decorations()

            await self.images.preload(PinConfig.PIN_SELECTIONS)
            if self.selected_pin not in self.images:
                self.selected_pin = next(iter(self.images.names), self.selected_pin)

            self.tool.register()
            self.set_markers_data(self.live_sync.points)

            self.viewport.add_marker_click_listener(self._on_marker_click)
            self.viewport.add_background_click_listener(self._on_background_click)

            view_opened = self.viewport.view_opened()
            view_opened.add_done_callback(self._on_view_opened)

            await self.live_sync.start(ready=view_opened)
        except BaseException:
            logger.error("[WIDGET] Mount failed, releasing resources")
            await self.unmount()
            raise

    async def unmount(self) -> None:
        """Release everything mount() acquired. Safe to call at any point."""
        await self.live_sync.stop()
        self.tool.unregister()
        self.viewport.remove_marker_click_listener(self._on_marker_click)
        self.viewport.remove_background_click_listener(self._on_background_click)
        self.lifecycle.send("disable")
        self.popup.dismiss()
        self.images.clear()
        self.is_mounted = False
        logger.info("[WIDGET] Unmounted")

    async def __aenter__(self) -> "MarkerPinWidget":
        await self.mount()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.unmount()

    def _on_view_opened(self, future: "asyncio.Future") -> None:
        if future.cancelled():
            return
        self.is_view_ready = True
        logger.info("[WIDGET] View ready")

    # =========================================================================
    # DECORATIONS
    # =========================================================================

    def enable_decorations(self) -> None:
        self.lifecycle.send("enable")

    def disable_decorations(self) -> None:
        self.lifecycle.send("disable")

    def set_show_markers(self, show: bool) -> None:
        """Show/hide the markers (the "Show markers" toggle)."""
        self.show_markers = show
        if not self.is_mounted:
            return
        if show:
            self.enable_decorations()
        else:
            self.disable_decorations()

    def set_markers_data(self, points: Iterable[SpatialPoint]) -> None:
        """Replace the marker set using the default pin. No-op until that pin is loaded."""
        image = self.images.get(PinConfig.DEFAULT_PIN)
        if image is None:
            logger.debug("[WIDGET] Default pin not loaded, markers not published")
            return
        self.decorator.set_markers(points=points, image=image)

    # =========================================================================
    # PIN SELECTION
    # =========================================================================

    def select_pin(self, name: str) -> bool:
        """Select the pin image used for manually placed markers.

        Returns:
            True if selected, False if the image is not loaded.

        Raises:
            ValueError: If name is not one of the offered pins.
        """
        if name not in PinConfig.PIN_SELECTIONS:
            raise ValueError(f"Unknown pin '{name}', expected one of {list(PinConfig.PIN_SELECTIONS)}")
        if name not in self.images:
            logger.warning(f"[WIDGET] Pin '{name}' is not loaded and cannot be selected")
            return False
        self.selected_pin = name
        logger.info(f"[WIDGET] Selected pin {PinConfig.PIN_SELECTIONS[name]}")
        return True

    def selected_image(self) -> PinImage | None:
        return self.images.get(self.selected_pin)

    def state(self) -> WidgetState:
        """Snapshot for the UI thread (popup_actions is empty while the popup is hidden)."""
        return WidgetState(
            show_markers=self.show_markers,
            selected_pin=self.selected_pin,
            has_selected_image=self.selected_image() is not None,
            is_placing=self.is_placing,
            popup_actions=tuple(self.popup.actions) if self.popup.is_visible else (),
            marker_count=len(self.decorator),
            last_error=self.errors[-1] if self.errors else None,
        )

    def pin_options(self) -> list[tuple[str, str, bool]]:
        """(image name, display name, available) for every offered pin."""
        return [(name, label, name in self.images) for name, label in PinConfig.PIN_SELECTIONS.items()]

    # =========================================================================
    # POPUP / CLICKS
    # =========================================================================

    @property
    def is_placing(self) -> bool:
        return self.tool.is_armed

    def show_menu(self) -> None:
        """Open the popup at the canvas centre."""
        self.popup.show(anchor=self.viewport.camera.center)

    def handle_popup_action(self, action: PopupAction) -> None:
        if action == PopupAction.ADD_MARKER:
            self.tool.activate()

    def _on_marker_click(self, marker: SpatialMarker, screen_point: ScreenPoint) -> None:
        anchor = self.viewport.world_to_screen(marker.position) or screen_point
        self.popup.show(anchor=anchor, marker=marker)

    def _on_background_click(self, screen_point: ScreenPoint) -> None:
        self.popup.on_outside_click(screen_point)

    def _report_error(self, error: Exception) -> None:
        message = FeedErrorMessage(error=str(error) or type(error).__name__)
        logger.error(f"[WIDGET] {message.message}")
        self.errors.append(message)

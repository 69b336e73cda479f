"""PopupMenu - Contextual menu anchored to a screen position.

Shown when a marker is picked (anchored at the marker's projected position)
or from the sidebar (anchored at the canvas centre). Selecting an action emits
it to listeners and hides the menu; an outside click hides it silently.
"""

import logging
from collections.abc import Callable
from enum import Enum

from markerpin_viewer.model.spatial_marker import SpatialMarker
from markerpin_viewer.ui.viewport import ScreenPoint

logger = logging.getLogger(__name__)


class PopupAction(Enum):
    """Actions offered by the popup menu (value = button label)."""

    ADD_MARKER = "Add marker"
    DISMISS = "Close"

    @property
    def label(self) -> str:
        return self.value


ActionListener = Callable[[PopupAction], None]


class PopupMenu:
    """Presentation state of the popup menu.

    Attributes:
        is_visible: Whether the menu is shown
        anchor: Screen position the menu is attached to (None when hidden)
        marker: Marker the menu was opened for, if any
    """

    def __init__(self, actions: tuple[PopupAction, ...] = tuple(PopupAction)) -> None:
        self.actions = actions
        self.is_visible = False
        self.anchor: ScreenPoint | None = None
        self.marker: SpatialMarker | None = None
        self._listeners: list[ActionListener] = []

    def __repr__(self) -> str:
        return f"PopupMenu(visible={self.is_visible}, anchor={self.anchor})"

    def add_listener(self, listener: ActionListener) -> Callable[[], None]:
        """Subscribe to emitted actions. Returns a function that unsubscribes."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def show(self, anchor: ScreenPoint, marker: SpatialMarker | None = None) -> None:
        self.anchor = anchor
        self.marker = marker
        self.is_visible = True
        logger.debug(f"[POPUP] Shown at {anchor}")

    def dismiss(self) -> None:
        """Hide without emitting an action."""
        self.is_visible = False
        self.anchor = None
        self.marker = None

    def select(self, action: PopupAction) -> None:
        """Emit an action to listeners, then hide.

        Raises:
            ValueError: If the action is not offered by this menu.
        """
        if action not in self.actions:
            raise ValueError(f"Popup action {action} not offered (have {[a.label for a in self.actions]})")
        logger.info(f"[POPUP] Selected '{action.label}'")
        for listener in list(self._listeners):
            listener(action)
        self.dismiss()

    def on_outside_click(self, screen_point: ScreenPoint) -> None:
        if self.is_visible:
            logger.debug(f"[POPUP] Outside click at {screen_point}")
            self.dismiss()

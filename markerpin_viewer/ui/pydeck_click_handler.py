"""Pydeck click handling using streamlit-deckgl.

st_deckgl returns the full deck.gl onClick event for every click, including
clicks on empty map (st.pydeck_chart only reports picked objects).

Event structure (object properties are spread into the event, no "object" key):
- Map click: {coordinate: [lon, lat], eventType: "click"}
- Pin click: {type: "marker_pin", index: 3, position: [x, y, z], coordinate: [lon, lat], ...}

Clicks are turned into viewport screen points so they go through the same
dispatch (active tool -> pick -> background) as any other input.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import pydeck as pdk
import streamlit as st
from streamlit_deckgl import st_deckgl  # type: ignore[import-untyped]

from markerpin_viewer.constants import ClickConfig, MapConfig
from markerpin_viewer.model.spatial_point import SpatialPoint
from markerpin_viewer.ui.viewport import ScreenPoint

if TYPE_CHECKING:
    from markerpin_viewer.ui.viewport import DeckViewport

logger = logging.getLogger(__name__)


@dataclass
class PydeckClickResult:
    """Result from Pydeck click detection.

    Attributes:
        clicked_object: Picked layer data (dict) or None for a map click
        clicked_coordinate: [lon, lat] of the click location
    """

    clicked_object: dict[str, Any] | None
    clicked_coordinate: list[float] | None

    @property
    def is_marker_click(self) -> bool:
        return self.clicked_object is not None and self.clicked_object.get("type") == ClickConfig.TYPE_MARKER_PIN

    @property
    def is_map_click(self) -> bool:
        return self.clicked_object is None and self.clicked_coordinate is not None

    @property
    def is_empty(self) -> bool:
        return self.clicked_object is None and self.clicked_coordinate is None

    @staticmethod
    def empty() -> "PydeckClickResult":
        """Return empty result (no click detected)."""
        return PydeckClickResult(clicked_object=None, clicked_coordinate=None)


def parse_click_event(event: Any) -> PydeckClickResult:
    """Extract the picked object and coordinate from an st_deckgl event."""
    if not isinstance(event, dict) or not event:
        return PydeckClickResult.empty()

    clicked_coordinate: list[float] | None = None
    coord = event.get("coordinate")
    if isinstance(coord, (list, tuple)) and len(coord) >= 2:
        clicked_coordinate = [float(coord[0]), float(coord[1])]

    clicked_object: dict[str, Any] | None = None
    if event.get("type") and event["type"] != "click":
        clicked_object = {k: v for k, v in event.items() if k not in ("coordinate", "eventType")}

    return PydeckClickResult(clicked_object=clicked_object, clicked_coordinate=clicked_coordinate)


def click_to_screen_point(result: PydeckClickResult, viewport: "DeckViewport") -> ScreenPoint | None:
    """Project a click into the viewport's screen space.

    Pin clicks land in the middle of the drawn pin (so the pick test finds it),
    map clicks at the projected ground coordinate.

    Returns:
        Screen point, or None if the click has no usable location.
    """
    if result.is_marker_click:
        position = result.clicked_object.get("position")
        if isinstance(position, (list, tuple)) and len(position) == 3:
            x, y, z = (float(v) for v in position)
            anchor = viewport.world_to_screen(SpatialPoint(x=x, y=y, z=z))
            if anchor is not None:
                size = float(result.clicked_object.get("size", 0))
                return ScreenPoint(x=anchor.x, y=anchor.y - size / 2)

    if result.clicked_coordinate is None:
        return None
    lon, lat = result.clicked_coordinate
    try:
        ground = viewport.converter.convert(lon=lon, lat=lat, height=0.0)
    except ValueError as e:
        logger.warning(f"Ignoring click at unusable coordinate {result.clicked_coordinate}: {e}")
        return None
    return viewport.world_to_screen(ground)


def render_pydeck_map(
    deck: pdk.Deck,
    key: str,
    height: int = MapConfig.CANVAS_HEIGHT_PX,
) -> PydeckClickResult:
    """Render the deck with click support and return the new click, if any.

    Args:
        deck: Configured pydeck.Deck object
        key: Unique key for this component instance
        height: Height in pixels

    Returns:
        PydeckClickResult, empty if there was no new click since the last rerun
    """
    last_click_key = f"_deckgl_last_click_{key}"
    if last_click_key not in st.session_state:
        st.session_state[last_click_key] = None

    # MUST pass events=['click'] to enable click detection
    event = st_deckgl(deck, key=key, height=height, events=["click"])
    result = parse_click_event(event)
    if result.is_empty:
        return result

    # st_deckgl keeps returning the last event on every rerun
    click_id = _get_click_id(obj=result.clicked_object, coord=result.clicked_coordinate)
    if click_id == st.session_state.get(last_click_key):
        return PydeckClickResult.empty()
    st.session_state[last_click_key] = click_id

    logger.debug(f"Click detected: object={result.clicked_object is not None}, coord={result.clicked_coordinate}")
    return result


def _get_click_id(obj: dict[str, Any] | None, coord: list[float] | None) -> str:
    """Generate unique ID for click deduplication."""
    parts = []
    if obj:
        parts.append(f"{obj.get('type', '')}_{obj.get('index', '')}")
    if coord:
        # Round coordinates for dedup tolerance
        parts.append(f"coord_{coord[0]:.6f}_{coord[1]:.6f}")
    return "_".join(parts)

"""Marker Pin Viewer - Live marker pins on an interactive map.

Shows marker pins streamed from a live feed table, lets users drop their own
pins and fly to named places.

Run: streamlit run markerpin_viewer/app.py

Environment:
    MARKERPIN_FEED_URL: PostgREST/Supabase project URL (in-memory demo feed if unset)
    MARKERPIN_FEED_KEY: API key for the feed
    MARKERPIN_DEM_PATH: GeoTIFF used to refine flyover heights (optional)
"""

import logging
import traceback

import streamlit as st

from markerpin_viewer.constants import AppConfig, FeedConfig, MapConfig, PinConfig
from markerpin_viewer.core import CoordinateConverter, DEMService, InMemoryLiveFeed, LiveFeed, RestLiveFeed
from markerpin_viewer.model.message import (
    DestinationNotFoundMessage,
    MarkerInstructionsMessage,
    MarkerPlacedMessage,
    PinUnavailableMessage,
    PlacementArmedMessage,
)
from markerpin_viewer.ui import (
    DeckViewport,
    EventLoopRunner,
    GlobalDisplayApi,
    MarkerPinWidget,
    MouseButton,
    PopupAction,
)
from markerpin_viewer.ui.pydeck_click_handler import click_to_screen_point, render_pydeck_map

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# SESSION STATE
# =============================================================================


def _create_feed() -> LiveFeed:
    if FeedConfig.URL:
        logger.info(f"Using REST live feed at {FeedConfig.URL}")
        return RestLiveFeed(base_url=FeedConfig.URL, api_key=FeedConfig.API_KEY)
    logger.info("MARKERPIN_FEED_URL not set, using in-memory live feed")
    return InMemoryLiveFeed(
        tables={FeedConfig.TABLE: [{"id": 1, "long": MapConfig.ORIGIN_LON, "lat": MapConfig.ORIGIN_LAT}]}
    )


def init_session_state() -> None:
    """Create the event loop, viewport and widget once per session, then mount."""
    if "runner" not in st.session_state:
        st.session_state.runner = EventLoopRunner()

    if "widget" not in st.session_state:
        dem_service = DEMService()
        viewport = DeckViewport(
            converter=CoordinateConverter(),
            elevation_source=dem_service if dem_service.is_available else None,
        )
        widget = MarkerPinWidget(viewport=viewport, feed=_create_feed())
        st.session_state.runner.run(widget.mount())
        st.session_state.viewport = viewport
        st.session_state.widget = widget
        st.session_state.travel = GlobalDisplayApi()

    if "map_version" not in st.session_state:
        st.session_state.map_version = 0

    if "use_3d" not in st.session_state:
        st.session_state.use_3d = False


def reset_ui_state() -> None:
    """Cancel any pending placement and popup while keeping the markers."""
    logger.info("Resetting UI state due to error recovery")
    runner: EventLoopRunner = st.session_state.runner
    widget: MarkerPinWidget = st.session_state.widget
    runner.call(widget.tool.cancel)
    runner.call(widget.popup.dismiss)
    st.session_state.map_version = st.session_state.get("map_version", 0) + 1


# =============================================================================
# SIDEBAR
# =============================================================================


def render_sidebar() -> None:
    """Marker options, pin selection and travel-to."""
    runner: EventLoopRunner = st.session_state.runner
    widget: MarkerPinWidget = st.session_state.widget
    viewport: DeckViewport = st.session_state.viewport

    with st.sidebar:
        st.header("Marker options")
        MarkerInstructionsMessage().display()

        state = runner.call(widget.state)
        show = st.toggle("Show markers", value=state.show_markers)
        if show != state.show_markers:
            runner.call(lambda: widget.set_show_markers(show))

        options = runner.call(widget.pin_options)
        available = [name for name, _, is_loaded in options if is_loaded]
        if available:
            selected = st.radio(
                "Pin for new markers",
                options=available,
                index=available.index(state.selected_pin) if state.selected_pin in available else 0,
                format_func=lambda name: PinConfig.PIN_SELECTIONS[name],
            )
            if selected != state.selected_pin:
                runner.call(lambda: widget.select_pin(selected))
        for name, label, is_loaded in options:
            if not is_loaded:
                st.caption(f"{label} unavailable")

        if st.button("📍 Marker menu", width="stretch"):
            runner.call(widget.show_menu)

        st.session_state.use_3d = st.toggle("3D terrain", value=st.session_state.use_3d)

        st.divider()
        st.subheader("Travel to")
        with st.form("travel_to", clear_on_submit=False):
            destination = st.text_input("Place name", placeholder="e.g. Loughborough")
            submitted = st.form_submit_button("Fly there")
        if submitted and destination.strip():
            travel: GlobalDisplayApi = st.session_state.travel
            if not runner.run(travel.travel_to(viewport, destination)):
                DestinationNotFoundMessage(destination=destination).display()
            st.session_state.map_version += 1


# =============================================================================
# MAP RENDERING
# =============================================================================


def render_popup() -> None:
    """Popup menu actions as a row of buttons under the map."""
    runner: EventLoopRunner = st.session_state.runner
    widget: MarkerPinWidget = st.session_state.widget
    state = runner.call(widget.state)
    if not state.popup_actions:
        return

    columns = st.columns(len(state.popup_actions))
    for column, action in zip(columns, state.popup_actions):
        with column:
            if st.button(action.label, key=f"popup_{action.name}", width="stretch"):
                if action == PopupAction.ADD_MARKER and not state.has_selected_image:
                    PinUnavailableMessage(pin_name=PinConfig.PIN_SELECTIONS[state.selected_pin]).display()
                runner.call(lambda action=action: widget.popup.select(action))
                st.rerun()


@st.fragment(run_every=AppConfig.REFRESH_INTERVAL_S)
def _render_map_fragment() -> None:
    """Render the map, refreshed periodically so streamed markers appear."""
    try:
        _render_map_fragment_inner()
    except Exception as e:
        # Log full traceback for debugging
        error_msg = f"{type(e).__name__}: {e}"
        full_traceback = traceback.format_exc()
        logger.error(f"[RENDER] Map error caught: {error_msg}\n{full_traceback}")

        # Show user-friendly error message
        st.error(f"⚠️ [RENDER] Something went wrong: {error_msg}")
        reset_ui_state()


def _render_map_fragment_inner() -> None:
    runner: EventLoopRunner = st.session_state.runner
    widget: MarkerPinWidget = st.session_state.widget
    viewport: DeckViewport = st.session_state.viewport

    use_3d = st.session_state.use_3d
    deck = runner.call(lambda: viewport.to_deck(use_3d=use_3d))
    map_key = f"main_map_{st.session_state.map_version}_{'3d' if use_3d else '2d'}"
    click_result = render_pydeck_map(deck=deck, key=map_key, height=MapConfig.CANVAS_HEIGHT_PX)

    # First render done: the view is open (resolves once, later calls are no-ops)
    runner.call(viewport.open_view)

    state = runner.call(widget.state)
    if state.is_placing:
        PlacementArmedMessage(pin_display_name=PinConfig.PIN_SELECTIONS[state.selected_pin]).display()
        if st.button("Cancel placement"):
            runner.call(lambda: viewport.dispatch_click(viewport.camera.center, button=MouseButton.RESET))
            st.rerun()
    if state.last_error is not None:
        state.last_error.display()

    render_popup()

    if click_result.is_empty:
        return
    screen_point = runner.call(lambda: click_to_screen_point(click_result, viewport))
    if screen_point is None:
        return

    consumed = runner.call(lambda: viewport.dispatch_click(screen_point))
    if state.is_placing and consumed:
        MarkerPlacedMessage(marker_count=runner.call(widget.state).marker_count).display()
    st.rerun()


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Application entry point."""
    st.set_page_config(page_title=AppConfig.TITLE, page_icon=AppConfig.ICON, layout=AppConfig.LAYOUT)
    init_session_state()

    st.title(AppConfig.TITLE)

    try:
        render_sidebar()
        _render_map_fragment()
    except Exception as e:
        # Log full traceback for debugging
        error_msg = f"{type(e).__name__}: {e}"
        full_traceback = traceback.format_exc()
        logger.error(f"[UI] UI error caught: {error_msg}\n{full_traceback}")

        # Show user-friendly error message
        st.error(f"⚠️ [UI] Something went wrong: {error_msg}")
        reset_ui_state()

        if st.button("🔄 Reset and Continue", type="primary"):
            st.rerun()


if __name__ == "__main__":
    main()

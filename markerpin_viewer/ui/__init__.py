"""User interface components for the marker pin viewer.

Core Components:
- viewport.py: DeckViewport (camera, decorators, tools, click dispatch, deck output)
- decorator.py: MarkerPinDecorator (the marker set, render + pick)
- state_machine.py: PlacementToolMachine + DecoratorLifecycleMachine
- placement_tool.py: PlaceMarkerTool (single-shot marker placement)
- popup_menu.py: PopupMenu + PopupAction
- live_sync.py: LiveSyncController (feed -> decorator)
- widget.py: MarkerPinWidget (lifecycle orchestration)

Support:
- image_registry.py: Pin image loading and the widget-owned registry
- global_display.py: Travel-to with camera flyover
- runtime.py: Background event loop for Streamlit
- terrain_layer.py: Raster basemaps and 3D terrain
- pydeck_click_handler.py: streamlit-deckgl click capture (imported by the app)
"""

from markerpin_viewer.ui.decorator import AppendMarker, MarkerPinDecorator, ReplaceMarkers
from markerpin_viewer.ui.global_display import GlobalDisplayApi
from markerpin_viewer.ui.image_registry import ImageRegistry, load_image
from markerpin_viewer.ui.live_sync import LiveSyncController
from markerpin_viewer.ui.placement_tool import PlaceMarkerTool
from markerpin_viewer.ui.popup_menu import PopupAction, PopupMenu
from markerpin_viewer.ui.runtime import EventLoopRunner
from markerpin_viewer.ui.state_machine import (
    DecoratorLifecycleMachine,
    PlacementToolMachine,
)
from markerpin_viewer.ui.viewport import (
    Camera,
    DeckViewport,
    MouseButton,
    ScreenPoint,
    ScreenRect,
    ToolRegistry,
)
from markerpin_viewer.ui.widget import MarkerPinWidget, WidgetState

__all__ = [
    "AppendMarker",
    "Camera",
    "DeckViewport",
    "DecoratorLifecycleMachine",
    "EventLoopRunner",
    "GlobalDisplayApi",
    "ImageRegistry",
    "LiveSyncController",
    "MarkerPinDecorator",
    "MarkerPinWidget",
    "MouseButton",
    "PlaceMarkerTool",
    "PlacementToolMachine",
    "PopupAction",
    "PopupMenu",
    "ReplaceMarkers",
    "ScreenPoint",
    "ScreenRect",
    "ToolRegistry",
    "WidgetState",
    "load_image",
]

"""Marker Pin Viewer - Live-synchronized marker pins on a 3D map.

Renders geo-located marker pins over a pydeck viewport, lets users drop new
pins with a single-shot placement tool, and keeps the pins in step with a
real-time row feed.

Modules:
    core: Collaborators (coordinate conversion, DEM, geocoder, live feed)
    model: Data structures (SpatialPoint, SpatialMarker, PinImage, FeedRow)
    ui: Viewport, marker decorator, placement tool, popup, live sync, widget

Example:
    from markerpin_viewer.core import CoordinateConverter, InMemoryLiveFeed
    from markerpin_viewer.ui import DeckViewport, MarkerPinWidget
"""

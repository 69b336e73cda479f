"""MarkerPinDecorator - Owns the marker set and renders/pick-tests it every frame.

The marker set is the one piece of shared mutable state in the subsystem.
It is only ever changed through submit(), which both Live Sync (wholesale
replace) and the Placement Tool (single append) go through:

    ReplaceMarkers(markers)  - replace the whole set
    AppendMarker(marker)     - append one marker, existing order untouched

Each mutation builds a new tuple and swaps it in with a single assignment, so
a render or pick pass always sees either the old or the new set, never a mix.

Rendering:
- Positions are world space (SpatialPoint) and re-projected every pass
- The pin tip sits on the projected position, the image extends upwards
- One pickable IconLayer in METER_OFFSETS around the project origin
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pydeck as pdk

from markerpin_viewer.constants import ClickConfig
from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.model.spatial_marker import SpatialMarker
from markerpin_viewer.model.spatial_point import SpatialPoint
from markerpin_viewer.ui.viewport import Decorator, DrawnPin, RenderFrame, ScreenPoint, ScreenRect

if TYPE_CHECKING:
    from markerpin_viewer.ui.viewport import DeckViewport

logger = logging.getLogger(__name__)


# =============================================================================
# MUTATIONS
# =============================================================================


@dataclass(frozen=True)
class ReplaceMarkers:
    """Replace the whole marker set."""

    markers: tuple[SpatialMarker, ...]


@dataclass(frozen=True)
class AppendMarker:
    """Append one marker to the end of the set."""

    marker: SpatialMarker


MarkerMutation = ReplaceMarkers | AppendMarker


def hit_rect(marker: SpatialMarker, anchor: ScreenPoint) -> ScreenRect:
    """Screen rectangle covered by a pin whose tip is drawn at anchor."""
    half_width = marker.image.width / 2
    return ScreenRect(
        left=anchor.x - half_width,
        top=anchor.y - marker.image.height,
        right=anchor.x + half_width,
        bottom=anchor.y,
    )


# =============================================================================
# DECORATOR
# =============================================================================


class MarkerPinDecorator(Decorator):
    """Renderable, pickable set of marker pins.

    Example:
        decorator = MarkerPinDecorator()
        decorator.set_markers(points=[SpatialPoint(x=0, y=0)], image=pin)
        viewport.add_decorator(decorator)
    """

    def __init__(self) -> None:
        self._markers: tuple[SpatialMarker, ...] = ()
        self._revision = 0

    @property
    def markers(self) -> tuple[SpatialMarker, ...]:
        """Current marker set in insertion order."""
        return self._markers

    @property
    def revision(self) -> int:
        """Incremented on every applied mutation."""
        return self._revision

    def __len__(self) -> int:
        return len(self._markers)

    def __repr__(self) -> str:
        return f"MarkerPinDecorator(markers={len(self._markers)}, revision={self._revision})"

    # =========================================================================
    # MUTATION
    # =========================================================================

    def submit(self, mutation: MarkerMutation) -> None:
        """Apply a mutation. The only place the marker set changes."""
        if isinstance(mutation, ReplaceMarkers):
            self._markers = tuple(mutation.markers)
        elif isinstance(mutation, AppendMarker):
            self._markers = self._markers + (mutation.marker,)
        else:
            raise TypeError(f"Unknown marker mutation: {mutation!r}")
        self._revision += 1
        logger.debug(f"[DECORATOR] {type(mutation).__name__} -> {len(self._markers)} markers")

    def set_markers(self, points: Iterable[SpatialPoint], image: PinImage | None) -> None:
        """Replace the marker set with one marker per point, all sharing image.

        No-op if image is None.
        """
        if image is None:
            logger.debug("[DECORATOR] set_markers ignored: no image")
            return
        self.submit(ReplaceMarkers(markers=tuple(SpatialMarker(position=p, image=image) for p in points)))

    def add_point(self, position: SpatialPoint, image: PinImage | None) -> None:
        """Append a single marker. No-op if image is None."""
        if image is None:
            logger.debug(f"[DECORATOR] add_point at {position} ignored: no image")
            return
        self.submit(AppendMarker(marker=SpatialMarker(position=position, image=image)))

    # =========================================================================
    # RENDER / PICK
    # =========================================================================

    def render(self, frame: RenderFrame) -> None:
        """Project every marker and add the pin layer to the frame."""
        markers = self._markers
        viewport = frame.viewport
        data = []
        for index, marker in enumerate(markers):
            anchor = viewport.world_to_screen(marker.position)
            if anchor is None:
                continue  # Behind the camera
            frame.pins.append(DrawnPin(marker=marker, anchor=anchor, rect=hit_rect(marker, anchor)))
            data.append(
                {
                    "type": ClickConfig.TYPE_MARKER_PIN,
                    "index": index,
                    "position": marker.position.as_list(),
                    "icon_data": marker.image.icon_data(),
                    "size": marker.image.height,
                    "name": f"Marker {index + 1}",
                }
            )
        if not data:
            return

        origin = viewport.converter.origin
        frame.layers.append(
            pdk.Layer(
                "IconLayer",
                id=ClickConfig.LAYER_ID_MARKERS,
                data=data,
                get_position="position",
                get_icon="icon_data",
                get_size="size",
                size_units="pixels",
                coordinate_system=2,  # METER_OFFSETS
                coordinate_origin=[origin.lon, origin.lat],
                pickable=True,
            )
        )

    def pick_test(self, screen_point: ScreenPoint, viewport: "DeckViewport") -> SpatialMarker | None:
        """Topmost (last inserted) marker whose pin contains the screen point."""
        for marker in reversed(self._markers):
            anchor = viewport.world_to_screen(marker.position)
            if anchor is not None and hit_rect(marker, anchor).contains(screen_point):
                return marker
        return None

"""SpatialMarker - A pin placed at a point in local spatial coordinates.

Identity is positional: two markers at the same position are equal regardless
of their image. Many markers share the same PinImage.
"""

from dataclasses import dataclass, field

from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.model.spatial_point import SpatialPoint


@dataclass(frozen=True)
class SpatialMarker:
    """A marker pin: a world position plus a shared presentation image.

    Attributes:
        position: Location in local spatial coordinates (immutable)
        image: Pin image drawn at the position (excluded from equality)
    """

    position: SpatialPoint
    image: PinImage = field(compare=False)

    def __post_init__(self) -> None:
        """Validate data after initialization."""
        if self.image is None:
            raise ValueError(f"SpatialMarker at {self.position} requires an image")

    def __repr__(self) -> str:
        return f"SpatialMarker({self.position}, image={self.image.name})"

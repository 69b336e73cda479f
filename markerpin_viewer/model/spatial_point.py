"""SpatialPoint - A position in the viewport's local spatial coordinates.

Local spatial coordinates are meters relative to the project origin:
- x: east
- y: north
- z: up

This is the frame markers live in. It is distinct from geographic
longitude/latitude/height, which Cartographic represents.
"""

from dataclasses import dataclass
from math import sqrt


@dataclass(frozen=True)
class SpatialPoint:
    """A point in local spatial coordinates (meters).

    Attributes:
        x: Meters east of the project origin
        y: Meters north of the project origin
        z: Meters above the project origin

    Example:
        point = SpatialPoint(x=120.0, y=-45.5, z=0.0)
    """

    x: float
    y: float
    z: float = 0.0

    def distance_to(self, other: "SpatialPoint") -> float:
        """Euclidean distance to another point in meters."""
        return sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2)

    def as_list(self) -> list[float]:
        """Return [x, y, z] - Pydeck METER_OFFSETS position order."""
        return [self.x, self.y, self.z]

    def __repr__(self) -> str:
        return f"SpatialPoint(x={self.x:.2f}, y={self.y:.2f}, z={self.z:.2f})"

"""FeedRow - One row of the live feed describing a marker location.

Rows never carry a spatial position; they are converted to SpatialPoint by
the Coordinate Converter. A row maps to exactly one marker.
"""

import math
from dataclasses import dataclass
from typing import Any

# Accepted payload field names, first match wins
LON_FIELDS = ("long", "lon", "longitude")
LAT_FIELDS = ("lat", "latitude")
KEY_FIELDS = ("id",)


def _first_present(data: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if data.get(name) is not None:
            return data[name]
    return None


def _as_coordinate(value: Any, name: str, limit: float) -> float:
    if value is None:
        raise ValueError(f"Feed row missing {name}")
    if isinstance(value, bool):
        raise ValueError(f"Feed row {name} is not numeric: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Feed row {name} is not numeric: {value!r}") from e
    if math.isnan(number) or abs(number) > limit:
        raise ValueError(f"Feed row {name} out of range: {number}")
    return number


@dataclass(frozen=True)
class FeedRow:
    """A marker location received from the live feed.

    Attributes:
        lon: Longitude in decimal degrees
        lat: Latitude in decimal degrees
        height: Height in meters (ground level unless the row says otherwise)
        key: Stable row key used for deduplication, None if the row has none
    """

    lon: float
    lat: float
    height: float = 0.0
    key: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedRow":
        """Parse a feed payload.

        Args:
            data: Row payload, e.g. {"id": 7, "long": -1.2, "lat": 52.7}

        Returns:
            Parsed FeedRow at ground level.

        Raises:
            ValueError: If the row is not a dict or lon/lat are missing or invalid.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Feed row is not a mapping: {data!r}")

        lon = _as_coordinate(_first_present(data, LON_FIELDS), name="longitude", limit=180.0)
        lat = _as_coordinate(_first_present(data, LAT_FIELDS), name="latitude", limit=90.0)
        key = _first_present(data, KEY_FIELDS)
        return cls(lon=lon, lat=lat, key=None if key is None else str(key))

"""Geocoder - place-name lookup and terrain elevation refinement.

Resolves a free-text place name ("Loughborough", "Old Faithful", an address)
to a location on the Earth's surface using the OpenStreetMap Nominatim
search API, and refines heights from the viewport's elevation source.

Not-found is a normal empty result (None), never an error.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import requests

from markerpin_viewer.constants import GeocoderConfig
from markerpin_viewer.model.geo_location import Cartographic, GeoLocation

if TYPE_CHECKING:
    from markerpin_viewer.ui.viewport import DeckViewport

logger = logging.getLogger(__name__)


def _parse_bounding_box(raw: Any) -> tuple[float, float, float, float] | None:
    """Nominatim returns [south, north, west, east] as strings."""
    if not isinstance(raw, list) or len(raw) != 4:
        return None
    try:
        south, north, west, east = (float(v) for v in raw)
    except (TypeError, ValueError):
        return None
    return (south, north, west, east)


class Geocoder:
    """Place-name lookup against a Nominatim-compatible search endpoint.

    Example:
        geocoder = Geocoder()
        location = await geocoder.lookup("Loughborough")
    """

    def __init__(
        self,
        search_url: str = GeocoderConfig.SEARCH_URL,
        session: requests.Session | None = None,
    ) -> None:
        self.search_url = search_url
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", GeocoderConfig.USER_AGENT)

    def _search(self, text: str) -> list[dict[str, Any]]:
        response = self._session.get(
            self.search_url,
            params={"q": text, "format": "json", "limit": 1},
            timeout=GeocoderConfig.HTTP_TIMEOUT_S,
        )
        response.raise_for_status()
        return response.json()

    async def lookup(self, text: str) -> GeoLocation | None:
        """Look up a place name.

        Args:
            text: Free-text place name or address

        Returns:
            GeoLocation at ground height 0, or None if nothing matched.

        Raises:
            requests.RequestException: If the lookup service cannot be reached.
        """
        query = text.strip()
        if not query:
            return None

        results = await asyncio.to_thread(self._search, query)
        if not results:
            logger.info(f"[GEOCODE] No match for '{query}'")
            return None

        best = results[0]
        try:
            center = Cartographic(lon=float(best["lon"]), lat=float(best["lat"]), height=0.0)
        except (KeyError, TypeError, ValueError):
            logger.warning(f"[GEOCODE] Unusable result for '{query}': {best}")
            return None

        location = GeoLocation(
            center=center,
            name=best.get("display_name", query),
            bounding_box=_parse_bounding_box(best.get("boundingbox")),
        )
        logger.info(f"[GEOCODE] '{query}' -> {location.center}")
        return location

    async def elevation_at(self, viewport: "DeckViewport", center: Cartographic) -> float | None:
        """Best-effort terrain elevation below a geographic point.

        Args:
            viewport: Viewport whose elevation source is queried
            center: Geographic point to sample

        Returns:
            Elevation in meters, or None if no elevation data is available there.
        """
        source = viewport.elevation_source
        if source is None:
            return None
        if not source.is_available:
            logger.info(f"[GEOCODE] Elevation source missing at {source.dem_path}")
            return None
        return await asyncio.to_thread(source.get_elevation, center.lon, center.lat)

"""GlobalDisplayApi - "Travel to" a named place with a camera flyover."""

import logging
from typing import TYPE_CHECKING

from markerpin_viewer.core.geocoder import Geocoder

if TYPE_CHECKING:
    from markerpin_viewer.ui.viewport import DeckViewport

logger = logging.getLogger(__name__)


class GlobalDisplayApi:
    """Resolves destinations and flies the viewport camera to them."""

    def __init__(self, geocoder: Geocoder | None = None) -> None:
        self.geocoder = geocoder or Geocoder()

    async def travel_to(self, viewport: "DeckViewport", destination: str) -> bool:
        """Fly the camera to a named destination.

        The height is refined from terrain elevation when available, otherwise
        the geocoder's ground height is used.

        Args:
            viewport: Viewport whose camera moves
            destination: Free-text place name

        Returns:
            True if the camera flew to the destination, False if it could not be
            resolved (the camera is left untouched).
        """
        location = await self.geocoder.lookup(destination)
        if location is None:
            logger.info(f"[TRAVEL] Destination '{destination}' not found")
            return False

        elevation = await self.geocoder.elevation_at(viewport, location.center)
        if elevation is not None:
            location = location.with_height(elevation)

        await viewport.animate_flyover_to(location)
        return True

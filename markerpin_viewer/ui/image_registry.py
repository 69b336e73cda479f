"""Pin image loading and the widget-owned image registry.

load_image() resolves an identifier to a PinImage:
- "http://..." / "https://..." -> fetched with requests (in a worker thread)
- anything else -> file name inside the packaged assets directory

ImageRegistry holds the images a widget managed to preload. It is owned by
one widget and cleared on unmount; there is no process-wide image cache.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import requests

from markerpin_viewer.constants import ASSETS_DIR, PinConfig
from markerpin_viewer.model.pin_image import PinImage

logger = logging.getLogger(__name__)

ImageLoader = Callable[[str], Awaitable[PinImage]]


def _mime_type(name: str) -> str:
    suffix = PurePosixPath(name).suffix.lower()
    if suffix not in PinConfig.MIME_TYPES:
        raise ValueError(f"Unsupported pin image type '{suffix}' for {name}")
    return PinConfig.MIME_TYPES[suffix]


def _fetch(url: str) -> bytes:
    response = requests.get(url, timeout=PinConfig.HTTP_TIMEOUT_S)
    response.raise_for_status()
    return response.content


async def load_image(identifier: str, assets_dir: Path = ASSETS_DIR) -> PinImage:
    """Load a pin image by asset file name or URL.

    Args:
        identifier: Asset file name (e.g., "pin_celery.svg") or http(s) URL
        assets_dir: Directory holding packaged pin images

    Returns:
        Loaded PinImage at the configured pin size.

    Raises:
        ValueError: If the image type is not supported.
        FileNotFoundError: If the asset does not exist.
        requests.RequestException: If a URL cannot be fetched.
    """
    if urlparse(identifier).scheme in ("http", "https"):
        mime_type = _mime_type(urlparse(identifier).path)
        data = await asyncio.to_thread(_fetch, identifier)
    else:
        mime_type = _mime_type(identifier)
        data = await asyncio.to_thread((assets_dir / identifier).read_bytes)

    return PinImage(
        name=identifier,
        data=data,
        mime_type=mime_type,
        width=PinConfig.PIN_WIDTH_PX,
        height=PinConfig.PIN_HEIGHT_PX,
    )


class ImageRegistry:
    """Loaded pin images by identifier.

    Example:
        registry = ImageRegistry()
        await registry.preload(PinConfig.PIN_SELECTIONS)
        image = registry.get(PinConfig.GOOGLE_PIN)
    """

    def __init__(self, loader: ImageLoader = load_image) -> None:
        self._loader = loader
        self._images: dict[str, PinImage] = {}

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._images

    def __len__(self) -> int:
        return len(self._images)

    @property
    def names(self) -> list[str]:
        return list(self._images)

    def get(self, identifier: str) -> PinImage | None:
        """Loaded image, or None if it was never loaded or failed to load."""
        return self._images.get(identifier)

    async def preload(self, identifiers: Iterable[str]) -> list[str]:
        """Load images concurrently; failed loads are logged and left absent.

        Returns:
            Identifiers that loaded successfully.
        """
        identifiers = list(identifiers)
        results = await asyncio.gather(*(self._loader(i) for i in identifiers), return_exceptions=True)

        loaded = []
        for identifier, result in zip(identifiers, results):
            if isinstance(result, Exception):
                logger.warning(f"[IMAGES] Failed to load '{identifier}': {result}")
            elif isinstance(result, BaseException):
                # Cancellation is not a load failure
                raise result
            else:
                self._images[identifier] = result
                loaded.append(identifier)
        logger.info(f"[IMAGES] Loaded {len(loaded)}/{len(identifiers)} pin images")
        return loaded

    def clear(self) -> None:
        self._images.clear()

"""PinImage - A loaded pin image shared by many markers."""

import base64
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PinImage:
    """A pin image loaded from the package assets or a URL.

    Markers reference a PinImage, they never own or copy it.

    Attributes:
        name: Identifier the image was loaded from (e.g., "pin_celery.svg")
        data: Raw image bytes
        mime_type: Image MIME type (e.g., "image/svg+xml")
        width: Drawn width in pixels
        height: Drawn height in pixels
    """

    name: str
    data: bytes = field(repr=False)
    mime_type: str
    width: int
    height: int

    @property
    def data_url(self) -> str:
        """Inline data URL usable as a deck.gl icon url."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def icon_data(self) -> dict[str, object]:
        """Icon definition for a Pydeck IconLayer (pin tip at the bottom centre)."""
        return {
            "url": self.data_url,
            "width": self.width,
            "height": self.height,
            "anchorY": self.height,
        }

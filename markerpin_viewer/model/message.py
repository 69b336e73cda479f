"""Message - User-facing messages for the marker pin viewer UI.

Architecture:
- SIDEBAR: ONE blue info message with instructions for the marker options
- UNDER MAP: yellow instruction while the placement tool is armed, red feed errors
- TOASTS: transient feedback (destination not found, image missing)

Design Principles:
- Maximum ONE inline message per panel location at any time
- Messages know their own display level; callers decide when to display
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class MessageLevel(Enum):
    """Display level for UI messages."""

    INFO = "info"  # Blue - context/status/loading
    WARNING = "warning"  # Yellow - action instructions
    ERROR = "error"  # Red - failures


@dataclass(frozen=True)
class Message(ABC):
    """Abstract base class for user-facing messages displayed inline.

    These messages are rendered as st.info/st.warning/st.error blocks that persist
    in the UI until replaced.
    """

    @property
    @abstractmethod
    def message(self) -> str:
        """Formatted message for display in Streamlit."""
        raise NotImplementedError

    @property
    @abstractmethod
    def level(self) -> MessageLevel:
        """Display level."""
        raise NotImplementedError

    def display(self) -> None:
        """Render this message using the appropriate Streamlit function."""
        import streamlit as st

        render_fn = {
            MessageLevel.INFO: st.info,
            MessageLevel.WARNING: st.warning,
            MessageLevel.ERROR: st.error,
        }[self.level]
        render_fn(self.message)


@dataclass(frozen=True)
class ToastMessage(ABC):
    """Abstract base class for transient popup notifications.

    Good for: failed lookups, quick confirmations
    Bad for: instructions, status displays
    """

    @property
    @abstractmethod
    def message(self) -> str:
        """Formatted message for the toast notification."""
        raise NotImplementedError

    @property
    @abstractmethod
    def icon(self) -> str:
        """Icon to show in toast. Override in subclasses."""
        raise NotImplementedError

    def display(self) -> None:
        """Show this message as a toast notification and log it."""
        import streamlit as st

        logger = logging.getLogger(__name__)
        logger.info(f"[TOAST] {self.icon} {self.message}")
        st.toast(f"{self.icon} {self.message}")


# =============================================================================
# TOAST MESSAGES
# =============================================================================


@dataclass(frozen=True)
class DestinationNotFoundMessage(ToastMessage):
    """Travel-to lookup found no place with that name."""

    destination: str

    @property
    def icon(self) -> str:
        return "🌍"

    @property
    def message(self) -> str:
        return f"Destination Not Found — no place matches '{self.destination}'"


@dataclass(frozen=True)
class MarkerPlacedMessage(ToastMessage):
    """A marker was placed with the placement tool."""

    marker_count: int

    @property
    def icon(self) -> str:
        return "📍"

    @property
    def message(self) -> str:
        return f"Marker Placed — {self.marker_count} markers on the map"


@dataclass(frozen=True)
class PinUnavailableMessage(ToastMessage):
    """Selected pin image failed to load."""

    pin_name: str

    @property
    def icon(self) -> str:
        return "🖼️"

    @property
    def message(self) -> str:
        return f"Pin Unavailable — image '{self.pin_name}' could not be loaded"


# =============================================================================
# INLINE MESSAGES
# =============================================================================


@dataclass(frozen=True)
class MarkerInstructionsMessage(Message):
    """SIDEBAR: How to use the marker options."""

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.INFO

    @property
    def message(self) -> str:
        return "Use the options to control the marker pins. Click a marker to open a menu of options."


@dataclass(frozen=True)
class PlacementArmedMessage(Message):
    """UNDER MAP: Placement tool is waiting for a click."""

    pin_display_name: str

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.WARNING

    @property
    def message(self) -> str:
        return f"**Place Marker** — click the map to drop a {self.pin_display_name}."


@dataclass(frozen=True)
class FeedErrorMessage(Message):
    """UNDER MAP: Live feed could not be read or subscribed."""

    error: str

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.ERROR

    @property
    def message(self) -> str:
        return f"**Live Feed Unavailable** — {self.error}"

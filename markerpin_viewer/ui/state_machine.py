"""State machines for the marker pin widget.

Uses python-statemachine (model pattern) for the two pieces of real state:

PlacementToolMachine - the single-shot placement input mode
    States:
        INACTIVE: Not intercepting clicks
        ARMED: Waiting for one primary-button click
    Transitions:
        INACTIVE -> ARMED: arm (tool installed as the active tool)
        ARMED -> INACTIVE: place (click converted and marker appended)
        ARMED -> INACTIVE: cancel (tool switch or explicit cancel, nothing appended)

DecoratorLifecycleMachine - whether the marker decorator is registered
    States:
        DISABLED: Not part of the render/pick pipeline
        ENABLED: Registered with the viewport
    Transitions:
        enable: DISABLED -> ENABLED, ENABLED -> ENABLED (no-op)
        disable: ENABLED -> DISABLED, DISABLED -> DISABLED (no-op)

Side effects live in entry hooks; transitions are logged by TransitionLogger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

if TYPE_CHECKING:
    from markerpin_viewer.ui.decorator import MarkerPinDecorator
    from markerpin_viewer.ui.viewport import DeckViewport

logger = logging.getLogger(__name__)


class TransitionLogger:
    """Listener that logs every state transition.

    Usage:
        sm.add_listener(TransitionLogger(name="PlaceMarker"))
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def after_transition(self, event: str, source: State, target: State) -> None:
        logger.info(f"[STATE] {self.name}: {source.name} --({event})--> {target.name}")


class _MachineHelpers:
    """Shared helpers mixed into both machines."""

    def get_state_name(self) -> str:
        """Get current state name for display."""
        return self.current_state.name

    def try_transition(self, event: str, **kwargs: Any) -> bool:
        """Attempt a transition, returning success/failure.

        Args:
            event: Transition event name
            **kwargs: Arguments for transition

        Returns:
            True if transition succeeded, False otherwise.
        """
        try:
            self.send(event, **kwargs)
            return True
        except TransitionNotAllowed:
            logger.warning(f"Transition '{event}' not allowed from {self.get_state_name()}")
            return False


# =============================================================================
# PLACEMENT TOOL
# =============================================================================


@dataclass
class PlacementToolContext:
    """Counters for the placement tool (no marker data)."""

    activations: int = 0
    placements: int = 0
    cancellations: int = 0


class PlacementToolMachine(_MachineHelpers, StateMachine):
    """Inactive -> Armed -> Inactive, one placement per activation."""

    inactive = State("Inactive", initial=True)
    armed = State("Armed")

    arm = inactive.to(armed)
    place = armed.to(inactive)
    cancel = armed.to(inactive)

    def __init__(self, context: PlacementToolContext | None = None, start_value: str | None = None) -> None:
        """Initialize state machine with model pattern.

        Args:
            context: Shared context/model (creates new if None)
            start_value: Optional initial state value
        """
        super().__init__(model=context or PlacementToolContext(), start_value=start_value)

    @property
    def context(self) -> PlacementToolContext:
        return self.model

    @property
    def is_armed(self) -> bool:
        return self.armed.is_active

    def before_arm(self) -> None:
        self.context.activations += 1

    def before_place(self) -> None:
        self.context.placements += 1

    def before_cancel(self) -> None:
        self.context.cancellations += 1

    def __repr__(self) -> str:
        return f"PlacementToolMachine(state={self.get_state_name()}, model={self.context!r})"

    @staticmethod
    def create(add_logger: bool = True) -> "PlacementToolMachine":
        """Factory method to create the machine with an optional transition logger."""
        sm = PlacementToolMachine()
        if add_logger:
            sm.add_listener(TransitionLogger(name="PlaceMarker"))
        return sm


# =============================================================================
# DECORATOR LIFECYCLE
# =============================================================================


@dataclass
class DecoratorLifecycleContext:
    """The decorator and the viewport it registers with."""

    viewport: DeckViewport
    decorator: MarkerPinDecorator


class DecoratorLifecycleMachine(_MachineHelpers, StateMachine):
    """Disabled <-> Enabled; repeating either event is a no-op."""

    disabled = State("Disabled", initial=True)
    enabled = State("Enabled")

    enable = disabled.to(enabled) | enabled.to.itself(internal=True)
    disable = enabled.to(disabled) | disabled.to.itself(internal=True)

    def __init__(self, context: DecoratorLifecycleContext, start_value: str | None = None) -> None:
        super().__init__(model=context, start_value=start_value)

    @property
    def context(self) -> DecoratorLifecycleContext:
        return self.model

    @property
    def is_enabled(self) -> bool:
        return self.enabled.is_active

    def on_enter_enabled(self) -> None:
        """Hook: register the decorator with the render/pick pipeline."""
        self.context.viewport.add_decorator(self.context.decorator)

    def on_enter_disabled(self) -> None:
        """Hook: remove the decorator from the pipeline (also runs at startup)."""
        self.context.viewport.drop_decorator(self.context.decorator)

    def __repr__(self) -> str:
        return f"DecoratorLifecycleMachine(state={self.get_state_name()})"

    @staticmethod
    def create(
        viewport: DeckViewport, decorator: MarkerPinDecorator, add_logger: bool = True
    ) -> "DecoratorLifecycleMachine":
        """Factory method to create the machine bound to a viewport and decorator."""
        sm = DecoratorLifecycleMachine(context=DecoratorLifecycleContext(viewport=viewport, decorator=decorator))
        if add_logger:
            sm.add_listener(TransitionLogger(name="MarkerDecorator"))
        return sm

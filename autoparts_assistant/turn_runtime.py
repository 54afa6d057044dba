from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Optional, Protocol

RECEIVED = "RECEIVED"
CLASSIFYING = "CLASSIFYING"
SEARCHING = "SEARCHING"
REPLYING_DIRECT = "REPLYING_DIRECT"
SUMMARIZING = "SUMMARIZING"
DELIVERED = "DELIVERED"
FAILED = "FAILED"

TERMINAL_STATES = frozenset({DELIVERED, FAILED})

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    RECEIVED: frozenset({CLASSIFYING, FAILED}),
    CLASSIFYING: frozenset({SEARCHING, REPLYING_DIRECT, FAILED}),
    SEARCHING: frozenset({SUMMARIZING, FAILED}),
    REPLYING_DIRECT: frozenset({DELIVERED, FAILED}),
    SUMMARIZING: frozenset({DELIVERED, FAILED}),
    DELIVERED: frozenset(),
    FAILED: frozenset(),
}


class IllegalTransition(RuntimeError):
    pass


class StatefulContext(Protocol):
    state: str

    def transition(self, state: str) -> None: ...


def check_transition(current: str, target: str) -> None:
    if target not in TRANSITIONS.get(current, frozenset()):
        raise IllegalTransition(f"{current} -> {target}")


@dataclass
class TurnStep:
    """One state of the turn machine and the handler that runs while in it."""
    name: str
    state: str
    fn: Callable[[StatefulContext], None]
    skip_if: Optional[Callable[[StatefulContext], bool]] = None


class TurnRunner:
    """Runs turn steps in order, moving the context through the state machine."""

    def __init__(self, steps: list[TurnStep]) -> None:
        self._steps = steps

    def run(self, context: StatefulContext) -> None:
        """Purpose: Execute steps in order, entering each step's state before its handler.
        Inputs/Outputs: Input is a mutable context with ``state``/``transition``; no return.
        Failure Modes: Exceptions in handlers and illegal transitions propagate to the
            caller, which owns the move to FAILED.
        """
        for step in self._steps:
            if context.state in TERMINAL_STATES:
                break
            if step.skip_if and step.skip_if(context):
                continue
            context.transition(step.state)
            step.fn(context)

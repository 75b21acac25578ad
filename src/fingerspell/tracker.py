"""Debounce per-frame letters into committed transcript characters.

A letter must be observed on consecutive frames before it is typed. After a
commit the run length is pinned to 1 rather than 0, so a sign that keeps
being held types again once the run climbs back to the threshold
(every ``threshold - 1`` frames).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from fingerspell.classifier import Symbol

logger = logging.getLogger("fingerspell.tracker")

STABILITY_THRESHOLD = 20  # frames a sign must be held before it is typed


class TrackerStatus(Enum):
    NO_HAND = "no_hand"
    HOLDING = "holding"
    CHANGED = "changed"
    COMMITTED = "committed"


@dataclass(frozen=True)
class ClassifierState:
    """Debounce state for one session."""
    last_symbol: Symbol = Symbol.UNKNOWN
    run_length: int = 0
    transcript: str = ""


@dataclass(frozen=True)
class TrackerUpdate:
    """Outcome of feeding one observation to the tracker."""
    status: TrackerStatus
    observed: Symbol
    committed: Optional[Symbol]
    run_length: int
    transcript: str


def advance(
    state: ClassifierState,
    observed: Symbol,
    threshold: int = STABILITY_THRESHOLD,
) -> tuple[ClassifierState, TrackerUpdate]:
    """Apply one observation to ``state`` and return the new state."""
    committed = None

    if observed is Symbol.UNKNOWN:
        new_state = replace(state, last_symbol=Symbol.UNKNOWN, run_length=0)
        status = TrackerStatus.NO_HAND

    elif observed is state.last_symbol:
        run_length = state.run_length + 1
        if run_length >= threshold:
            new_state = ClassifierState(
                last_symbol=observed,
                run_length=1,
                transcript=state.transcript + observed.value,
            )
            status = TrackerStatus.COMMITTED
            committed = observed
        else:
            new_state = replace(state, run_length=run_length)
            status = TrackerStatus.HOLDING

    else:
        new_state = replace(state, last_symbol=observed, run_length=0)
        status = TrackerStatus.CHANGED

    update = TrackerUpdate(
        status=status,
        observed=observed,
        committed=committed,
        run_length=new_state.run_length,
        transcript=new_state.transcript,
    )
    return new_state, update


class StabilityTracker:
    """Owns the debounce state of a session and applies observations in order.

    Not thread-safe: callers delivering frames from several sources must
    serialize calls to ``update`` and ``reset``.
    """

    def __init__(self, threshold: int = STABILITY_THRESHOLD, state: Optional[ClassifierState] = None):
        if threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {threshold}")
        self.threshold = threshold
        self._state = state or ClassifierState()

    @property
    def state(self) -> ClassifierState:
        return self._state

    @property
    def transcript(self) -> str:
        return self._state.transcript

    @property
    def last_symbol(self) -> Symbol:
        return self._state.last_symbol

    @property
    def run_length(self) -> int:
        return self._state.run_length

    def update(self, observed: Symbol) -> TrackerUpdate:
        """Feed the symbol classified for the next frame."""
        self._state, update = advance(self._state, observed, self.threshold)

        if update.status is TrackerStatus.COMMITTED:
            logger.info("Committed %s (transcript: %r)", observed.value, update.transcript)
        elif update.status is TrackerStatus.CHANGED:
            logger.debug("Sign changed to %s", observed.value)

        return update

    def reset(self) -> ClassifierState:
        """Clear the transcript and debounce state."""
        self._state = ClassifierState()
        logger.info("Transcript cleared")
        return self._state

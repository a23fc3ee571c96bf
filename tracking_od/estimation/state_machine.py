"""Batch estimation state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from tracking_od.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EstimationState(Enum):
    INITIALIZE = "initialize"
    PROPAGATE_AND_SIMULATE = "propagate_and_simulate"
    LINEARIZE = "linearize"
    SOLVE = "solve"
    ITERATE = "iterate"
    CONVERGED = "converged"
    DEGENERATE = "degenerate"
    STOPPED = "stopped"
    MAX_ITERATIONS = "max_iterations"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = {
    EstimationState.CONVERGED,
    EstimationState.DEGENERATE,
    EstimationState.STOPPED,
    EstimationState.MAX_ITERATIONS,
}

_ALLOWED = {
    EstimationState.INITIALIZE: {EstimationState.PROPAGATE_AND_SIMULATE, EstimationState.DEGENERATE},
    EstimationState.PROPAGATE_AND_SIMULATE: {EstimationState.LINEARIZE},
    EstimationState.LINEARIZE: {EstimationState.SOLVE, EstimationState.DEGENERATE},
    EstimationState.SOLVE: {
        EstimationState.ITERATE,
        EstimationState.CONVERGED,
        EstimationState.DEGENERATE,
        EstimationState.STOPPED,
        EstimationState.MAX_ITERATIONS,
    },
    EstimationState.ITERATE: {EstimationState.PROPAGATE_AND_SIMULATE},
}


@dataclass
class _StateTracker:
    state: EstimationState
    iteration: int = 0
    history: list[tuple[int, EstimationState]] = field(default_factory=list)


class EstimationStateMachine:
    """Tracks the phase of one estimation run and rejects illegal transitions."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._tracker = _StateTracker(state=EstimationState.INITIALIZE)
        self._tracker.history.append((0, EstimationState.INITIALIZE))

    @property
    def state(self) -> EstimationState:
        return self._tracker.state

    @property
    def iteration(self) -> int:
        return self._tracker.iteration

    @property
    def history(self) -> list[tuple[int, EstimationState]]:
        return list(self._tracker.history)

    def advance(self, new_state: EstimationState) -> EstimationState:
        current = self._tracker.state
        if new_state not in _ALLOWED.get(current, set()):
            raise RuntimeError(f"Illegal estimation transition {current.value} -> {new_state.value}")
        if new_state == EstimationState.PROPAGATE_AND_SIMULATE:
            self._tracker.iteration += 1
        self._tracker.state = new_state
        self._tracker.history.append((self._tracker.iteration, new_state))
        LOGGER.debug("iteration %d: %s -> %s", self._tracker.iteration, current.value, new_state.value)
        return new_state

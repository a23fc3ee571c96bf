"""Observation models: observable value from the light-time solution of each leg.

A single ``ObservationModel`` serves every observable type. The type selects
one of a small set of strategy functions; bias handling, anchor checks and
link-end bookkeeping live in the model itself.
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from tracking_od.config import LightTimeConfig
from tracking_od.errors import EPOCH_ERRORS, InvalidLinkEndRole, Outcome
from tracking_od.light_time.corrections import LightTimeCorrection
from tracking_od.light_time.solver import LightTimeCalculator
from tracking_od.models import LinkEndData, LinkEndId, LinkEnds, LinkEndType, ObservableType, StateProvider
from tracking_od.observations.biases import ObservationBias
from tracking_od.utils.logging import get_logger

LOGGER = get_logger(__name__)

Evaluation = tuple[np.ndarray, LinkEndData]


class ObservationModel:
    """Computes one observable type for one set of link ends.

    Args:
        observable_type: Kind of observable to compute.
        link_ends: Signal path, transmitter first.
        state_provider: Source of link-end states (usually an ``Environment``).
        corrections: Light-time corrections applied on every leg.
        leg_corrections: Per-leg corrections; replaces ``corrections`` when given.
        bias: Optional bias added to the ideal observable.
        retransmission_delays: Fixed delay (s) at each retransmitter, in path order.
        integration_time_s: Count interval of differenced-range observables.
        config: Light-time iteration settings shared by all legs.
    """

    def __init__(
        self,
        observable_type: ObservableType,
        link_ends: LinkEnds,
        state_provider: StateProvider,
        *,
        corrections: Sequence[LightTimeCorrection] = (),
        leg_corrections: Sequence[Sequence[LightTimeCorrection]] | None = None,
        bias: ObservationBias | None = None,
        retransmission_delays: Sequence[float] = (),
        integration_time_s: float = 60.0,
        config: LightTimeConfig | None = None,
    ) -> None:
        observable_type.check_link_ends(link_ends)
        self.observable_type = observable_type
        self.link_ends = link_ends
        self.state_provider = state_provider
        self.bias = bias
        self.config = config or LightTimeConfig()

        n_legs = link_ends.n_legs
        if leg_corrections is None:
            leg_corrections = [list(corrections) for _ in range(n_legs)]
        if len(leg_corrections) != n_legs:
            raise ValueError(f"Expected corrections for {n_legs} legs, got {len(leg_corrections)}")
        self.leg_corrections = [list(leg) for leg in leg_corrections]

        delays = list(retransmission_delays) or [0.0] * (n_legs - 1)
        if len(delays) != n_legs - 1:
            raise ValueError(f"Expected {n_legs - 1} retransmission delays, got {len(delays)}")
        self.retransmission_delays = np.array(delays, dtype=float)

        if observable_type is ObservableType.DIFFERENCED_RANGE and integration_time_s <= 0.0:
            raise ValueError("integration_time_s must be positive.")
        self.integration_time_s = float(integration_time_s)

        self.calculators = [
            LightTimeCalculator(state_provider, tx, rx, corrections=legs, config=self.config)
            for (tx, rx), legs in zip(link_ends.legs(), self.leg_corrections)
        ]

    @property
    def size(self) -> int:
        return self.observable_type.size

    @property
    def signal_speed_mps(self) -> float:
        return self.config.signal_speed_mps

    def check_anchor(self, anchor: LinkEndType) -> None:
        if anchor not in self.link_ends:
            raise InvalidLinkEndRole(f"Anchor {anchor.name} is not part of {self.link_ends}")

    def entry_link_ends(self) -> list[LinkEndId]:
        """Link end of every entry of this model's ``LinkEndData``."""

        per_arc = [end for leg in self.link_ends.legs() for end in leg]
        if self.observable_type is ObservableType.DIFFERENCED_RANGE:
            return per_arc + per_arc
        return per_arc

    def entry_leg_corrections(self) -> list[list[LightTimeCorrection]]:
        """Corrections of every leg of this model's ``LinkEndData``."""

        if self.observable_type is ObservableType.DIFFERENCED_RANGE:
            return self.leg_corrections + self.leg_corrections
        return self.leg_corrections

    def _evaluate(self, time: float, anchor: LinkEndType) -> Evaluation:
        return _STRATEGIES[self.observable_type](self, float(time), anchor)

    def _apply_bias(self, time: float, evaluation: Evaluation) -> Evaluation:
        value, data = evaluation
        if self.bias is not None:
            value = value + self.bias.value(time, value, data)
        return value, data

    def _guarded(self, time: float, anchor: LinkEndType, with_bias: bool) -> Outcome[Evaluation]:
        self.check_anchor(anchor)
        try:
            evaluation = self._evaluate(time, anchor)
        except EPOCH_ERRORS as exc:
            LOGGER.warning("%s at t=%s failed: %s", self.observable_type.value, time, exc)
            return Outcome.failure(exc)
        if with_bias:
            evaluation = self._apply_bias(time, evaluation)
        return Outcome.success(evaluation)

    def compute_ideal_observation(self, time: float, anchor: LinkEndType = LinkEndType.RECEIVER) -> Outcome[np.ndarray]:
        outcome = self._guarded(time, anchor, with_bias=False)
        return Outcome(outcome.value[0] if outcome.ok else None, outcome.error)

    def compute_ideal_observation_with_link_end_data(
        self, time: float, anchor: LinkEndType = LinkEndType.RECEIVER
    ) -> Outcome[Evaluation]:
        return self._guarded(time, anchor, with_bias=False)

    def compute_observation(self, time: float, anchor: LinkEndType = LinkEndType.RECEIVER) -> Outcome[np.ndarray]:
        outcome = self._guarded(time, anchor, with_bias=True)
        return Outcome(outcome.value[0] if outcome.ok else None, outcome.error)

    def compute_observation_with_link_end_data(
        self, time: float, anchor: LinkEndType = LinkEndType.RECEIVER
    ) -> Outcome[Evaluation]:
        return self._guarded(time, anchor, with_bias=True)


def _range_chain(model: ObservationModel, time: float, anchor: LinkEndType) -> tuple[float, LinkEndData]:
    """Solve every leg outward from the anchor; return total light time and data.

    At a retransmitter the anchor time is its transmission time.
    """

    n_legs = model.link_ends.n_legs
    delays = model.retransmission_delays
    k = model.link_ends.index(anchor)
    solutions = [None] * n_legs

    t = time
    for leg in range(k, n_legs):
        solution = model.calculators[leg].calculate(t, anchor_is_receiver=False)
        solutions[leg] = solution
        if leg < n_legs - 1:
            t = float(solution.times[1]) + delays[leg]

    t = time - delays[k - 1] if 0 < k < n_legs else time
    for leg in range(k - 1, -1, -1):
        solution = model.calculators[leg].calculate(t, anchor_is_receiver=True)
        solutions[leg] = solution
        if leg > 0:
            t = float(solution.times[0]) - delays[leg - 1]

    total = sum(solution.light_time for solution in solutions) + float(np.sum(delays))
    data = LinkEndData.concatenate([solution.link_end_data for solution in solutions])
    return total, data


def _range(model: ObservationModel, time: float, anchor: LinkEndType) -> Evaluation:
    total, data = _range_chain(model, time, anchor)
    return np.array([model.signal_speed_mps * total]), data


def _differenced_range(model: ObservationModel, time: float, anchor: LinkEndType) -> Evaluation:
    dt = model.integration_time_s
    start_value, start_data = _range(model, time - dt, anchor)
    end_value, end_data = _range(model, time, anchor)
    return (end_value - start_value) / dt, LinkEndData.concatenate([start_data, end_data])


def _angular_position(model: ObservationModel, time: float, anchor: LinkEndType) -> Evaluation:
    solution = model.calculators[0].calculate(time, anchor_is_receiver=anchor == LinkEndType.RECEIVER)
    relative = solution.states[0][:3] - solution.states[1][:3]
    right_ascension = np.arctan2(relative[1], relative[0])
    declination = np.arcsin(relative[2] / np.linalg.norm(relative))
    return np.array([right_ascension, declination]), solution.link_end_data


_STRATEGIES: dict[ObservableType, Callable[[ObservationModel, float, LinkEndType], Evaluation]] = {
    ObservableType.ONE_WAY_RANGE: _range,
    ObservableType.N_WAY_RANGE: _range,
    ObservableType.DIFFERENCED_RANGE: _differenced_range,
    ObservableType.ANGULAR_POSITION: _angular_position,
}


def create_observation_model(
    observable_type: ObservableType,
    link_ends: LinkEnds | dict,
    state_provider: StateProvider,
    **kwargs,
) -> ObservationModel:
    """Build a model, accepting link ends as a role -> id mapping."""

    if not isinstance(link_ends, LinkEnds):
        link_ends = LinkEnds.from_mapping(link_ends)
    return ObservationModel(observable_type, link_ends, state_provider, **kwargs)

"""Link-end scaling: raw position partials to observable partials.

A raw position partial holds every link-end time fixed. Because the light
time itself moves when a link end moves, the observable partial depends on
which link end's time is held fixed (the anchor). Scalers are updated with
the link-end states of one epoch and then precompute the factors for every
possible anchor, so the same update serves any fixed-end request.

Sign convention: ``r_hat`` points from transmitter to receiver. The receiver
entry gets ``+r_hat`` and the transmitter entry ``-r_hat``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from tracking_od.errors import IncompatibleLinkEnd
from tracking_od.models import LinkEnds, LinkEndType, ObservableType


def _unit(vector: np.ndarray) -> np.ndarray:
    return vector / np.linalg.norm(vector)


class LinkEndScaling(ABC):
    """Interface shared by the per-observable scalers."""

    size: int = 1

    def __init__(self, signal_speed_mps: float) -> None:
        self.signal_speed_mps = float(signal_speed_mps)
        self._fixed: LinkEndType | None = None

    @abstractmethod
    def update(
        self,
        link_end_states: np.ndarray,
        link_end_times: np.ndarray,
        fixed_link_end: LinkEndType,
        current_observation: np.ndarray | None = None,
    ) -> None:
        """Recompute all scaling factors for one epoch's link-end data."""

    @abstractmethod
    def scaling_factor(self, link_end: LinkEndType, fixed: LinkEndType | None = None) -> np.ndarray:
        """(size, 3) scaling for a perturbation of ``link_end`` with ``fixed`` held at its time."""

    @abstractmethod
    def light_time_partial_scaling(self, fixed: LinkEndType | None = None) -> float | np.ndarray:
        """Factor multiplying light-time correction partials with ``fixed`` held at its time."""

    @abstractmethod
    def state_scaling(self, index: int, fixed: LinkEndType | None = None) -> np.ndarray:
        """(size, 3) scaling for entry ``index`` of the link-end data."""

    @abstractmethod
    def leg_scaling(self, leg: int, fixed: LinkEndType | None = None) -> np.ndarray:
        """(size,) observable change per second of light-time correction on ``leg``."""

    def _resolve_fixed(self, fixed: LinkEndType | None) -> LinkEndType:
        if fixed is None:
            fixed = self._fixed
        if fixed is None:
            raise RuntimeError("Scaling requested before update()")
        return fixed


class OneWayRangeScaling(LinkEndScaling):
    def update(
        self,
        link_end_states: np.ndarray,
        link_end_times: np.ndarray,
        fixed_link_end: LinkEndType,
        current_observation: np.ndarray | None = None,
    ) -> None:
        states = np.asarray(link_end_states, dtype=float)
        self._unit = _unit(states[1][:3] - states[0][:3])
        speed = self.signal_speed_mps
        self._factors = {
            LinkEndType.RECEIVER: 1.0 / (1.0 - float(self._unit @ states[0][3:]) / speed),
            LinkEndType.TRANSMITTER: 1.0 / (1.0 - float(self._unit @ states[1][3:]) / speed),
        }
        self._fixed = fixed_link_end

    def light_time_partial_scaling(self, fixed: LinkEndType | None = None) -> float:
        fixed = self._resolve_fixed(fixed)
        if fixed not in self._factors:
            raise IncompatibleLinkEnd(f"Fixed link end {fixed.name} is neither transmitter nor receiver")
        return self._factors[fixed]

    def scaling_factor(self, link_end: LinkEndType, fixed: LinkEndType | None = None) -> np.ndarray:
        factor = self.light_time_partial_scaling(fixed)
        if link_end == LinkEndType.RECEIVER:
            return (factor * self._unit).reshape(1, 3)
        if link_end == LinkEndType.TRANSMITTER:
            return (-factor * self._unit).reshape(1, 3)
        raise IncompatibleLinkEnd(f"No one-way scaling for link end {link_end.name}")

    def state_scaling(self, index: int, fixed: LinkEndType | None = None) -> np.ndarray:
        return self.scaling_factor(LinkEndType.TRANSMITTER if index == 0 else LinkEndType.RECEIVER, fixed)

    def leg_scaling(self, leg: int, fixed: LinkEndType | None = None) -> np.ndarray:
        return np.array([self.signal_speed_mps * self.light_time_partial_scaling(fixed)])


class NWayRangeScaling(LinkEndScaling):
    """Scaling for a chain of legs solved outward from the anchor.

    Legs after the anchor are solved with their transmitter time fixed, legs
    before it with their receiver time fixed; a perturbation in one leg's
    light time shifts the end times of every leg further from the anchor.
    ``leg weights`` hold d(total light time)/d(leg source) for each anchor.
    """

    def __init__(self, link_ends: LinkEnds, signal_speed_mps: float) -> None:
        super().__init__(signal_speed_mps)
        self.link_ends = link_ends
        self._weights: dict[LinkEndType, np.ndarray] = {}

    def update(
        self,
        link_end_states: np.ndarray,
        link_end_times: np.ndarray,
        fixed_link_end: LinkEndType,
        current_observation: np.ndarray | None = None,
    ) -> None:
        states = np.asarray(link_end_states, dtype=float)
        n_legs = len(states) // 2
        speed = self.signal_speed_mps
        self._units = [_unit(states[2 * leg + 1][:3] - states[2 * leg][:3]) for leg in range(n_legs)]
        v_tx = [states[2 * leg][3:] for leg in range(n_legs)]
        v_rx = [states[2 * leg + 1][3:] for leg in range(n_legs)]
        coupling = [float(self._units[leg] @ (v_rx[leg] - v_tx[leg])) / speed for leg in range(n_legs)]
        forward = [1.0 - float(self._units[leg] @ v_rx[leg]) / speed for leg in range(n_legs)]
        backward = [1.0 - float(self._units[leg] @ v_tx[leg]) / speed for leg in range(n_legs)]

        def respond(anchor: int, source: int) -> float:
            d_tau = np.zeros(n_legs)
            dt = 0.0
            for leg in range(anchor, n_legs):
                d_tau[leg] = ((leg == source) + coupling[leg] * dt) / forward[leg]
                dt += d_tau[leg]
            dt = 0.0
            for leg in range(anchor - 1, -1, -1):
                d_tau[leg] = ((leg == source) + coupling[leg] * dt) / backward[leg]
                dt -= d_tau[leg]
            return float(np.sum(d_tau))

        self._weights = {
            role: np.array([respond(anchor, source) for source in range(n_legs)])
            for anchor, role in enumerate(self.link_ends.roles)
        }
        self._fixed = fixed_link_end

    def light_time_partial_scaling(self, fixed: LinkEndType | None = None) -> np.ndarray:
        fixed = self._resolve_fixed(fixed)
        if fixed not in self._weights:
            raise IncompatibleLinkEnd(f"Fixed link end {fixed.name} is not part of {self.link_ends}")
        return self._weights[fixed]

    def state_scaling(self, index: int, fixed: LinkEndType | None = None) -> np.ndarray:
        leg = index // 2
        sign = 1.0 if index % 2 else -1.0
        weight = self.light_time_partial_scaling(fixed)[leg]
        return (sign * weight * self._units[leg]).reshape(1, 3)

    def scaling_factor(self, link_end: LinkEndType, fixed: LinkEndType | None = None) -> np.ndarray:
        """Scaling of all entries belonging to ``link_end`` combined."""

        if link_end not in self.link_ends:
            raise IncompatibleLinkEnd(f"Link end {link_end.name} is not part of {self.link_ends}")
        position = self.link_ends.index(link_end)
        indices = [idx for idx in (2 * position - 1, 2 * position) if 0 <= idx < 2 * self.link_ends.n_legs]
        return sum(self.state_scaling(idx, fixed) for idx in indices)

    def leg_scaling(self, leg: int, fixed: LinkEndType | None = None) -> np.ndarray:
        return np.array([self.signal_speed_mps * self.light_time_partial_scaling(fixed)[leg]])


class DifferencedRangeScaling(LinkEndScaling):
    """Scaling of (range(t) - range(t - dt)) / dt from two range scalers.

    Link-end data holds the start arc followed by the end arc.
    """

    def __init__(self, start: LinkEndScaling, end: LinkEndScaling, integration_time_s: float) -> None:
        super().__init__(start.signal_speed_mps)
        self.start = start
        self.end = end
        self.integration_time_s = float(integration_time_s)
        self._half = 0

    def update(
        self,
        link_end_states: np.ndarray,
        link_end_times: np.ndarray,
        fixed_link_end: LinkEndType,
        current_observation: np.ndarray | None = None,
    ) -> None:
        states = np.asarray(link_end_states, dtype=float)
        times = np.asarray(link_end_times, dtype=float)
        self._half = len(states) // 2
        self.start.update(states[: self._half], times[: self._half], fixed_link_end)
        self.end.update(states[self._half :], times[self._half :], fixed_link_end)
        self._fixed = fixed_link_end

    def scaling_factor(self, link_end: LinkEndType, fixed: LinkEndType | None = None) -> np.ndarray:
        """Combined scaling for a link end that is perturbed equally in both arcs."""

        return (self.end.scaling_factor(link_end, fixed) - self.start.scaling_factor(link_end, fixed)) / (
            self.integration_time_s
        )

    def light_time_partial_scaling(self, fixed: LinkEndType | None = None) -> float | np.ndarray:
        return (self.end.light_time_partial_scaling(fixed) - self.start.light_time_partial_scaling(fixed)) / (
            self.integration_time_s
        )

    def state_scaling(self, index: int, fixed: LinkEndType | None = None) -> np.ndarray:
        if index < self._half:
            return -self.start.state_scaling(index, fixed) / self.integration_time_s
        return self.end.state_scaling(index - self._half, fixed) / self.integration_time_s

    def leg_scaling(self, leg: int, fixed: LinkEndType | None = None) -> np.ndarray:
        legs_per_arc = self._half // 2
        if leg < legs_per_arc:
            return -self.start.leg_scaling(leg, fixed) / self.integration_time_s
        return self.end.leg_scaling(leg - legs_per_arc, fixed) / self.integration_time_s


class AngularPositionScaling(LinkEndScaling):
    """(right ascension, declination) of the transmitter seen from the receiver."""

    size = 2

    def update(
        self,
        link_end_states: np.ndarray,
        link_end_times: np.ndarray,
        fixed_link_end: LinkEndType,
        current_observation: np.ndarray | None = None,
    ) -> None:
        states = np.asarray(link_end_states, dtype=float)
        relative = states[0][:3] - states[1][:3]
        x, y, z = relative
        rho2 = float(relative @ relative)
        p2 = x * x + y * y
        p = np.sqrt(p2)
        angle_partials = np.array(
            [
                [-y / p2, x / p2, 0.0],
                [-x * z / (rho2 * p), -y * z / (rho2 * p), p / rho2],
            ]
        )
        s_hat = -relative / np.sqrt(rho2)
        speed = self.signal_speed_mps
        self._transmitter: dict[LinkEndType, np.ndarray] = {}
        self._light_time: dict[LinkEndType, np.ndarray] = {}
        free_velocity = {LinkEndType.RECEIVER: states[0][3:], LinkEndType.TRANSMITTER: states[1][3:]}
        for fixed, velocity in free_velocity.items():
            projected = float(s_hat @ velocity)
            coupling = np.eye(3) + np.outer(velocity, s_hat) / (speed - projected)
            self._transmitter[fixed] = angle_partials @ coupling
            self._light_time[fixed] = -angle_partials @ velocity / (1.0 - projected / speed)
        self._fixed = fixed_link_end

    def _check(self, fixed: LinkEndType | None) -> LinkEndType:
        fixed = self._resolve_fixed(fixed)
        if fixed not in self._transmitter:
            raise IncompatibleLinkEnd(f"Fixed link end {fixed.name} is neither transmitter nor receiver")
        return fixed

    def scaling_factor(self, link_end: LinkEndType, fixed: LinkEndType | None = None) -> np.ndarray:
        fixed = self._check(fixed)
        if link_end == LinkEndType.TRANSMITTER:
            return self._transmitter[fixed].copy()
        if link_end == LinkEndType.RECEIVER:
            return -self._transmitter[fixed]
        raise IncompatibleLinkEnd(f"No angular scaling for link end {link_end.name}")

    def light_time_partial_scaling(self, fixed: LinkEndType | None = None) -> np.ndarray:
        return self._light_time[self._check(fixed)].copy()

    def state_scaling(self, index: int, fixed: LinkEndType | None = None) -> np.ndarray:
        return self.scaling_factor(LinkEndType.TRANSMITTER if index == 0 else LinkEndType.RECEIVER, fixed)

    def leg_scaling(self, leg: int, fixed: LinkEndType | None = None) -> np.ndarray:
        return self.light_time_partial_scaling(fixed)


def create_link_end_scaling(
    observable_type: ObservableType,
    link_ends: LinkEnds,
    signal_speed_mps: float,
    integration_time_s: float = 60.0,
) -> LinkEndScaling:
    def range_scaling() -> LinkEndScaling:
        if link_ends.n_legs == 1:
            return OneWayRangeScaling(signal_speed_mps)
        return NWayRangeScaling(link_ends, signal_speed_mps)

    if observable_type is ObservableType.ANGULAR_POSITION:
        return AngularPositionScaling(signal_speed_mps)
    if observable_type is ObservableType.DIFFERENCED_RANGE:
        return DifferencedRangeScaling(range_scaling(), range_scaling(), integration_time_s)
    return range_scaling()

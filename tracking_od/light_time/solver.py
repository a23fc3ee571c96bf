"""Iterative light-time solution between two link ends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from tracking_od.config import LightTimeConfig
from tracking_od.errors import EPOCH_ERRORS, InvalidGeometry, NonConvergence, Outcome
from tracking_od.light_time.corrections import LightTimeCorrection
from tracking_od.models import LinkEndData, LinkEndId, StateProvider
from tracking_od.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class LightTimeSolution:
    """Converged light time with the states and times actually used.

    ``states`` and ``times`` are ordered (transmitter, receiver).
    """

    light_time: float
    states: np.ndarray
    times: np.ndarray
    iterations: int

    @property
    def link_end_data(self) -> LinkEndData:
        return LinkEndData(self.times.copy(), self.states.copy())

    @property
    def range_vector(self) -> np.ndarray:
        return self.states[1][:3] - self.states[0][:3]


class LightTimeCalculator:
    """Fixed-point light-time solver for one transmitter/receiver leg.

    The anchor time is held at the receiver or the transmitter; the other
    end's time is moved by the current light-time estimate until the change
    between iterations falls below an absolute tolerance.
    """

    def __init__(
        self,
        state_provider: StateProvider,
        transmitter: LinkEndId,
        receiver: LinkEndId,
        corrections: Sequence[LightTimeCorrection] = (),
        config: LightTimeConfig | None = None,
    ) -> None:
        self.state_provider = state_provider
        self.transmitter = transmitter
        self.receiver = receiver
        self.corrections = tuple(corrections)
        self.config = config or LightTimeConfig()

    def total_correction(self, states: np.ndarray, times: np.ndarray) -> float:
        return float(sum(correction.value(states, times) for correction in self.corrections))

    def _geometry(self, time: float, light_time: float, anchor_is_receiver: bool) -> tuple[np.ndarray, np.ndarray]:
        if anchor_is_receiver:
            times = np.array([time - light_time, time])
        else:
            times = np.array([time, time + light_time])
        states = np.vstack(
            [
                self.state_provider.state(self.transmitter, float(times[0])),
                self.state_provider.state(self.receiver, float(times[1])),
            ]
        )
        return states, times

    def _iterate(
        self,
        time: float,
        anchor_is_receiver: bool,
        light_time: float,
        fixed_correction: float | None,
    ) -> tuple[float, int]:
        speed = self.config.signal_speed_mps
        change = float("inf")
        for iteration in range(1, self.config.max_iterations + 1):
            states, times = self._geometry(time, light_time, anchor_is_receiver)
            updated = float(np.linalg.norm(states[1][:3] - states[0][:3])) / speed
            if fixed_correction is None:
                updated += self.total_correction(states, times)
            else:
                updated += fixed_correction
            if not np.isfinite(updated) or updated <= 0.0:
                raise InvalidGeometry(
                    f"Light time {updated!r} s between {self.transmitter} and {self.receiver} at t={time}"
                )
            change = abs(updated - light_time)
            light_time = updated
            if change < self.config.tolerance_s:
                return light_time, iteration
        raise NonConvergence(
            f"Light time between {self.transmitter} and {self.receiver} at t={time} did not converge "
            f"in {self.config.max_iterations} iterations",
            iterations=self.config.max_iterations,
            last_change_s=change,
        )

    def calculate(self, time: float, anchor_is_receiver: bool = True) -> LightTimeSolution:
        """Solve the light time, raising ``NonConvergence`` or ``InvalidGeometry``."""

        time = float(time)
        speed = self.config.signal_speed_mps
        states, _ = self._geometry(time, 0.0, anchor_is_receiver)
        light_time = float(np.linalg.norm(states[1][:3] - states[0][:3])) / speed
        if not np.isfinite(light_time) or light_time <= 0.0:
            raise InvalidGeometry(f"Coincident or invalid link ends {self.transmitter}, {self.receiver} at t={time}")

        if self.config.iterate_corrections or not self.corrections:
            light_time, iterations = self._iterate(time, anchor_is_receiver, light_time, None)
        else:
            light_time, iterations = self._iterate(time, anchor_is_receiver, light_time, 0.0)
            states, times = self._geometry(time, light_time, anchor_is_receiver)
            correction = self.total_correction(states, times)
            light_time, extra = self._iterate(time, anchor_is_receiver, light_time + correction, correction)
            iterations += extra

        states, times = self._geometry(time, light_time, anchor_is_receiver)
        return LightTimeSolution(light_time, states, times, iterations)

    def solve(self, time: float, anchor_is_receiver: bool = True) -> Outcome[LightTimeSolution]:
        try:
            return Outcome.success(self.calculate(time, anchor_is_receiver))
        except EPOCH_ERRORS as exc:
            LOGGER.warning("Light-time solution failed: %s", exc)
            return Outcome.failure(exc)

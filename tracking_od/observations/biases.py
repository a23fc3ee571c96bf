"""Observation biases applied to ideal observables."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from tracking_od.constants import SPEED_OF_LIGHT_MPS
from tracking_od.models import LinkEndData, ParameterId


class ObservationBias(ABC):
    """Additive offset applied after the light-time solution."""

    @abstractmethod
    def value(self, time: float, observation: np.ndarray, link_end_data: LinkEndData) -> np.ndarray:
        """Bias to add to ``observation`` (same shape)."""

    def partial(self, parameter: ParameterId, time: float, link_end_data: LinkEndData) -> np.ndarray | None:
        """Partial of the bias w.r.t. ``parameter``; ``None`` if independent of it."""

        return None


class ConstantBias(ObservationBias):
    def __init__(self, values: Sequence[float] | float, parameter_id: ParameterId | None = None) -> None:
        self.values = np.atleast_1d(np.array(values, dtype=float))
        self.parameter_id = parameter_id

    def value(self, time: float, observation: np.ndarray, link_end_data: LinkEndData) -> np.ndarray:
        return self.values.copy()

    def partial(self, parameter: ParameterId, time: float, link_end_data: LinkEndData) -> np.ndarray | None:
        if self.parameter_id is None or parameter != self.parameter_id:
            return None
        return np.eye(self.values.size)


class ClockPolynomialBias(ObservationBias):
    """Range offset ``c * sum(a_k * (t - t0)**k)`` from a station clock error.

    The clock time is read at the station's own link-end time; the offset
    enters with a positive sign at the receiver and negative at the
    transmitter.
    """

    def __init__(
        self,
        coefficients: Sequence[float],
        reference_time: float = 0.0,
        at_receiver: bool = True,
        parameter_id: ParameterId | None = None,
        signal_speed_mps: float = SPEED_OF_LIGHT_MPS,
    ) -> None:
        self.coefficients = np.array(coefficients, dtype=float)
        self.reference_time = float(reference_time)
        self.at_receiver = at_receiver
        self.parameter_id = parameter_id
        self.signal_speed_mps = float(signal_speed_mps)

    def _clock_time(self, link_end_data: LinkEndData) -> float:
        return float(link_end_data.times[-1] if self.at_receiver else link_end_data.times[0])

    def _powers(self, link_end_data: LinkEndData) -> np.ndarray:
        dt = self._clock_time(link_end_data) - self.reference_time
        return dt ** np.arange(self.coefficients.size)

    def value(self, time: float, observation: np.ndarray, link_end_data: LinkEndData) -> np.ndarray:
        sign = 1.0 if self.at_receiver else -1.0
        return np.array([sign * self.signal_speed_mps * float(self.coefficients @ self._powers(link_end_data))])

    def partial(self, parameter: ParameterId, time: float, link_end_data: LinkEndData) -> np.ndarray | None:
        if self.parameter_id is None or parameter != self.parameter_id:
            return None
        sign = 1.0 if self.at_receiver else -1.0
        return (sign * self.signal_speed_mps * self._powers(link_end_data)).reshape(1, -1)


class RandomWalkBias(ObservationBias):
    """Time-correlated bias sampled once on a grid and linearly interpolated.

    Intended for simulating observations; it has no estimatable parameter.
    """

    def __init__(
        self,
        start_time: float,
        end_time: float,
        step_s: float,
        sigma_per_sqrt_s: float,
        size: int = 1,
        seed: int | None = None,
    ) -> None:
        if step_s <= 0.0:
            raise ValueError("step_s must be positive.")
        self.grid = np.arange(float(start_time), float(end_time) + step_s, step_s)
        rng = np.random.default_rng(seed)
        steps = rng.normal(0.0, sigma_per_sqrt_s * np.sqrt(step_s), size=(self.grid.size, size))
        steps[0] = 0.0
        self.samples = np.cumsum(steps, axis=0)

    def value(self, time: float, observation: np.ndarray, link_end_data: LinkEndData) -> np.ndarray:
        return np.array([np.interp(time, self.grid, column) for column in self.samples.T])


class MultipleBias(ObservationBias):
    def __init__(self, biases: Sequence[ObservationBias]) -> None:
        self.biases = list(biases)

    def value(self, time: float, observation: np.ndarray, link_end_data: LinkEndData) -> np.ndarray:
        total = np.zeros_like(np.atleast_1d(observation), dtype=float)
        for bias in self.biases:
            total = total + bias.value(time, observation, link_end_data)
        return total

    def partial(self, parameter: ParameterId, time: float, link_end_data: LinkEndData) -> np.ndarray | None:
        result = None
        for bias in self.biases:
            part = bias.partial(parameter, time, link_end_data)
            if part is not None:
                result = part if result is None else result + part
        return result

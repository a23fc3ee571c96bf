"""Light-time correction terms attached to a single link leg.

A correction maps the leg's (transmitter, receiver) states and times to an
extra delay in seconds. Corrections that depend on estimatable parameters
also return the partial of that delay with respect to a parameter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from tracking_od.constants import SPEED_OF_LIGHT_MPS
from tracking_od.environment.bodies import Environment
from tracking_od.light_time.tropospheric import saastamoinen_delay_m
from tracking_od.models import LinkEndId, ParameterId, ParameterKind
from tracking_od.utils.wgs84 import elevation_deg


class LightTimeCorrection(ABC):
    """Interface for a delay added to the geometric light time of one leg."""

    name: str = "correction"

    @abstractmethod
    def value(self, states: np.ndarray, times: np.ndarray) -> float:
        """Delay in seconds for leg states ``(tx, rx)`` at times ``(t_tx, t_rx)``."""

    def partial(self, parameter: ParameterId, states: np.ndarray, times: np.ndarray) -> np.ndarray | None:
        """Partial of the delay w.r.t. ``parameter``; ``None`` if independent of it."""

        return None

    def evaluation_time(self, times: np.ndarray) -> float:
        return 0.5 * float(times[0] + times[1])


class FirstOrderRelativisticCorrection(LightTimeCorrection):
    """Shapiro delay from a list of point-mass bodies.

    Body positions are taken at the leg midpoint time. Gravitational
    parameters and the PPN gamma are read from the environment on every call.
    """

    name = "first_order_relativistic"

    def __init__(
        self,
        environment: Environment,
        perturbing_bodies: Sequence[str],
        signal_speed_mps: float = SPEED_OF_LIGHT_MPS,
    ) -> None:
        self.environment = environment
        self.perturbing_bodies = list(perturbing_bodies)
        self.signal_speed_mps = float(signal_speed_mps)

    def _log_terms(self, states: np.ndarray, times: np.ndarray) -> dict[str, float]:
        t_mid = self.evaluation_time(times)
        r_tx = states[0][:3]
        r_rx = states[1][:3]
        distance = float(np.linalg.norm(r_rx - r_tx))
        terms = {}
        for body in self.perturbing_bodies:
            center = self.environment.body(body).ephemeris.state(t_mid)[:3]
            sum_radii = float(np.linalg.norm(r_tx - center) + np.linalg.norm(r_rx - center))
            terms[body] = float(np.log((sum_radii + distance) / (sum_radii - distance)))
        return terms

    def value(self, states: np.ndarray, times: np.ndarray) -> float:
        c3 = self.signal_speed_mps**3
        gamma = self.environment.ppn_gamma
        total = 0.0
        for body, log_term in self._log_terms(states, times).items():
            total += (1.0 + gamma) * self.environment.gravitational_parameter(body) / c3 * log_term
        return total

    def partial(self, parameter: ParameterId, states: np.ndarray, times: np.ndarray) -> np.ndarray | None:
        c3 = self.signal_speed_mps**3
        if parameter.kind is ParameterKind.GRAVITATIONAL_PARAMETER:
            if parameter.body not in self.perturbing_bodies:
                return None
            log_term = self._log_terms(states, times)[parameter.body]
            return np.array([(1.0 + self.environment.ppn_gamma) / c3 * log_term])
        if parameter.kind is ParameterKind.PPN_GAMMA:
            total = 0.0
            for body, log_term in self._log_terms(states, times).items():
                total += self.environment.gravitational_parameter(body) / c3 * log_term
            return np.array([total])
        return None


class TroposphericCorrection(LightTimeCorrection):
    """Saastamoinen delay for a leg with a ground station at one end.

    Value only; no parameter depends on it.
    """

    name = "tropospheric"

    def __init__(
        self,
        environment: Environment,
        station: LinkEndId,
        station_is_receiver: bool = True,
        pressure_hpa: float = 1013.25,
        temp_k: float = 293.15,
        rel_humidity: float = 0.5,
        signal_speed_mps: float = SPEED_OF_LIGHT_MPS,
    ) -> None:
        self.environment = environment
        self.station = station
        self.station_is_receiver = station_is_receiver
        self.pressure_hpa = pressure_hpa
        self.temp_k = temp_k
        self.rel_humidity = rel_humidity
        self.signal_speed_mps = float(signal_speed_mps)

    def value(self, states: np.ndarray, times: np.ndarray) -> float:
        station_idx = 1 if self.station_is_receiver else 0
        other_idx = 1 - station_idx
        up = self.environment.station_up_vector(self.station, float(times[station_idx]))
        los = states[other_idx][:3] - states[station_idx][:3]
        lat_deg, _, alt_m = self.environment.station_geodetic(self.station)
        delay_m = saastamoinen_delay_m(
            elevation_deg(up, los),
            lat_deg,
            alt_m,
            pressure_hpa=self.pressure_hpa,
            temp_k=self.temp_k,
            rel_humidity=self.rel_humidity,
        )
        return delay_m / self.signal_speed_mps

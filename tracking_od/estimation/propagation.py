"""Point-mass propagation with state-transition and mu-sensitivity matrices."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.integrate import solve_ivp

from tracking_od.environment.bodies import Environment
from tracking_od.environment.ephemerides import Ephemeris
from tracking_od.errors import EphemerisOutOfRange
from tracking_od.models import Propagator
from tracking_od.utils.logging import get_logger

LOGGER = get_logger(__name__)

_STATE = slice(0, 6)
_STM = slice(6, 42)
_SENS = slice(42, 48)


def _two_body_derivatives(t: float, y: np.ndarray, mu: float) -> np.ndarray:
    """Relative two-body dynamics plus variational equations.

    The sensitivity is integrated as d(state)/d(ln mu) to keep it at the
    scale of the state; ``PropagationResult.sensitivity`` divides by mu.
    """

    r = y[0:3]
    v = y[3:6]
    r_norm = np.linalg.norm(r)
    r3 = r_norm**3
    acc = -mu * r / r3

    gravity_gradient = mu * (3.0 * np.outer(r, r) / r_norm**5 - np.eye(3) / r3)
    jacobian = np.zeros((6, 6))
    jacobian[:3, 3:] = np.eye(3)
    jacobian[3:, :3] = gravity_gradient

    stm = y[_STM].reshape(6, 6)
    sens = y[_SENS]
    d_sens = jacobian @ sens
    d_sens[3:] += acc

    return np.concatenate([v, acc, (jacobian @ stm).ravel(), d_sens])


@dataclass
class PropagationResult(Ephemeris):
    """Dense propagated history usable as a body's ephemeris.

    ``segments`` are (t_min, t_max, dense solution) covering the span on each
    side of the initial time.
    """

    body: str
    central_body: str
    central: Ephemeris
    initial_time: float
    mu: float
    segments: list

    def _sample(self, t: float) -> np.ndarray:
        t = float(t)
        for t_min, t_max, solution in self.segments:
            if t_min - 1e-9 <= t <= t_max + 1e-9:
                return solution(t)
        raise EphemerisOutOfRange(f"t={t} is outside the propagated span of {self.body}")

    @property
    def span(self) -> tuple[float, float]:
        return (min(seg[0] for seg in self.segments), max(seg[1] for seg in self.segments))

    def state(self, t: float) -> np.ndarray:
        return self._sample(t)[_STATE] + self.central.state(t)

    def state_transition(self, t: float) -> np.ndarray:
        return self._sample(t)[_STM].reshape(6, 6)

    def sensitivity(self, t: float) -> np.ndarray:
        return (self._sample(t)[_SENS] / self.mu).reshape(6, 1)


class PointMassPropagator(Propagator):
    """Propagate one body about a central body with the environment's mu.

    The result is installed as the body's ephemeris, so every consumer of the
    environment sees the latest propagation.
    """

    def __init__(
        self,
        environment: Environment,
        body: str,
        central_body: str,
        initial_state: np.ndarray,
        initial_time: float,
        start_time: float,
        end_time: float,
        rtol: float = 1e-12,
        atol: float = 1e-9,
    ) -> None:
        if not start_time <= initial_time <= end_time:
            raise ValueError("initial_time must lie within [start_time, end_time].")
        self.environment = environment
        self.body = body
        self.central_body = central_body
        self.initial_state = np.array(initial_state, dtype=float).reshape(6)
        self.initial_time = float(initial_time)
        self.start_time = float(start_time)
        self.end_time = float(end_time)
        self.rtol = rtol
        self.atol = atol
        self.result: PropagationResult | None = None

    def propagate(self) -> PropagationResult:
        mu = self.environment.gravitational_parameter(self.central_body)
        central = self.environment.body(self.central_body).ephemeris
        relative = self.initial_state - central.state(self.initial_time)
        y0 = np.concatenate([relative, np.eye(6).ravel(), np.zeros(6)])

        segments = []
        for t_bound in (self.end_time, self.start_time):
            if t_bound == self.initial_time:
                continue
            solution = solve_ivp(
                _two_body_derivatives,
                (self.initial_time, t_bound),
                y0,
                method="DOP853",
                dense_output=True,
                rtol=self.rtol,
                atol=self.atol,
                args=(mu,),
            )
            if not solution.success:
                raise RuntimeError(f"Propagation of {self.body} failed: {solution.message}")
            segments.append((min(self.initial_time, t_bound), max(self.initial_time, t_bound), solution.sol))

        LOGGER.debug("Propagated %s over [%s, %s] with mu=%s", self.body, self.start_time, self.end_time, mu)
        self.result = PropagationResult(self.body, self.central_body, central, self.initial_time, mu, segments)
        self.environment.set_ephemeris(self.body, self.result)
        return self.result

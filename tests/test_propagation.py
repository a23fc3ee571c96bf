from __future__ import annotations

import numpy as np
import pytest

from tracking_od.constants import MU_EARTH
from tracking_od.environment import ConstantEphemeris, Environment
from tracking_od.environment.ephemerides import CircularOrbitEphemeris
from tracking_od.errors import EphemerisOutOfRange
from tracking_od.estimation import PointMassPropagator, PropagationResult


def _setup() -> tuple[Environment, CircularOrbitEphemeris, PointMassPropagator]:
    environment = Environment()
    environment.add_body("Earth", ConstantEphemeris(np.zeros(6)), MU_EARTH)
    orbit = CircularOrbitEphemeris(7_000_000.0, MU_EARTH, inclination_deg=51.6, raan_deg=20.0)
    environment.add_body("Sat", orbit)
    propagator = PointMassPropagator(
        environment, "Sat", "Earth", orbit.state(0.0), initial_time=0.0, start_time=-600.0, end_time=3000.0
    )
    return environment, orbit, propagator


def test_propagation_reproduces_circular_orbit() -> None:
    environment, orbit, propagator = _setup()

    result = propagator.propagate()

    assert environment.body("Sat").ephemeris is result
    assert result.span == (-600.0, 3000.0)
    for t in (-600.0, -10.0, 0.0, 1234.5, 3000.0):
        assert np.allclose(result.state(t)[:3], orbit.state(t)[:3], rtol=0.0, atol=1e-3)
        assert np.allclose(result.state(t)[3:], orbit.state(t)[3:], rtol=0.0, atol=1e-6)
    assert np.allclose(result.state_transition(0.0), np.eye(6))
    assert np.allclose(result.sensitivity(0.0), 0.0)


def test_state_outside_span_raises() -> None:
    _, _, propagator = _setup()
    result = propagator.propagate()

    with pytest.raises(EphemerisOutOfRange):
        result.state(3100.0)


def test_initial_time_must_lie_in_span() -> None:
    environment, orbit, _ = _setup()

    with pytest.raises(ValueError):
        PointMassPropagator(environment, "Sat", "Earth", orbit.state(0.0), 5000.0, 0.0, 3000.0)


@pytest.mark.parametrize("t", [-500.0, 2500.0])
def test_state_transition_matches_finite_differences(t: float) -> None:
    _, orbit, propagator = _setup()
    nominal = orbit.state(0.0)
    result: PropagationResult = propagator.propagate()
    stm = result.state_transition(t)

    steps = np.array([10.0, 10.0, 10.0, 1e-2, 1e-2, 1e-2])
    columns = []
    for idx, step in enumerate(steps):
        finals = []
        for sign in (1.0, -1.0):
            perturbed = nominal.copy()
            perturbed[idx] += sign * step
            propagator.initial_state = perturbed
            finals.append(propagator.propagate().state(t))
        columns.append((finals[0] - finals[1]) / (2.0 * step))
    numerical = np.column_stack(columns)

    assert np.allclose(stm, numerical, rtol=1e-5, atol=1e-5)


def test_sensitivity_matches_finite_differences() -> None:
    environment, _, propagator = _setup()
    result = propagator.propagate()
    t = 2500.0
    sensitivity = result.sensitivity(t)[:, 0]

    step = 1.0e8
    finals = []
    for sign in (1.0, -1.0):
        environment.set_gravitational_parameter("Earth", MU_EARTH + sign * step)
        finals.append(propagator.propagate().state(t))
    numerical = (finals[0] - finals[1]) / (2.0 * step)

    assert sensitivity.shape == (6,)
    assert np.allclose(sensitivity, numerical, rtol=1e-4, atol=1e-12)

"""Pytest configuration and shared scenarios.

This file is imported during *collection*, so it's the right place to set
process-wide environment variables needed for stable imports.
"""

from __future__ import annotations

import os
import tempfile

# Force a non-interactive backend in test environments.
os.environ.setdefault("MPLBACKEND", "Agg")

# Isolate matplotlib cache to avoid flaky font-cache locking (stale locks in
# ~/.cache/matplotlib can break collection).
os.environ.setdefault("MPLCONFIGDIR", tempfile.mkdtemp(prefix="mplconfig-"))

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from tracking_od.constants import EARTH_ROTATION_RATE_RADPS, MU_EARTH, MU_SUN, SPEED_OF_LIGHT_MPS  # noqa: E402
from tracking_od.environment import (  # noqa: E402
    ConstantEphemeris,
    ConstantRateRotation,
    Environment,
    LinearEphemeris,
)
from tracking_od.estimation.parameters import EstimatableParameter  # noqa: E402
from tracking_od.models import LinkEndType  # noqa: E402
from tracking_od.observations.models import ObservationModel  # noqa: E402
from tracking_od.partials.numerical import numerical_partial  # noqa: E402
from tracking_od.partials.observation import create_observation_partials  # noqa: E402
from tracking_od.partials.scaling import create_link_end_scaling  # noqa: E402
from tracking_od.utils.wgs84 import WGS84  # noqa: E402


@pytest.fixture
def static_pair() -> Environment:
    """Two stationary point masses one light-second apart along x."""

    environment = Environment()
    environment.add_body("A", ConstantEphemeris(np.zeros(6)))
    environment.add_body("B", ConstantEphemeris(np.array([SPEED_OF_LIGHT_MPS, 0.0, 0.0, 0.0, 0.0, 0.0])))
    return environment


@pytest.fixture
def deep_space() -> Environment:
    """Rotating Earth with two stations and a fast probe (v/c ~ 1e-2)."""

    environment = Environment()
    environment.add_body(
        "Earth",
        LinearEphemeris(np.zeros(3), np.array([0.0, 29_780.0, 0.0])),
        MU_EARTH,
        rotation=ConstantRateRotation(EARTH_ROTATION_RATE_RADPS, initial_angle_rad=0.3),
        ellipsoid=WGS84,
    )
    environment.add_geodetic_station("Earth", "Madrid", 40.43, -4.25, 800.0)
    environment.add_geodetic_station("Earth", "Canberra", -35.40, 148.98, 700.0)
    environment.add_body(
        "Probe",
        LinearEphemeris(np.array([7.0e8, 4.0e8, 1.0e8]), np.array([2.0e6, -1.0e6, 5.0e5])),
    )
    environment.add_body("Mars", ConstantEphemeris(np.array([2.2e11, 0.0, 0.0, 0.0, 0.0, 0.0])), 4.282837e13)
    return environment


@pytest.fixture
def solar_conjunction() -> Environment:
    """Transmitter and receiver on opposite sides of the Sun, near the limb."""

    environment = Environment()
    environment.add_body("Sun", ConstantEphemeris(np.zeros(6)), MU_SUN)
    environment.add_body(
        "Spacecraft",
        LinearEphemeris(np.array([1.5e11, 2.0e9, 0.0]), np.array([0.0, 30_000.0, 1_000.0])),
    )
    environment.add_body(
        "Lander",
        LinearEphemeris(np.array([-2.2e11, 3.0e9, 1.0e8]), np.array([-2_000.0, -24_000.0, 0.0])),
    )
    environment.add_body("Mars", ConstantEphemeris(np.array([0.0, 2.2e11, 0.0, 0.0, 0.0, 0.0])), 4.282837e13)
    return environment


def _analytic_partial(
    model: ObservationModel,
    parameter: EstimatableParameter,
    time: float,
    anchor: LinkEndType,
) -> np.ndarray:
    scaler = create_link_end_scaling(
        model.observable_type, model.link_ends, model.signal_speed_mps, model.integration_time_s
    )
    environment = model.state_provider
    [partial] = create_observation_partials(model, scaler, [(parameter.id, parameter.size)], environment)
    value, data = model.compute_observation_with_link_end_data(time, anchor).unwrap()
    scaler.update(data.states, data.times, anchor, value)
    return partial.total(data, anchor, time)


def _numerical_partial(
    model: ObservationModel,
    parameter: EstimatableParameter,
    time: float,
    anchor: LinkEndType,
    steps,
    on_change=None,
) -> np.ndarray:
    return numerical_partial(model, parameter.getter, parameter.setter, time, anchor, steps, on_change)


def _assert_partials_match(analytic: np.ndarray, numerical: np.ndarray, rtol: float = 1e-4) -> None:
    scale = float(np.max(np.abs(numerical)))
    assert analytic.shape == numerical.shape
    assert scale > 0.0
    assert np.allclose(analytic, numerical, rtol=rtol, atol=rtol * scale)


@pytest.fixture
def analytic_partial():
    return _analytic_partial


@pytest.fixture
def finite_difference_partial():
    return _numerical_partial


@pytest.fixture
def assert_partials_match():
    return _assert_partials_match

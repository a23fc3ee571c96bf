from __future__ import annotations

import numpy as np
import pytest

from tracking_od.constants import EARTH_ROTATION_RATE_RADPS
from tracking_od.environment import ConstantEphemeris, Environment
from tracking_od.models import LinkEndId

MADRID = LinkEndId("Earth", "Madrid")


def test_station_state_rotates_with_body(deep_space: Environment) -> None:
    station = deep_space.station(MADRID)
    t = 1800.0

    state = deep_space.state(MADRID, t)
    earth = deep_space.body("Earth").ephemeris.state(t)
    offset = deep_space.rotation("Earth", t) @ station.position_m

    assert np.allclose(state[:3], earth[:3] + offset)
    assert np.allclose(state[3:], earth[3:] + np.cross([0.0, 0.0, EARTH_ROTATION_RATE_RADPS], offset))
    assert np.isclose(np.linalg.norm(offset), np.linalg.norm(station.position_m))


def test_station_geodetic_and_up_vector(deep_space: Environment) -> None:
    lat_deg, lon_deg, alt_m = deep_space.station_geodetic(MADRID)
    up = deep_space.station_up_vector(MADRID, 0.0)

    assert np.isclose(lat_deg, 40.43, atol=1e-6)
    assert np.isclose(lon_deg, -4.25, atol=1e-6)
    assert np.isclose(alt_m, 800.0, atol=1e-3)
    assert np.isclose(np.linalg.norm(up), 1.0)
    assert up @ deep_space.rotation("Earth", 0.0) @ deep_space.station(MADRID).position_m > 0.0


def test_body_state_and_parameters(deep_space: Environment) -> None:
    assert np.allclose(deep_space.state(LinkEndId("Mars"), 123.0)[:3], [2.2e11, 0.0, 0.0])

    deep_space.set_gravitational_parameter("Mars", 1.0)
    assert deep_space.gravitational_parameter("Mars") == 1.0

    deep_space.set_ephemeris("Mars", ConstantEphemeris(np.ones(6)))
    assert np.allclose(deep_space.state(LinkEndId("Mars"), 0.0), np.ones(6))
    assert np.allclose(deep_space.rotation("Mars", 10.0), np.eye(3))


def test_unknown_bodies_and_stations(deep_space: Environment) -> None:
    with pytest.raises(KeyError):
        deep_space.body("Pluto")
    with pytest.raises(KeyError):
        deep_space.state(LinkEndId("Earth", "Nowhere"), 0.0)
    with pytest.raises(ValueError):
        deep_space.add_body("Earth", ConstantEphemeris(np.zeros(6)))
    with pytest.raises(ValueError):
        deep_space.add_geodetic_station("Probe", "Lander", 0.0, 0.0)

"""Bodies, stations, ephemerides and rotation models."""

from tracking_od.environment.bodies import Body, Environment, GroundStation
from tracking_od.environment.ephemerides import (
    CircularOrbitEphemeris,
    ConstantEphemeris,
    ConstantRateRotation,
    Ephemeris,
    LinearEphemeris,
)

__all__ = [
    "Body",
    "CircularOrbitEphemeris",
    "ConstantEphemeris",
    "ConstantRateRotation",
    "Environment",
    "Ephemeris",
    "GroundStation",
    "LinearEphemeris",
]

"""Tracking observables, analytic partials and batch orbit determination."""

from tracking_od.config import EstimationConfig, LightTimeConfig, SimulationConfig
from tracking_od.errors import (
    EphemerisOutOfRange,
    EstimationDegenerate,
    IncompatibleLinkEnd,
    InvalidGeometry,
    InvalidLinkEndRole,
    NonConvergence,
    Outcome,
    TrackingError,
)
from tracking_od.models import LinkEndId, LinkEnds, LinkEndType, ObservableType

__all__ = [
    "EphemerisOutOfRange",
    "EstimationConfig",
    "EstimationDegenerate",
    "IncompatibleLinkEnd",
    "InvalidGeometry",
    "InvalidLinkEndRole",
    "LightTimeConfig",
    "LinkEndId",
    "LinkEndType",
    "LinkEnds",
    "NonConvergence",
    "ObservableType",
    "Outcome",
    "SimulationConfig",
    "TrackingError",
    "environment",
    "light_time",
    "observations",
    "partials",
    "estimation",
]

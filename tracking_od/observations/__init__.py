"""Observation models, biases and simulation."""

from tracking_od.observations.biases import (
    ClockPolynomialBias,
    ConstantBias,
    MultipleBias,
    ObservationBias,
    RandomWalkBias,
)
from tracking_od.observations.models import ObservationModel, create_observation_model
from tracking_od.observations.simulation import ObservationSimulator

__all__ = [
    "ClockPolynomialBias",
    "ConstantBias",
    "MultipleBias",
    "ObservationBias",
    "ObservationModel",
    "ObservationSimulator",
    "RandomWalkBias",
    "create_observation_model",
]

"""Parameters, propagation and batch least-squares estimation."""

from tracking_od.estimation.manager import EstimationManager, EstimationOutput, IterationRecord
from tracking_od.estimation.parameters import (
    EstimatableParameter,
    ParameterSet,
    clock_polynomial_parameter,
    constant_bias_parameter,
    gravitational_parameter,
    initial_state_parameter,
    ppn_gamma_parameter,
    station_position_parameter,
)
from tracking_od.estimation.propagation import PointMassPropagator, PropagationResult
from tracking_od.estimation.state_machine import EstimationState, EstimationStateMachine
from tracking_od.estimation.statistics import ChiSquareResult, chi_square_test

__all__ = [
    "ChiSquareResult",
    "EstimatableParameter",
    "EstimationManager",
    "EstimationOutput",
    "EstimationState",
    "EstimationStateMachine",
    "IterationRecord",
    "ParameterSet",
    "PointMassPropagator",
    "PropagationResult",
    "chi_square_test",
    "clock_polynomial_parameter",
    "constant_bias_parameter",
    "gravitational_parameter",
    "initial_state_parameter",
    "ppn_gamma_parameter",
    "station_position_parameter",
]

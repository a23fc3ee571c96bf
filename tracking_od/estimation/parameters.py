"""Estimatable parameters and the ordered set that owns them.

Parameters do not hold their values; each one reads and writes the value
where it lives (environment, propagator, bias) through a getter/setter pair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from tracking_od.environment.bodies import Environment
from tracking_od.models import LinkEndId, ParameterId, ParameterKind
from tracking_od.observations.biases import ClockPolynomialBias, ConstantBias


@dataclass
class EstimatableParameter:
    id: ParameterId
    size: int
    getter: Callable[[], np.ndarray]
    setter: Callable[[np.ndarray], None]

    @property
    def value(self) -> np.ndarray:
        return np.array(self.getter(), dtype=float).reshape(self.size)

    @value.setter
    def value(self, new_value: np.ndarray) -> None:
        self.setter(np.array(new_value, dtype=float).reshape(self.size))


@dataclass
class ParameterSet:
    """Ordered parameters; the order fixes the columns of the design matrix."""

    parameters: list[EstimatableParameter] = field(default_factory=list)

    def __post_init__(self) -> None:
        ids = [parameter.id for parameter in self.parameters]
        if len(set(ids)) != len(ids):
            raise ValueError("Duplicate parameter ids")

    def __len__(self) -> int:
        return len(self.parameters)

    def __iter__(self):
        return iter(self.parameters)

    def add(self, parameter: EstimatableParameter) -> None:
        if parameter.id in self.ids:
            raise ValueError(f"Parameter {parameter.id} already present")
        self.parameters.append(parameter)

    @property
    def ids(self) -> list[ParameterId]:
        return [parameter.id for parameter in self.parameters]

    @property
    def total_size(self) -> int:
        return int(sum(parameter.size for parameter in self.parameters))

    def slices(self) -> dict[ParameterId, slice]:
        result = {}
        start = 0
        for parameter in self.parameters:
            result[parameter.id] = slice(start, start + parameter.size)
            start += parameter.size
        return result

    def labels(self) -> list[str]:
        return [f"{parameter.id}[{idx}]" for parameter in self.parameters for idx in range(parameter.size)]

    def get_values(self) -> np.ndarray:
        if not self.parameters:
            return np.zeros(0)
        return np.concatenate([parameter.value for parameter in self.parameters])

    def set_values(self, values: np.ndarray) -> None:
        values = np.asarray(values, dtype=float)
        if values.size != self.total_size:
            raise ValueError(f"Expected {self.total_size} values, got {values.size}")
        for parameter, part in zip(self.parameters, self.slices().values()):
            parameter.value = values[part]

    def get(self, parameter_id: ParameterId) -> EstimatableParameter:
        for parameter in self.parameters:
            if parameter.id == parameter_id:
                return parameter
        raise KeyError(f"Unknown parameter {parameter_id}")


def initial_state_parameter(propagator) -> EstimatableParameter:
    def setter(value: np.ndarray) -> None:
        propagator.initial_state = value.copy()

    return EstimatableParameter(
        ParameterId(ParameterKind.INITIAL_STATE, propagator.body),
        6,
        lambda: propagator.initial_state,
        setter,
    )


def gravitational_parameter(environment: Environment, body: str) -> EstimatableParameter:
    return EstimatableParameter(
        ParameterId(ParameterKind.GRAVITATIONAL_PARAMETER, body),
        1,
        lambda: np.array([environment.gravitational_parameter(body)]),
        lambda value: environment.set_gravitational_parameter(body, float(value[0])),
    )


def ppn_gamma_parameter(environment: Environment) -> EstimatableParameter:
    def setter(value: np.ndarray) -> None:
        environment.ppn_gamma = float(value[0])

    return EstimatableParameter(
        ParameterId(ParameterKind.PPN_GAMMA, "global"),
        1,
        lambda: np.array([environment.ppn_gamma]),
        setter,
    )


def station_position_parameter(environment: Environment, station: LinkEndId) -> EstimatableParameter:
    def setter(value: np.ndarray) -> None:
        environment.station(station).position_m = value.copy()

    return EstimatableParameter(
        ParameterId(ParameterKind.STATION_POSITION, station.body, station.station),
        3,
        lambda: environment.station(station).position_m,
        setter,
    )


def constant_bias_parameter(bias: ConstantBias, name: str) -> EstimatableParameter:
    parameter_id = ParameterId(ParameterKind.CONSTANT_BIAS, sub_id=name)
    bias.parameter_id = parameter_id

    def setter(value: np.ndarray) -> None:
        bias.values = value.copy()

    return EstimatableParameter(parameter_id, bias.values.size, lambda: bias.values, setter)


def clock_polynomial_parameter(bias: ClockPolynomialBias, name: str) -> EstimatableParameter:
    parameter_id = ParameterId(ParameterKind.CLOCK_POLYNOMIAL, sub_id=name)
    bias.parameter_id = parameter_id

    def setter(value: np.ndarray) -> None:
        bias.coefficients = value.copy()

    return EstimatableParameter(parameter_id, bias.coefficients.size, lambda: bias.coefficients, setter)

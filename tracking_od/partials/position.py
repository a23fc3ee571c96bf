"""Sources of raw link-end position partials w.r.t. estimatable parameters."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from tracking_od.environment.bodies import Environment
from tracking_od.models import LinkEndId, ParameterId, ParameterKind


class PositionPartial(ABC):
    """d(inertial position of a link end)/d(parameter) at fixed time."""

    def __init__(self, parameter: ParameterId, environment: Environment) -> None:
        self.parameter = parameter
        self.environment = environment

    @abstractmethod
    def wrt_link_end(self, link_end: LinkEndId, t: float) -> np.ndarray | None:
        """(3, parameter size) partial, or ``None`` if ``link_end`` is unaffected."""


def _variational_ephemeris(environment: Environment, body: str):
    ephemeris = environment.body(body).ephemeris
    if not hasattr(ephemeris, "state_transition"):
        return None
    return ephemeris


class InitialStatePositionPartial(PositionPartial):
    """Rows 0-2 of the state-transition matrix of the propagated body."""

    def wrt_link_end(self, link_end: LinkEndId, t: float) -> np.ndarray | None:
        if link_end.body != self.parameter.body:
            return None
        ephemeris = _variational_ephemeris(self.environment, link_end.body)
        if ephemeris is None:
            return None
        return ephemeris.state_transition(t)[:3, :]


class GravitationalParameterPositionPartial(PositionPartial):
    """Sensitivity of a propagated body's position to its central body's mu."""

    def wrt_link_end(self, link_end: LinkEndId, t: float) -> np.ndarray | None:
        ephemeris = _variational_ephemeris(self.environment, link_end.body)
        if ephemeris is None or ephemeris.central_body != self.parameter.body:
            return None
        return ephemeris.sensitivity(t)[:3, :]


class StationPositionPartial(PositionPartial):
    """Body-fixed station offset rotated into the inertial frame."""

    def wrt_link_end(self, link_end: LinkEndId, t: float) -> np.ndarray | None:
        if link_end != LinkEndId(self.parameter.body, self.parameter.sub_id):
            return None
        return self.environment.rotation(link_end.body, t)


_SOURCES = {
    ParameterKind.INITIAL_STATE: InitialStatePositionPartial,
    ParameterKind.GRAVITATIONAL_PARAMETER: GravitationalParameterPositionPartial,
    ParameterKind.STATION_POSITION: StationPositionPartial,
}


def create_position_partial(parameter: ParameterId, environment: Environment) -> PositionPartial | None:
    source = _SOURCES.get(parameter.kind)
    return None if source is None else source(parameter, environment)

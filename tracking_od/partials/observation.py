"""Analytic observation partials for one (observation model, parameter) pair."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from tracking_od.environment.bodies import Environment
from tracking_od.models import LinkEndData, LinkEndType, ParameterId
from tracking_od.observations.models import ObservationModel
from tracking_od.partials.position import PositionPartial, create_position_partial
from tracking_od.partials.scaling import LinkEndScaling

PartialEntry = tuple[np.ndarray, float]


class ObservationPartial:
    """Sum of position, light-time-correction and bias contributions.

    Entries are kept separate, each with its evaluation time: link-end time
    for position contributions, the correction's own time (leg midpoint) for
    light-time corrections, and the observation time for biases.
    """

    def __init__(
        self,
        parameter: ParameterId,
        parameter_size: int,
        model: ObservationModel,
        scaler: LinkEndScaling,
        position_partials: Sequence[PositionPartial] = (),
    ) -> None:
        self.parameter = parameter
        self.parameter_size = int(parameter_size)
        self.model = model
        self.scaler = scaler
        self.position_partials = list(position_partials)

    def _position_entries(self, data: LinkEndData, fixed: LinkEndType) -> list[PartialEntry]:
        entries = []
        for idx, link_end in enumerate(self.model.entry_link_ends()):
            t = float(data.times[idx])
            for source in self.position_partials:
                raw = source.wrt_link_end(link_end, t)
                if raw is not None:
                    entries.append((self.scaler.state_scaling(idx, fixed) @ raw, t))
        return entries

    def _correction_entries(self, data: LinkEndData, fixed: LinkEndType) -> list[PartialEntry]:
        entries = []
        for leg, corrections in enumerate(self.model.entry_leg_corrections()):
            leg_data = data.leg(leg)
            for correction in corrections:
                partial = correction.partial(self.parameter, leg_data.states, leg_data.times)
                if partial is None:
                    continue
                matrix = np.outer(self.scaler.leg_scaling(leg, fixed), np.atleast_1d(partial))
                entries.append((matrix, correction.evaluation_time(leg_data.times)))
        return entries

    def _bias_entries(self, data: LinkEndData, time: float) -> list[PartialEntry]:
        if self.model.bias is None:
            return []
        partial = self.model.bias.partial(self.parameter, time, data)
        if partial is None:
            return []
        return [(np.atleast_2d(partial).reshape(self.model.size, self.parameter_size), time)]

    def calculate_partial(
        self,
        data: LinkEndData,
        fixed: LinkEndType,
        time: float | None = None,
    ) -> list[PartialEntry]:
        """All contributions for one epoch; the scaler must be updated for ``data``."""

        if time is None:
            time = float(data.times[-1])
        return (
            self._position_entries(data, fixed)
            + self._correction_entries(data, fixed)
            + self._bias_entries(data, time)
        )

    def total(self, data: LinkEndData, fixed: LinkEndType, time: float | None = None) -> np.ndarray:
        matrix = np.zeros((self.model.size, self.parameter_size))
        for entry, _ in self.calculate_partial(data, fixed, time):
            matrix = matrix + entry
        return matrix


def create_observation_partials(
    model: ObservationModel,
    scaler: LinkEndScaling,
    parameters: Sequence[tuple[ParameterId, int]],
    environment: Environment,
) -> list[ObservationPartial]:
    """One partial per (parameter id, size), in parameter order."""

    partials = []
    for parameter, size in parameters:
        source = create_position_partial(parameter, environment)
        partials.append(ObservationPartial(parameter, size, model, scaler, [] if source is None else [source]))
    return partials

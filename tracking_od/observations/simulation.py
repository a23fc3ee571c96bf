"""Synthetic observation generation with seeded noise."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import numpy as np

from tracking_od.config import SimulationConfig
from tracking_od.environment.bodies import Environment
from tracking_od.models import LinkEndData, LinkEndType, ObservationCollection, ObservationRecord
from tracking_od.observations.models import ObservationModel
from tracking_od.utils.logging import get_logger
from tracking_od.utils.wgs84 import elevation_deg

LOGGER = get_logger(__name__)


@dataclass
class ObservationSimulator:
    """Evaluate observation models at given times and add Gaussian noise.

    Epochs whose light time cannot be solved, or where a ground station sees
    the other end of its leg below ``elevation_mask_deg``, are skipped and
    recorded in ``skipped``.
    """

    config: SimulationConfig = field(default_factory=SimulationConfig)
    elevation_mask_deg: float | None = None
    rng: np.random.Generator | None = None
    skipped: list[tuple[ObservationModel, float, str]] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        if self.rng is None:
            self.rng = np.random.default_rng(self.config.rng_seed)

    def _below_mask(self, model: ObservationModel, data: LinkEndData) -> bool:
        environment = model.state_provider
        if self.elevation_mask_deg is None or not isinstance(environment, Environment):
            return False
        entries = model.entry_link_ends()
        for idx, end in enumerate(entries):
            if not end.station or environment.body(end.body).ellipsoid is None:
                continue
            other = idx + 1 if idx % 2 == 0 else idx - 1
            up = environment.station_up_vector(end, float(data.times[idx]))
            line_of_sight = data.states[other][:3] - data.states[idx][:3]
            if elevation_deg(up, line_of_sight) < self.elevation_mask_deg:
                return True
        return False

    def simulate(
        self,
        model: ObservationModel,
        times: Iterable[float],
        anchor: LinkEndType = LinkEndType.RECEIVER,
        noise: bool = True,
        sigma: float | None = None,
    ) -> ObservationCollection:
        if sigma is None:
            sigma = self.config.noise_sigma.get(model.observable_type, 0.0)
        collection = ObservationCollection()
        for t in times:
            outcome = model.compute_observation_with_link_end_data(float(t), anchor)
            if not outcome.ok:
                self.skipped.append((model, float(t), str(outcome.error)))
                continue
            value, data = outcome.value
            if self._below_mask(model, data):
                self.skipped.append((model, float(t), "below elevation mask"))
                continue
            if noise and sigma > 0.0:
                value = value + self.rng.normal(0.0, sigma, size=value.shape)
            collection.append(
                ObservationRecord(
                    link_ends=model.link_ends,
                    observable_type=model.observable_type,
                    t=float(t),
                    anchor=anchor,
                    observed=np.array(value, dtype=float),
                    sigma=float(sigma) if sigma > 0.0 else None,
                )
            )
        if self.skipped:
            LOGGER.info("Simulation skipped %d epochs so far", len(self.skipped))
        return collection

    def simulate_many(
        self,
        requests: Iterable[tuple[ObservationModel, Iterable[float]]],
        anchor: LinkEndType = LinkEndType.RECEIVER,
        noise: bool = True,
    ) -> ObservationCollection:
        """Simulate several models into one collection, in request order."""

        combined = ObservationCollection()
        for model, times in requests:
            for record in self.simulate(model, times, anchor=anchor, noise=noise):
                combined.append(record)
        return combined

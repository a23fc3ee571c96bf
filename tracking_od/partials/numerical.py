"""Centered finite-difference observation partials."""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from tracking_od.models import LinkEndType
from tracking_od.observations.models import ObservationModel


def numerical_partial(
    model: ObservationModel,
    get_value: Callable[[], np.ndarray],
    set_value: Callable[[np.ndarray], None],
    time: float,
    anchor: LinkEndType,
    steps: Sequence[float] | float,
    on_change: Callable[[], None] | None = None,
) -> np.ndarray:
    """d(observation)/d(parameter) by centered differences, one column per element.

    ``on_change`` runs after every perturbation, e.g. to re-propagate when the
    parameter changes the dynamics. The original value is restored on exit.
    """

    nominal = np.array(get_value(), dtype=float).reshape(-1)
    steps = np.broadcast_to(np.asarray(steps, dtype=float), nominal.shape)
    columns = []
    try:
        for idx in range(nominal.size):
            values = []
            for sign in (1.0, -1.0):
                perturbed = nominal.copy()
                perturbed[idx] += sign * steps[idx]
                set_value(perturbed)
                if on_change is not None:
                    on_change()
                values.append(model.compute_observation(time, anchor).unwrap())
            columns.append((values[0] - values[1]) / (2.0 * steps[idx]))
    finally:
        set_value(nominal)
        if on_change is not None:
            on_change()
    return np.column_stack(columns)

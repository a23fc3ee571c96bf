"""Residual and parameter history outputs for estimation runs."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from tracking_od.estimation.manager import EstimationOutput
from tracking_od.models import ObservationCollection

RESIDUAL_CSV_COLUMNS = [
    "iteration",
    "epoch",
    "t_s",
    "observable",
    "link_ends",
    "component",
    "observed",
    "residual",
    "valid",
]
_CSV_HEADER = ",".join(RESIDUAL_CSV_COLUMNS) + "\n"


def save_residuals_csv(path: str | Path, observations: ObservationCollection, output: EstimationOutput) -> None:
    """Save per-iteration residuals, one row per observable component."""

    target = Path(path)
    target.write_text(_CSV_HEADER)
    with target.open("a", encoding="utf-8") as handle:
        for record in output.iterations:
            offset = 0
            for epoch, observation in enumerate(observations):
                observed = np.atleast_1d(observation.observed)
                for component, value in enumerate(observed):
                    residual = record.residuals[offset + component]
                    row = [
                        record.iteration,
                        epoch,
                        observation.t,
                        observation.observable_type.value,
                        str(observation.link_ends),
                        component,
                        _format_value(float(value)),
                        _format_value(float(residual)),
                        _format_value(bool(record.valid[epoch])),
                    ]
                    handle.write(",".join(str(item) for item in row) + "\n")
                offset += observed.size


def save_run_npz(path: str | Path, output: EstimationOutput) -> None:
    """Save the estimation output arrays to a compressed NPZ file."""

    covariance = output.covariance if output.covariance is not None else np.full((0, 0), np.nan)
    np.savez_compressed(
        path,
        parameters=output.parameters,
        parameter_labels=np.array(output.parameter_labels, dtype=object),
        status=np.array(output.status.value),
        parameter_history=output.parameter_history,
        residual_history=output.residual_history,
        rms_history=output.rms_history,
        valid=output.valid,
        covariance=covariance,
    )


def load_run_npz(path: str | Path) -> dict:
    data = np.load(path, allow_pickle=True)
    return {key: data[key] for key in data.files}


def _format_value(value: float | int | bool | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and not np.isfinite(value):
        return ""
    return repr(value)

"""Plotting utilities for estimation run outputs."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import matplotlib
import numpy as np

from tracking_od.estimation.manager import EstimationOutput
from tracking_od.models import ObservationCollection

matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt  # noqa: E402


def save_run_plots(
    observations: ObservationCollection,
    output: EstimationOutput,
    *,
    out_dir: str | Path = "out",
    run_name: str | None = None,
) -> Path:
    """Save residual and convergence plots to an output directory."""

    output_dir = _prepare_output_dir(out_dir, run_name)
    times = _component_times(observations)
    _plot_residuals(times, output, output_dir / "residuals.png")
    _plot_rms(output, output_dir / "rms_history.png")
    _plot_formal_errors(output, output_dir / "formal_errors.png")
    return output_dir


def _prepare_output_dir(out_dir: str | Path, run_name: str | None) -> Path:
    root = Path(out_dir)
    label = run_name or datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = root / label
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def _component_times(observations: ObservationCollection) -> np.ndarray:
    if not len(observations):
        return np.zeros(0)
    return np.concatenate([np.full(record.observable_type.size, record.t) for record in observations])


def _plot_residuals(times: np.ndarray, output: EstimationOutput, path: Path) -> None:
    fig, ax = plt.subplots(figsize=(9, 4))
    for record in output.iterations:
        ax.plot(times, record.residuals, marker="o", markersize=2, linestyle="none", label=f"iter {record.iteration}")
    ax.set_title("Residuals vs Time")
    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Observed - computed")
    ax.grid(True, alpha=0.3)
    if output.iterations:
        ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def _plot_rms(output: EstimationOutput, path: Path) -> None:
    fig, ax = plt.subplots(figsize=(6, 4))
    iterations = [record.iteration for record in output.iterations]
    ax.semilogy(iterations, output.rms_history, marker="o", color="tab:green")
    ax.set_title(f"Weighted RMS ({output.status.value})")
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Weighted RMS")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def _plot_formal_errors(output: EstimationOutput, path: Path) -> None:
    fig, ax = plt.subplots(figsize=(9, 4))
    errors = output.formal_errors
    if errors is not None:
        ax.bar(np.arange(errors.size), errors, color="tab:blue")
        ax.set_xticks(np.arange(errors.size))
        ax.set_xticklabels(output.parameter_labels, rotation=45, ha="right", fontsize=7)
        ax.set_yscale("log")
    ax.set_title("Formal Errors")
    ax.set_ylabel("1-sigma")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)

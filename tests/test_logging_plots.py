from __future__ import annotations

import csv
import sys
from pathlib import Path

import numpy as np

from sim.run_range_estimation_demo import RangeDemoConfig, run_range_estimation_demo
from tracking_od.logger import RESIDUAL_CSV_COLUMNS, load_run_npz


def _short_config() -> RangeDemoConfig:
    return RangeDemoConfig(duration_s=1800.0, step_s=300.0, elevation_mask_deg=-90.0)


def test_demo_outputs_and_run_reload(tmp_path: Path) -> None:
    output, output_dir = run_range_estimation_demo(_short_config(), tmp_path / "pytest", "plots", save_figs=True)

    expected_files = {"residuals.csv", "run.npz", "residuals.png", "rms_history.png", "formal_errors.png"}
    assert output_dir == tmp_path / "pytest" / "plots"
    assert expected_files.issubset({path.name for path in output_dir.iterdir()})

    run = load_run_npz(output_dir / "run.npz")
    assert np.allclose(run["parameters"], output.parameters)
    assert str(run["status"]) == output.status.value
    assert run["parameter_history"].shape == (len(output.iterations), 6)
    assert run["covariance"].shape == (6, 6)

    with (output_dir / "residuals.csv").open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        rows = list(reader)
        columns = reader.fieldnames or []
    assert columns == RESIDUAL_CSV_COLUMNS
    assert {row["observable"] for row in rows} <= {"one_way_range", "n_way_range", "differenced_range"}
    assert int(rows[-1]["iteration"]) == len(output.iterations)


def test_no_plots_does_not_import_plot_module(tmp_path: Path) -> None:
    sys.modules.pop("tracking_od.plots", None)

    _, output_dir = run_range_estimation_demo(_short_config(), tmp_path, "quiet", save_figs=False)

    assert "tracking_od.plots" not in sys.modules
    assert not (output_dir / "residuals.png").exists()

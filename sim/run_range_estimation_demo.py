"""Simulate ground-station tracking of an Earth orbiter and re-estimate its orbit."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import numpy as np

from tracking_od.config import EstimationConfig, SimulationConfig
from tracking_od.constants import EARTH_ROTATION_RATE_RADPS, MU_EARTH
from tracking_od.environment import ConstantEphemeris, ConstantRateRotation, Environment
from tracking_od.environment.ephemerides import CircularOrbitEphemeris
from tracking_od.estimation import (
    EstimationManager,
    EstimationOutput,
    ParameterSet,
    PointMassPropagator,
    initial_state_parameter,
)
from tracking_od.logger import save_residuals_csv, save_run_npz
from tracking_od.models import LinkEnds, LinkEndType, ObservableType, ObservationCollection
from tracking_od.observations import ObservationModel, ObservationSimulator
from tracking_od.utils.logging import get_logger
from tracking_od.utils.wgs84 import WGS84

LOGGER = get_logger(__name__)

SPACECRAFT = "Orbiter"
EARTH = "Earth"


@dataclass(frozen=True)
class RangeDemoConfig:
    duration_s: float = 7200.0
    step_s: float = 120.0
    orbit_radius_m: float = 12_000_000.0
    inclination_deg: float = 50.0
    rng_seed: int = 42
    elevation_mask_deg: float = 10.0
    position_offset_m: float = 500.0
    velocity_offset_mps: float = 0.5
    stations: dict[str, tuple[float, float, float]] = field(
        default_factory=lambda: {
            "Madrid": (40.43, -4.25, 800.0),
            "Goldstone": (35.43, -116.89, 1000.0),
            "Canberra": (-35.40, 148.98, 700.0),
            "Kourou": (5.25, -52.80, 20.0),
        }
    )


@dataclass
class DemoScenario:
    environment: Environment
    propagator: PointMassPropagator
    models: list[ObservationModel]
    truth_initial_state: np.ndarray


def build_scenario(cfg: RangeDemoConfig) -> DemoScenario:
    environment = Environment()
    environment.add_body(
        EARTH,
        ConstantEphemeris(np.zeros(6)),
        MU_EARTH,
        rotation=ConstantRateRotation(EARTH_ROTATION_RATE_RADPS),
        ellipsoid=WGS84,
    )
    orbit = CircularOrbitEphemeris(cfg.orbit_radius_m, MU_EARTH, inclination_deg=cfg.inclination_deg)
    truth_initial_state = orbit.state(0.0)
    environment.add_body(SPACECRAFT, orbit)

    margin_s = 1.0
    propagator = PointMassPropagator(
        environment,
        SPACECRAFT,
        EARTH,
        truth_initial_state,
        initial_time=0.0,
        start_time=-cfg.step_s - margin_s,
        end_time=cfg.duration_s + margin_s,
    )

    models = []
    for name, (lat_deg, lon_deg, alt_m) in cfg.stations.items():
        station = environment.add_geodetic_station(EARTH, name, lat_deg, lon_deg, alt_m)
        one_way = LinkEnds.from_mapping({LinkEndType.TRANSMITTER: SPACECRAFT, LinkEndType.RECEIVER: station})
        two_way = LinkEnds.from_mapping(
            {
                LinkEndType.TRANSMITTER: station,
                LinkEndType.RETRANSMITTER: SPACECRAFT,
                LinkEndType.RECEIVER: station,
            }
        )
        models.append(ObservationModel(ObservableType.ONE_WAY_RANGE, one_way, environment))
        models.append(ObservationModel(ObservableType.N_WAY_RANGE, two_way, environment))
        models.append(
            ObservationModel(ObservableType.DIFFERENCED_RANGE, two_way, environment, integration_time_s=cfg.step_s)
        )
    return DemoScenario(environment, propagator, models, truth_initial_state)


def simulate_observations(scenario: DemoScenario, cfg: RangeDemoConfig) -> ObservationCollection:
    scenario.propagator.initial_state = scenario.truth_initial_state.copy()
    scenario.propagator.propagate()
    simulator = ObservationSimulator(
        SimulationConfig(rng_seed=cfg.rng_seed), elevation_mask_deg=cfg.elevation_mask_deg
    )
    times = np.arange(0.0, cfg.duration_s + 0.5 * cfg.step_s, cfg.step_s)
    observations = simulator.simulate_many([(model, times) for model in scenario.models])
    LOGGER.info("Simulated %d observations (%d epochs skipped)", len(observations), len(simulator.skipped))
    return observations


def run_range_estimation_demo(
    cfg: RangeDemoConfig | None = None,
    out_dir: str | Path = "out",
    run_name: str | None = None,
    save_figs: bool = True,
) -> tuple[EstimationOutput, Path]:
    cfg = cfg or RangeDemoConfig()
    scenario = build_scenario(cfg)
    observations = simulate_observations(scenario, cfg)

    offset = np.hstack([np.full(3, cfg.position_offset_m), np.full(3, cfg.velocity_offset_mps)])
    scenario.propagator.initial_state = scenario.truth_initial_state + offset
    parameters = ParameterSet([initial_state_parameter(scenario.propagator)])
    manager = EstimationManager(
        parameters,
        scenario.models,
        scenario.environment,
        scenario.propagator,
        EstimationConfig(max_iterations=8),
    )
    output = manager.estimate(observations)

    error = output.parameters - scenario.truth_initial_state
    LOGGER.info(
        "Finished with status %s: position error %.3f m, velocity error %.3e m/s",
        output.status.value,
        float(np.linalg.norm(error[:3])),
        float(np.linalg.norm(error[3:])),
    )

    output_dir = Path(out_dir) / (run_name or datetime.now().strftime("%Y%m%d_%H%M%S"))
    output_dir.mkdir(parents=True, exist_ok=True)
    save_residuals_csv(output_dir / "residuals.csv", observations, output)
    save_run_npz(output_dir / "run.npz", output)
    if save_figs:
        from tracking_od.plots import save_run_plots

        save_run_plots(observations, output, out_dir=output_dir.parent, run_name=output_dir.name)
    return output, output_dir


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Range/range-rate orbit determination demo")
    parser.add_argument("--duration", type=float, default=RangeDemoConfig.duration_s, help="Arc length (s)")
    parser.add_argument("--step", type=float, default=RangeDemoConfig.step_s, help="Observation spacing (s)")
    parser.add_argument("--rng-seed", type=int, default=RangeDemoConfig.rng_seed, help="Noise seed")
    parser.add_argument("--out-dir", type=str, default="out", help="Output root folder")
    parser.add_argument("--run-name", type=str, default=None, help="Output subfolder name")
    parser.add_argument("--no-plots", action="store_true", help="Skip saving plot PNGs")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_arg_parser().parse_args(argv)
    cfg = RangeDemoConfig(duration_s=args.duration, step_s=args.step, rng_seed=args.rng_seed)
    run_range_estimation_demo(cfg, out_dir=args.out_dir, run_name=args.run_name, save_figs=not args.no_plots)


if __name__ == "__main__":
    main()

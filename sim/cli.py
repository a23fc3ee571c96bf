"""Unified CLI entrypoint for tracking and orbit-determination runs."""

from __future__ import annotations

import argparse
import logging

from tracking_od.utils.logging import get_logger


def _cmd_demo(args: argparse.Namespace) -> None:
    from sim.run_range_estimation_demo import RangeDemoConfig, run_range_estimation_demo

    cfg = RangeDemoConfig(duration_s=args.duration, step_s=args.step, rng_seed=args.rng_seed)
    output, output_dir = run_range_estimation_demo(
        cfg,
        out_dir=args.out_dir,
        run_name=args.run_name,
        save_figs=not args.no_plots,
    )
    print(f"{output.status.value}: outputs in {output_dir}")


def _cmd_light_time(args: argparse.Namespace) -> None:
    import numpy as np

    from tracking_od.config import LightTimeConfig
    from tracking_od.environment import ConstantEphemeris, Environment
    from tracking_od.light_time import LightTimeCalculator
    from tracking_od.models import LinkEndId

    environment = Environment()
    environment.add_body("A", ConstantEphemeris(np.zeros(6)))
    environment.add_body("B", ConstantEphemeris(np.array([args.distance, 0.0, 0.0, 0.0, args.speed, 0.0])))
    calculator = LightTimeCalculator(
        environment,
        LinkEndId("A"),
        LinkEndId("B"),
        config=LightTimeConfig(tolerance_s=args.tolerance),
    )
    outcome = calculator.solve(args.time, anchor_is_receiver=True)
    if not outcome.ok:
        raise SystemExit(str(outcome.error))
    solution = outcome.value
    print(f"light time {solution.light_time:.12f} s after {solution.iterations} iterations")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tracking-od", description="Tracking observables and orbit determination")
    parser.add_argument("--verbose", action="store_true", help="Log debug messages")
    sub = parser.add_subparsers(dest="cmd", required=True)

    demo = sub.add_parser("demo", help="Simulate tracking data and estimate the orbit (headless)")
    demo.add_argument("--duration", type=float, default=7200.0, help="Arc length (s)")
    demo.add_argument("--step", type=float, default=120.0, help="Observation spacing (s)")
    demo.add_argument("--rng-seed", type=int, default=42, help="Noise seed")
    demo.add_argument("--out-dir", type=str, default="out", help="Root folder for outputs")
    demo.add_argument("--run-name", type=str, default=None, help="Output subfolder name")
    demo.add_argument("--no-plots", action="store_true", help="Skip saving plot PNGs")
    demo.set_defaults(func=_cmd_demo)

    light_time = sub.add_parser("light-time", help="Solve one light time between two bodies")
    light_time.add_argument("--distance", type=float, default=299_792_458.0, help="Separation (m)")
    light_time.add_argument("--speed", type=float, default=0.0, help="Transverse speed of the far body (m/s)")
    light_time.add_argument("--time", type=float, default=0.0, help="Reception time (s)")
    light_time.add_argument("--tolerance", type=float, default=1e-10, help="Convergence tolerance (s)")
    light_time.set_defaults(func=_cmd_light_time)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        get_logger("tracking_od", level=logging.DEBUG)
    args.func(args)


if __name__ == "__main__":
    main()

"""Configuration objects for light-time, simulation and estimation runs."""

from __future__ import annotations

from dataclasses import dataclass, field

from tracking_od.constants import SPEED_OF_LIGHT_MPS
from tracking_od.models import ObservableType


@dataclass(frozen=True)
class LightTimeConfig:
    """Light-time iteration settings.

    ``tolerance_s`` is an absolute bound on the change in light time between
    iterations.
    """

    tolerance_s: float = 1e-10
    max_iterations: int = 50
    signal_speed_mps: float = SPEED_OF_LIGHT_MPS
    iterate_corrections: bool = True


@dataclass(frozen=True)
class SimulationConfig:
    """Observation simulation defaults."""

    rng_seed: int = 42
    noise_sigma: dict[ObservableType, float] = field(
        default_factory=lambda: {
            ObservableType.ONE_WAY_RANGE: 1.0,
            ObservableType.N_WAY_RANGE: 1.0,
            ObservableType.DIFFERENCED_RANGE: 1e-4,
            ObservableType.ANGULAR_POSITION: 1e-8,
        }
    )


@dataclass(frozen=True)
class EstimationConfig:
    """Batch least-squares settings."""

    max_iterations: int = 5
    convergence_tolerance: float = 1e-8
    rms_tolerance: float = 1e-6
    condition_number_limit: float = 1e14
    normalize_partials: bool = True
    chi_square_alpha: float = 0.01
    default_sigma: dict[ObservableType, float] = field(
        default_factory=lambda: {
            ObservableType.ONE_WAY_RANGE: 1.0,
            ObservableType.N_WAY_RANGE: 1.0,
            ObservableType.DIFFERENCED_RANGE: 1e-4,
            ObservableType.ANGULAR_POSITION: 1e-8,
        }
    )

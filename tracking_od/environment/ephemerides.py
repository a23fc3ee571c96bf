"""Analytic ephemerides and rotation models for bodies in the environment."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


def rot_z(angle_rad: float) -> np.ndarray:
    cos_a = np.cos(angle_rad)
    sin_a = np.sin(angle_rad)
    return np.array(
        [
            [cos_a, -sin_a, 0.0],
            [sin_a, cos_a, 0.0],
            [0.0, 0.0, 1.0],
        ],
        dtype=float,
    )


def rot_x(angle_rad: float) -> np.ndarray:
    cos_a = np.cos(angle_rad)
    sin_a = np.sin(angle_rad)
    return np.array(
        [
            [1.0, 0.0, 0.0],
            [0.0, cos_a, -sin_a],
            [0.0, sin_a, cos_a],
        ],
        dtype=float,
    )


class Ephemeris(ABC):
    """Interface for a body's inertial state as a function of time."""

    @abstractmethod
    def state(self, t: float) -> np.ndarray:
        """Return the 6-element inertial state at ``t``."""


class ConstantEphemeris(Ephemeris):
    """Body at rest (or frozen) at a fixed state."""

    def __init__(self, state: np.ndarray) -> None:
        self._state = np.array(state, dtype=float).reshape(6)

    def state(self, t: float) -> np.ndarray:
        return self._state.copy()


class LinearEphemeris(Ephemeris):
    """Uniform rectilinear motion from a reference epoch."""

    def __init__(self, position_m: np.ndarray, velocity_mps: np.ndarray, reference_time: float = 0.0) -> None:
        self.position_m = np.array(position_m, dtype=float)
        self.velocity_mps = np.array(velocity_mps, dtype=float)
        self.reference_time = float(reference_time)

    def state(self, t: float) -> np.ndarray:
        dt = float(t) - self.reference_time
        return np.hstack([self.position_m + self.velocity_mps * dt, self.velocity_mps])


class CircularOrbitEphemeris(Ephemeris):
    """Circular Keplerian orbit about a (possibly moving) central ephemeris."""

    def __init__(
        self,
        radius_m: float,
        gravitational_parameter: float,
        *,
        inclination_deg: float = 0.0,
        raan_deg: float = 0.0,
        phase_rad: float = 0.0,
        central: Ephemeris | None = None,
    ) -> None:
        self.radius_m = float(radius_m)
        self.mean_motion = float(np.sqrt(gravitational_parameter / self.radius_m**3))
        self.phase_rad = float(phase_rad)
        self.central = central
        self._rot_plane = rot_z(np.deg2rad(raan_deg)) @ rot_x(np.deg2rad(inclination_deg))

    def state(self, t: float) -> np.ndarray:
        theta = self.mean_motion * t + self.phase_rad
        r_orb = self.radius_m * np.array([np.cos(theta), np.sin(theta), 0.0])
        v_orb = self.radius_m * self.mean_motion * np.array([-np.sin(theta), np.cos(theta), 0.0])
        state = np.hstack([self._rot_plane @ r_orb, self._rot_plane @ v_orb])
        if self.central is not None:
            state = state + self.central.state(t)
        return state


class ConstantRateRotation:
    """Rotation about the inertial z-axis at a constant rate."""

    def __init__(self, rate_radps: float, initial_angle_rad: float = 0.0, reference_time: float = 0.0) -> None:
        self.rate_radps = float(rate_radps)
        self.initial_angle_rad = float(initial_angle_rad)
        self.reference_time = float(reference_time)

    @property
    def angular_velocity(self) -> np.ndarray:
        return np.array([0.0, 0.0, self.rate_radps], dtype=float)

    def matrix(self, t: float) -> np.ndarray:
        """Body-fixed to inertial rotation at ``t``."""

        return rot_z(self.initial_angle_rad + self.rate_radps * (float(t) - self.reference_time))

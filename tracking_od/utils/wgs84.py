"""Reference-ellipsoid helpers for placing ground stations on a body."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Ellipsoid:
    """Oblate reference ellipsoid (defaults to WGS-84)."""

    equatorial_radius_m: float = 6_378_137.0
    flattening: float = 1.0 / 298.257223563

    @property
    def polar_radius_m(self) -> float:
        return self.equatorial_radius_m * (1.0 - self.flattening)

    @property
    def e2(self) -> float:
        return self.flattening * (2.0 - self.flattening)

    def prime_vertical_radius(self, lat_rad: float) -> float:
        return self.equatorial_radius_m / np.sqrt(1.0 - self.e2 * np.sin(lat_rad) ** 2)


WGS84 = Ellipsoid()


def geodetic_to_body_fixed(
    lat_deg: float, lon_deg: float, alt_m: float, ellipsoid: Ellipsoid = WGS84
) -> np.ndarray:
    """Body-fixed Cartesian position of a geodetic point.

    Args:
        lat_deg: Geodetic latitude in degrees.
        lon_deg: Longitude in degrees.
        alt_m: Height above the ellipsoid in meters.
        ellipsoid: Reference ellipsoid of the body.

    Returns:
        Position (x, y, z) in meters.
    """

    lat = np.deg2rad(lat_deg)
    lon = np.deg2rad(lon_deg)
    n = ellipsoid.prime_vertical_radius(lat)
    horizontal = (n + alt_m) * np.cos(lat)
    return np.array(
        [
            horizontal * np.cos(lon),
            horizontal * np.sin(lon),
            (n * (1.0 - ellipsoid.e2) + alt_m) * np.sin(lat),
        ],
        dtype=float,
    )


def body_fixed_to_geodetic(
    position_m: np.ndarray, ellipsoid: Ellipsoid = WGS84, max_iterations: int = 10
) -> tuple[float, float, float]:
    """Geodetic (lat_deg, lon_deg, alt_m) of a body-fixed position.

    Fixed-point iteration on latitude, started from the spherical guess.
    """

    x_m, y_m, z_m = (float(v) for v in position_m)
    lon = np.arctan2(y_m, x_m)
    p = np.hypot(x_m, y_m)
    if p == 0.0:
        lat = np.copysign(np.pi / 2.0, z_m)
        return (float(np.rad2deg(lat)), float(np.rad2deg(lon)), abs(z_m) - ellipsoid.polar_radius_m)

    lat = np.arctan2(z_m, p * (1.0 - ellipsoid.e2))
    alt = 0.0
    for _ in range(max_iterations):
        n = ellipsoid.prime_vertical_radius(lat)
        alt = p / np.cos(lat) - n
        lat_next = np.arctan2(z_m, p * (1.0 - ellipsoid.e2 * n / (n + alt)))
        converged = abs(lat_next - lat) < 1e-12
        lat = lat_next
        if converged:
            break
    alt = p / np.cos(lat) - ellipsoid.prime_vertical_radius(lat)
    return (float(np.rad2deg(lat)), float(np.rad2deg(lon)), float(alt))


def local_enu_matrix(lat_deg: float, lon_deg: float) -> np.ndarray:
    """Rows are the east, north and up unit vectors in body-fixed axes."""

    lat = np.deg2rad(lat_deg)
    lon = np.deg2rad(lon_deg)
    sin_lat, cos_lat = np.sin(lat), np.cos(lat)
    sin_lon, cos_lon = np.sin(lon), np.cos(lon)
    return np.array(
        [
            [-sin_lon, cos_lon, 0.0],
            [-sin_lat * cos_lon, -sin_lat * sin_lon, cos_lat],
            [cos_lat * cos_lon, cos_lat * sin_lon, sin_lat],
        ],
        dtype=float,
    )


def elevation_deg(up_unit: np.ndarray, line_of_sight: np.ndarray) -> float:
    """Elevation of ``line_of_sight`` above the plane normal to ``up_unit``."""

    los = np.asarray(line_of_sight, dtype=float)
    norm = np.linalg.norm(los)
    if norm == 0.0:
        return 90.0
    sin_el = float(np.dot(up_unit, los) / norm)
    return float(np.rad2deg(np.arcsin(np.clip(sin_el, -1.0, 1.0))))

"""Saastamoinen tropospheric delay for ground-station legs."""

from __future__ import annotations

import numpy as np

MIN_ELEVATION_DEG = 0.1


def water_vapor_pressure_hpa(temp_k: float, rel_humidity: float) -> float:
    temp_c = temp_k - 273.15
    saturation = 6.11 * np.exp((17.15 * temp_c) / (234.7 + temp_c))
    return float(rel_humidity * saturation)


def zenith_hydrostatic_delay_m(pressure_hpa: float, lat_deg: float, alt_m: float) -> float:
    lat_rad = np.deg2rad(lat_deg)
    gravity_term = 1.0 - 0.00266 * np.cos(2.0 * lat_rad) - 0.00028 * alt_m / 1000.0
    return float(0.0022768 * max(pressure_hpa, 0.0) / gravity_term)


def zenith_wet_delay_m(temp_k: float, rel_humidity: float) -> float:
    temp_k = max(200.0, temp_k)
    e_hpa = water_vapor_pressure_hpa(temp_k, float(np.clip(rel_humidity, 0.0, 1.0)))
    return float(0.002277 * (1255.0 / temp_k + 0.05) * e_hpa)


def saastamoinen_delay_m(
    elev_deg: float,
    lat_deg: float,
    alt_m: float,
    pressure_hpa: float = 1013.25,
    temp_k: float = 293.15,
    rel_humidity: float = 0.5,
) -> float:
    """Slant tropospheric delay in meters with a 1/sin(elevation) mapping."""

    zenith = zenith_hydrostatic_delay_m(pressure_hpa, lat_deg, alt_m) + zenith_wet_delay_m(temp_k, rel_humidity)
    mapping = 1.0 / np.sin(np.deg2rad(max(elev_deg, MIN_ELEVATION_DEG)))
    return float(max(zenith * mapping, 0.0))

import numpy as np

from tracking_od.utils.wgs84 import (
    WGS84,
    Ellipsoid,
    body_fixed_to_geodetic,
    elevation_deg,
    geodetic_to_body_fixed,
    local_enu_matrix,
)


def test_geodetic_to_body_fixed_is_finite() -> None:
    position = geodetic_to_body_fixed(36.597383, -121.874300, 14.0)
    assert position.shape == (3,)
    assert np.all(np.isfinite(position))


def test_equator_and_pole() -> None:
    assert np.allclose(geodetic_to_body_fixed(0.0, 0.0, 0.0), [WGS84.equatorial_radius_m, 0.0, 0.0])
    assert np.allclose(geodetic_to_body_fixed(90.0, 0.0, 0.0), [0.0, 0.0, WGS84.polar_radius_m], atol=1e-6)


def test_geodetic_roundtrip() -> None:
    lat_deg = 37.4275
    lon_deg = -122.1697
    alt_m = 30.0

    position = geodetic_to_body_fixed(lat_deg, lon_deg, alt_m)
    lat_rt, lon_rt, alt_rt = body_fixed_to_geodetic(position)

    assert np.isclose(lat_rt, lat_deg, atol=1e-6)
    assert np.isclose(lon_rt, lon_deg, atol=1e-6)
    assert np.isclose(alt_rt, alt_m, atol=1e-3)


def test_roundtrip_on_another_ellipsoid() -> None:
    mars = Ellipsoid(equatorial_radius_m=3_396_190.0, flattening=1.0 / 169.894)

    lat_rt, lon_rt, alt_rt = body_fixed_to_geodetic(geodetic_to_body_fixed(-14.57, 175.47, -2500.0, mars), mars)

    assert np.isclose(lat_rt, -14.57, atol=1e-6)
    assert np.isclose(lon_rt, 175.47, atol=1e-6)
    assert np.isclose(alt_rt, -2500.0, atol=1e-3)


def test_enu_is_orthonormal_and_elevation_overhead() -> None:
    enu = local_enu_matrix(40.43, -4.25)
    pos_station = geodetic_to_body_fixed(0.0, 0.0, 0.0)
    pos_target = geodetic_to_body_fixed(0.0, 0.0, 20_200_000.0)

    assert np.allclose(enu @ enu.T, np.eye(3))
    assert elevation_deg(local_enu_matrix(0.0, 0.0)[2], pos_target - pos_station) > 89.9
    assert np.isclose(elevation_deg(enu[2], enu[0]), 0.0)

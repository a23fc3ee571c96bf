"""Utilities shared across tracking_od.

NOTE: Keep this package lightweight.
Avoid importing matplotlib at import time.
"""

from tracking_od.utils.logging import get_logger
from tracking_od.utils.wgs84 import (
    WGS84,
    Ellipsoid,
    body_fixed_to_geodetic,
    elevation_deg,
    geodetic_to_body_fixed,
    local_enu_matrix,
)

__all__ = [
    "WGS84",
    "Ellipsoid",
    "body_fixed_to_geodetic",
    "elevation_deg",
    "geodetic_to_body_fixed",
    "get_logger",
    "local_enu_matrix",
]

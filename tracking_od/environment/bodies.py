"""Bodies, ground stations and the environment that owns them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import numpy as np

from tracking_od.environment.ephemerides import ConstantRateRotation, Ephemeris
from tracking_od.models import LinkEndId, StateProvider
from tracking_od.utils.wgs84 import Ellipsoid, body_fixed_to_geodetic, geodetic_to_body_fixed, local_enu_matrix


@dataclass
class GroundStation:
    """Station fixed to a body; position is expressed in body-fixed axes."""

    name: str
    position_m: np.ndarray

    def __post_init__(self) -> None:
        self.position_m = np.array(self.position_m, dtype=float).reshape(3)


@dataclass
class Body:
    name: str
    ephemeris: Ephemeris
    gravitational_parameter: float = 0.0
    rotation: ConstantRateRotation | None = None
    ellipsoid: Ellipsoid | None = None
    stations: dict[str, GroundStation] = field(default_factory=dict)

    def rotation_matrix(self, t: float) -> np.ndarray:
        if self.rotation is None:
            return np.eye(3)
        return self.rotation.matrix(t)


class Environment(StateProvider):
    """Owning collection of bodies and stations.

    Everything else refers to bodies and stations by name; estimatable
    parameters read and write the values held here.
    """

    def __init__(self, bodies: Iterable[Body] = (), ppn_gamma: float = 1.0) -> None:
        self.bodies: dict[str, Body] = {}
        self.ppn_gamma = float(ppn_gamma)
        for body in bodies:
            self.bodies[body.name] = body

    def add_body(
        self,
        name: str,
        ephemeris: Ephemeris,
        gravitational_parameter: float = 0.0,
        rotation: ConstantRateRotation | None = None,
        ellipsoid: Ellipsoid | None = None,
    ) -> Body:
        if name in self.bodies:
            raise ValueError(f"Body {name!r} already exists")
        body = Body(name, ephemeris, float(gravitational_parameter), rotation, ellipsoid)
        self.bodies[name] = body
        return body

    def body(self, name: str) -> Body:
        try:
            return self.bodies[name]
        except KeyError:
            raise KeyError(f"Unknown body {name!r}") from None

    def add_ground_station(self, body: str, name: str, position_m: np.ndarray) -> LinkEndId:
        owner = self.body(body)
        owner.stations[name] = GroundStation(name, position_m)
        return LinkEndId(body, name)

    def add_geodetic_station(
        self, body: str, name: str, lat_deg: float, lon_deg: float, alt_m: float = 0.0
    ) -> LinkEndId:
        ellipsoid = self.body(body).ellipsoid
        if ellipsoid is None:
            raise ValueError(f"Body {body!r} has no reference ellipsoid")
        return self.add_ground_station(body, name, geodetic_to_body_fixed(lat_deg, lon_deg, alt_m, ellipsoid))

    def station(self, link_end: LinkEndId) -> GroundStation:
        stations = self.body(link_end.body).stations
        if link_end.station not in stations:
            raise KeyError(f"Unknown station {link_end}")
        return stations[link_end.station]

    def set_ephemeris(self, body: str, ephemeris: Ephemeris) -> None:
        self.body(body).ephemeris = ephemeris

    def gravitational_parameter(self, body: str) -> float:
        return self.body(body).gravitational_parameter

    def set_gravitational_parameter(self, body: str, value: float) -> None:
        self.body(body).gravitational_parameter = float(value)

    def rotation(self, body: str, t: float) -> np.ndarray:
        return self.body(body).rotation_matrix(t)

    def state(self, link_end: LinkEndId, t: float) -> np.ndarray:
        body = self.body(link_end.body)
        state = np.array(body.ephemeris.state(t), dtype=float)
        if not link_end.station:
            return state
        offset = body.rotation_matrix(t) @ self.station(link_end).position_m
        state[:3] += offset
        if body.rotation is not None:
            state[3:] += np.cross(body.rotation.angular_velocity, offset)
        return state

    def station_geodetic(self, link_end: LinkEndId) -> tuple[float, float, float]:
        ellipsoid = self.body(link_end.body).ellipsoid
        if ellipsoid is None:
            raise ValueError(f"Body {link_end.body!r} has no reference ellipsoid")
        return body_fixed_to_geodetic(self.station(link_end).position_m, ellipsoid)

    def station_up_vector(self, link_end: LinkEndId, t: float) -> np.ndarray:
        """Inertial unit vector of the local vertical at a station."""

        lat_deg, lon_deg, _ = self.station_geodetic(link_end)
        return self.rotation(link_end.body, t) @ local_enu_matrix(lat_deg, lon_deg)[2]

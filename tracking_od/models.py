"""Core data models and interfaces for tracking observables."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Iterator, Mapping

import numpy as np

from tracking_od.errors import InvalidLinkEndRole


class LinkEndType(IntEnum):
    """Role of a link end; integer order is the signal-flow order."""

    TRANSMITTER = 0
    RETRANSMITTER = 1
    RETRANSMITTER2 = 2
    RETRANSMITTER3 = 3
    RECEIVER = 4

    @property
    def is_retransmitter(self) -> bool:
        return self not in (LinkEndType.TRANSMITTER, LinkEndType.RECEIVER)


@dataclass(frozen=True, order=True)
class LinkEndId:
    """Physical point of signal interaction: a body or a station on a body."""

    body: str
    station: str = ""

    def __str__(self) -> str:
        return f"{self.body}/{self.station}" if self.station else self.body


@dataclass(frozen=True)
class LinkEnds:
    """Ordered, immutable set of link ends along a signal path."""

    ends: tuple[tuple[LinkEndType, LinkEndId], ...]

    def __post_init__(self) -> None:
        roles = [role for role, _ in self.ends]
        if len(set(roles)) != len(roles):
            raise InvalidLinkEndRole(f"Duplicate link-end roles in {roles}")
        if LinkEndType.TRANSMITTER not in roles or LinkEndType.RECEIVER not in roles:
            raise InvalidLinkEndRole("Link ends need exactly one transmitter and one receiver")
        if roles != sorted(roles):
            raise InvalidLinkEndRole(f"Link ends are not in signal-flow order: {roles}")
        retransmitters = [role for role in roles if role.is_retransmitter]
        expected = list(LinkEndType)[1 : 1 + len(retransmitters)]
        if retransmitters != expected:
            raise InvalidLinkEndRole(f"Retransmitters must be numbered consecutively: {retransmitters}")

    @classmethod
    def from_mapping(cls, mapping: Mapping[LinkEndType, LinkEndId | tuple[str, str] | str]) -> "LinkEnds":
        """Build link ends from a role -> id mapping, in insertion order."""

        ends = []
        for role, end in mapping.items():
            if isinstance(end, str):
                end = LinkEndId(end)
            elif not isinstance(end, LinkEndId):
                end = LinkEndId(*end)
            ends.append((LinkEndType(role), end))
        return cls(tuple(ends))

    def __getitem__(self, role: LinkEndType) -> LinkEndId:
        for current, end in self.ends:
            if current == role:
                return end
        raise InvalidLinkEndRole(f"Link end {role.name} is not part of {self}")

    def __contains__(self, role: object) -> bool:
        return any(current == role for current, _ in self.ends)

    def __len__(self) -> int:
        return len(self.ends)

    def __iter__(self) -> Iterator[tuple[LinkEndType, LinkEndId]]:
        return iter(self.ends)

    def __str__(self) -> str:
        return " -> ".join(str(end) for _, end in self.ends)

    @property
    def roles(self) -> tuple[LinkEndType, ...]:
        return tuple(role for role, _ in self.ends)

    @property
    def n_legs(self) -> int:
        return len(self.ends) - 1

    def index(self, role: LinkEndType) -> int:
        """Position of ``role`` along the signal path."""

        for idx, (current, _) in enumerate(self.ends):
            if current == role:
                return idx
        raise InvalidLinkEndRole(f"Link end {role.name} is not part of {self}")

    def legs(self) -> list[tuple[LinkEndId, LinkEndId]]:
        """(transmitting end, receiving end) of every leg, transmitter leg first."""

        return [(self.ends[i][1], self.ends[i + 1][1]) for i in range(self.n_legs)]


class ObservableType(Enum):
    """Kind of observable; fixes its size and the link topology it needs."""

    ONE_WAY_RANGE = "one_way_range"
    N_WAY_RANGE = "n_way_range"
    DIFFERENCED_RANGE = "differenced_range"
    ANGULAR_POSITION = "angular_position"

    @property
    def size(self) -> int:
        return 2 if self is ObservableType.ANGULAR_POSITION else 1

    def check_link_ends(self, link_ends: LinkEnds) -> None:
        """Raise ``InvalidLinkEndRole`` if ``link_ends`` cannot carry this observable."""

        if self in (ObservableType.ONE_WAY_RANGE, ObservableType.ANGULAR_POSITION):
            if len(link_ends) != 2:
                raise InvalidLinkEndRole(f"{self.value} needs exactly a transmitter and a receiver")
        elif self is ObservableType.N_WAY_RANGE and len(link_ends) < 3:
            raise InvalidLinkEndRole("n_way_range needs at least one retransmitter")


class ParameterKind(Enum):
    INITIAL_STATE = "initial_state"
    GRAVITATIONAL_PARAMETER = "gravitational_parameter"
    PPN_GAMMA = "ppn_gamma"
    STATION_POSITION = "station_position"
    CONSTANT_BIAS = "constant_bias"
    CLOCK_POLYNOMIAL = "clock_polynomial"


@dataclass(frozen=True)
class ParameterId:
    """Stable key of an estimatable parameter: kind, owning body, optional sub-id."""

    kind: ParameterKind
    body: str = ""
    sub_id: str = ""

    def __str__(self) -> str:
        parts = [self.kind.value, self.body, self.sub_id]
        return ":".join(part for part in parts if part)


@dataclass(frozen=True)
class LinkEndData:
    """Times and states used at every leg end, transmitter leg first.

    Leg ``i`` transmits at index ``2 * i`` and receives at ``2 * i + 1``.
    """

    times: np.ndarray
    states: np.ndarray

    @property
    def n_legs(self) -> int:
        return len(self.times) // 2

    def leg(self, index: int) -> "LinkEndData":
        return LinkEndData(self.times[2 * index : 2 * index + 2], self.states[2 * index : 2 * index + 2])

    @classmethod
    def concatenate(cls, parts: list["LinkEndData"]) -> "LinkEndData":
        return cls(
            np.concatenate([part.times for part in parts]),
            np.vstack([part.states for part in parts]),
        )


@dataclass(frozen=True)
class ObservationRecord:
    """One observed (or simulated) value of one observable at one epoch."""

    link_ends: LinkEnds
    observable_type: ObservableType
    t: float
    anchor: LinkEndType
    observed: np.ndarray
    sigma: float | None = None


@dataclass
class ObservationCollection:
    """Ordered set of observation records."""

    records: list[ObservationRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ObservationRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> ObservationRecord:
        return self.records[index]

    def append(self, record: ObservationRecord) -> None:
        self.records.append(record)

    @property
    def total_size(self) -> int:
        return int(sum(record.observable_type.size for record in self.records))

    @property
    def times(self) -> np.ndarray:
        return np.array([record.t for record in self.records], dtype=float)

    def observed_vector(self) -> np.ndarray:
        if not self.records:
            return np.zeros(0)
        return np.concatenate([np.atleast_1d(record.observed) for record in self.records]).astype(float)

    def model_keys(self) -> list[tuple[ObservableType, LinkEnds]]:
        """Distinct (observable type, link ends) pairs, in first-seen order."""

        keys: dict[tuple[ObservableType, LinkEnds], None] = {}
        for record in self.records:
            keys.setdefault((record.observable_type, record.link_ends), None)
        return list(keys)


class StateProvider(ABC):
    """Interface for inertial state and orientation lookups."""

    @abstractmethod
    def state(self, link_end: LinkEndId, t: float) -> np.ndarray:
        """Return the 6-element inertial state of ``link_end`` at ``t``."""

    @abstractmethod
    def rotation(self, body: str, t: float) -> np.ndarray:
        """Return the body-fixed to inertial rotation matrix of ``body`` at ``t``."""


class Propagator(ABC):
    """Interface for dynamics propagation with variational equations."""

    @abstractmethod
    def propagate(self) -> Any:
        """Propagate with the current parameter values and return the history."""

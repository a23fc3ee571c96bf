"""Error taxonomy and explicit result type for per-epoch entry points."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class TrackingError(Exception):
    """Base class for all tracking/estimation errors."""


class InvalidLinkEndRole(TrackingError, ValueError):
    """Link-end set is malformed or a requested role is not part of it."""


class IncompatibleLinkEnd(TrackingError, ValueError):
    """A scaling was requested for a link end it cannot be computed for."""


class NonConvergence(TrackingError, RuntimeError):
    """Light-time iteration exceeded its iteration bound."""

    def __init__(self, message: str, *, iterations: int, last_change_s: float) -> None:
        super().__init__(message)
        self.iterations = iterations
        self.last_change_s = last_change_s


class InvalidGeometry(TrackingError, RuntimeError):
    """Negative, non-finite or degenerate light time."""


class EphemerisOutOfRange(TrackingError, ValueError):
    """State requested outside the span an ephemeris covers."""


class EstimationDegenerate(TrackingError, RuntimeError):
    """Normal equations are numerically singular."""

    def __init__(self, message: str, *, condition_number: float | None = None) -> None:
        super().__init__(message)
        self.condition_number = condition_number


# Errors caused by the data of a single epoch; everything else is a setup defect.
EPOCH_ERRORS = (NonConvergence, InvalidGeometry, EphemerisOutOfRange)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Success value or tagged error returned by per-epoch entry points."""

    value: T | None = None
    error: TrackingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the carried error if there is one."""

        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: TrackingError) -> "Outcome[T]":
        return cls(error=error)

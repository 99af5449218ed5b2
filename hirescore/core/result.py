"""
Result pattern for type-safe error handling.

Scheduling operations never raise for business outcomes. They return either
``Success(value)`` or ``Failure(error)`` where ``error`` is one of the typed
error records below, so callers can branch on the outcome explicitly.

Example:
    result = await scheduling_service.get(principal, interview_id)
    match result:
        case Success(interview):
            print(interview.title)
        case Failure(NotFoundError() as error):
            print(error)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Sequence, TypeVar, Union, cast

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """Represents a successful operation result."""

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Extract the success value."""
        return self.value

    def unwrap_or(self, _default: T) -> T:
        return self.value

    def map(self, func: Callable[[T], U]) -> Result[U, E]:
        """Transform the success value."""
        return Success(func(self.value))

    def flat_map(self, func: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain operations that return Results."""
        return func(self.value)

    def __repr__(self) -> str:
        return f"Success({self.value!r})"


@dataclass(frozen=True, slots=True)
class Failure(Generic[E]):
    """Represents a failed operation result."""

    error: E

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def unwrap(self) -> Any:
        """Raise when trying to extract a value from a failure."""
        if isinstance(self.error, Exception):
            raise self.error
        raise RuntimeError(f"Operation failed: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, _func: Callable[[Any], U]) -> Result[U, E]:
        return cast(Result[U, E], self)

    def flat_map(self, _func: Callable[[Any], Result[U, E]]) -> Result[U, E]:
        return cast(Result[U, E], self)

    def __repr__(self) -> str:
        return f"Failure({self.error!r})"


Result = Union[Success[T], Failure[E]]


def success(value: T) -> Success[T]:
    """Create a Success result."""
    return Success(value)


def failure(error: E) -> Failure[E]:
    """Create a Failure result."""
    return Failure(error)


# Error taxonomy


@dataclass(frozen=True, slots=True)
class ValidationError:
    """Missing or malformed input. Recoverable by correcting the request."""

    field: str
    message: str
    value: str | None = None

    def __str__(self) -> str:
        if self.value:
            return f"{self.field}: {self.message} (got: {self.value})"
        return f"{self.field}: {self.message}"


@dataclass(frozen=True, slots=True)
class NotAuthorizedError:
    """Role or ownership mismatch. Never retried automatically."""

    message: str
    user_id: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class NotFoundError:
    """Entity not found error."""

    entity_type: str
    entity_id: str | int
    message: str | None = None

    def __str__(self) -> str:
        if self.message:
            return self.message
        return f"{self.entity_type} with id={self.entity_id} not found"


@dataclass(frozen=True, slots=True)
class InvalidSlotError:
    """Accepted slot is not one of the proposed slots."""

    slot: Any
    message: str = "Selected slot is not in proposed time slots"

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class SlotConflictError:
    """Overlapping confirmed booking detected.

    ``conflicts`` holds one entry per clashing candidate slot together with the
    competing interview requests, so the caller can propose alternatives. It is
    empty when the failure comes from exhausted concurrency retries.
    """

    message: str
    conflicts: Sequence[Any] = field(default_factory=tuple)

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ConcurrencyConflictError:
    """An optimistic write lost the race. Safe to retry the whole operation."""

    entity_type: str
    entity_id: str | int
    attempts: int = 1

    def __str__(self) -> str:
        return (
            f"{self.entity_type} {self.entity_id} was modified concurrently "
            f"(gave up after {self.attempts} attempt(s))"
        )


@dataclass(frozen=True, slots=True)
class DatabaseError:
    """Database operation error."""

    operation: str
    message: str
    original_exception: Exception | None = None

    def __str__(self) -> str:
        return f"Database error during {self.operation}: {self.message}"


SchedulingError = Union[
    ValidationError,
    NotAuthorizedError,
    NotFoundError,
    InvalidSlotError,
    SlotConflictError,
    ConcurrencyConflictError,
    DatabaseError,
]


__all__ = [
    "ConcurrencyConflictError",
    "DatabaseError",
    "Failure",
    "InvalidSlotError",
    "NotAuthorizedError",
    "NotFoundError",
    "Result",
    "SchedulingError",
    "SlotConflictError",
    "Success",
    "ValidationError",
    "failure",
    "success",
]

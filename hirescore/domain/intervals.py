"""Half-open time ranges and the overlap arithmetic the scheduler is built on."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Union

from hirescore.core.time_utils import ensure_aware_utc, parse_instant


@dataclass(frozen=True)
class TimeRange:
    """``[start, end)`` in UTC. ``start`` must be strictly before ``end``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start = ensure_aware_utc(self.start)
        end = ensure_aware_utc(self.end)
        if start >= end:
            raise ValueError(
                f"time range start must be before end (got {start.isoformat()} - {end.isoformat()})"
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def parse(cls, value: Union["TimeRange", Mapping[str, Any]]) -> "TimeRange":
        if isinstance(value, TimeRange):
            return value
        try:
            start, end = value["start"], value["end"]
        except (KeyError, TypeError) as exc:
            raise ValueError("time range requires 'start' and 'end'") from exc
        return cls(parse_instant(start), parse_instant(end))

    def as_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    def __str__(self) -> str:
        return f"{self.start.isoformat()} - {self.end.isoformat()}"


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    """Touching endpoints do not count as an overlap."""
    return a.start < b.end and b.start < a.end


def contains(outer: TimeRange, inner: TimeRange) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


__all__ = ["TimeRange", "contains", "overlaps"]

"""Conflict detection against confirmed bookings.

A conflict is a candidate slot that overlaps the confirmed slot of another
``confirmed`` interview request sharing at least one participant. The answer
is only valid at the instant it was computed: callers pair it with the
version snapshot they read in the same transaction (see scheduling_service).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from hirescore.core.result import DatabaseError, Result, success
from hirescore.domain.intervals import TimeRange, overlaps
from hirescore.domain.models import InterviewRequest

logger = logging.getLogger(__name__)


class ConfirmedBookingSource(Protocol):
    async def find_confirmed_overlapping(
        self,
        participant_ids: Iterable[int],
        slots: Sequence[TimeRange],
        *,
        exclude_id: Optional[int] = None,
    ) -> Result[Sequence[InterviewRequest], DatabaseError]:
        ...


@dataclass(frozen=True)
class SlotConflict:
    slot: TimeRange
    conflicting_interviews: Tuple[InterviewRequest, ...]

    def as_dict(self) -> dict:
        return {
            "slot": self.slot.as_dict(),
            "conflicts": [
                {
                    "id": interview.id,
                    "title": interview.title,
                    "recruiter_id": interview.recruiter_id,
                    "applicant_ids": interview.applicant_ids,
                    "confirmed_slot": interview.confirmed_slot.as_dict()
                    if interview.confirmed_slot
                    else None,
                }
                for interview in self.conflicting_interviews
            ],
        }


def bucket_conflicts(
    candidate_slots: Sequence[TimeRange],
    bookings: Iterable[InterviewRequest],
) -> List[SlotConflict]:
    """Group confirmed ``bookings`` under the candidate slots they overlap.

    Input order is preserved; slots without a hit are left out.
    """
    booked = [(booking, booking.confirmed_slot) for booking in bookings]
    conflicts: List[SlotConflict] = []
    for slot in candidate_slots:
        hits = tuple(
            booking
            for booking, confirmed in booked
            if confirmed is not None and overlaps(slot, confirmed)
        )
        if hits:
            conflicts.append(SlotConflict(slot=slot, conflicting_interviews=hits))
    return conflicts


async def find_conflicts(
    source: ConfirmedBookingSource,
    participant_ids: Iterable[int],
    candidate_slots: Sequence[TimeRange],
    exclude_interview_id: Optional[int] = None,
) -> Result[List[SlotConflict], DatabaseError]:
    participants = sorted(set(participant_ids))
    bookings = await source.find_confirmed_overlapping(
        participants, candidate_slots, exclude_id=exclude_interview_id
    )
    if bookings.is_failure():
        return bookings

    conflicts = bucket_conflicts(candidate_slots, bookings.unwrap())
    if conflicts:
        logger.info(
            "Detected %d conflicting slot(s) for participants %s",
            len(conflicts),
            participants,
        )
    return success(conflicts)


__all__ = ["ConfirmedBookingSource", "SlotConflict", "bucket_conflicts", "find_conflicts"]

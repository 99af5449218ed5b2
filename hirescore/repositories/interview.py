"""Interview request repository: participant-scoped lookups, overlap search, CAS writes."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import and_, delete, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from hirescore.core.repository.base import BaseRepository
from hirescore.core.result import DatabaseError, Result, success
from hirescore.core.time_utils import utcnow
from hirescore.domain.errors import ConcurrencyConflict
from hirescore.domain.intervals import TimeRange
from hirescore.domain.models import (
    ApplicantResponse,
    InterviewRequest,
    InterviewStatus,
    ProposedSlot,
)

logger = logging.getLogger(__name__)


class InterviewRepository(BaseRepository[InterviewRequest]):
    """
    Repository for InterviewRequest aggregates.

    Reads eagerly load slots, responses and participant accounts so the
    aggregate is usable after the session closes. Writes to an existing request go through
    ``compare_and_set`` and never through ORM flushes.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(InterviewRequest, session)

    def _base_query(self) -> Select:
        return select(InterviewRequest).options(
            selectinload(InterviewRequest.recruiter),
            selectinload(InterviewRequest.slots),
            selectinload(InterviewRequest.responses).selectinload(ApplicantResponse.applicant),
        )

    async def list_for_recruiter(
        self, recruiter_id: int, *, status: Optional[str] = None
    ) -> Result[Sequence[InterviewRequest], DatabaseError]:
        criteria = [InterviewRequest.recruiter_id == recruiter_id]
        if status:
            criteria.append(InterviewRequest.status == status)
        return await self.find(*criteria, order_by=_newest_first())

    async def list_for_applicant(
        self, applicant_id: int, *, status: Optional[str] = None
    ) -> Result[Sequence[InterviewRequest], DatabaseError]:
        invited = select(ApplicantResponse.interview_id).where(
            ApplicantResponse.applicant_id == applicant_id
        )
        criteria = [InterviewRequest.id.in_(invited)]
        if status:
            criteria.append(InterviewRequest.status == status)
        return await self.find(*criteria, order_by=_newest_first())

    async def find_confirmed_overlapping(
        self,
        participant_ids: Iterable[int],
        slots: Sequence[TimeRange],
        *,
        exclude_id: Optional[int] = None,
    ) -> Result[Sequence[InterviewRequest], DatabaseError]:
        """Confirmed requests touching any participant whose slot overlaps any of ``slots``.

        One round trip for all slots: the half-open overlap test is pushed into
        SQL and OR-ed across the candidates.
        """
        ids = sorted(set(participant_ids))
        if not ids or not slots:
            return success([])

        invited = select(ApplicantResponse.interview_id).where(
            ApplicantResponse.applicant_id.in_(ids)
        )
        criteria = [
            InterviewRequest.status == InterviewStatus.CONFIRMED,
            or_(InterviewRequest.recruiter_id.in_(ids), InterviewRequest.id.in_(invited)),
            or_(
                *(
                    and_(
                        InterviewRequest.confirmed_start < slot.end,
                        InterviewRequest.confirmed_end > slot.start,
                    )
                    for slot in slots
                )
            ),
        ]
        if exclude_id is not None:
            criteria.append(InterviewRequest.id != exclude_id)
        return await self.find(*criteria, order_by=InterviewRequest.confirmed_start.asc())

    async def compare_and_set(
        self,
        id: int,
        expected_version: int,
        values: Mapping[str, Any],
        *,
        expected_status: Optional[str] = None,
    ) -> int:
        """Apply ``values`` if the request is still at ``expected_version``.

        ``version`` and ``updated_at`` are maintained here. Returns the new
        version; raises ``ConcurrencyConflict`` when no row matched.
        """
        criteria = [InterviewRequest.id == id, InterviewRequest.version == expected_version]
        if expected_status is not None:
            criteria.append(InterviewRequest.status == expected_status)
        result = await self.session.execute(
            update(InterviewRequest)
            .where(*criteria)
            .values(**values, version=InterviewRequest.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info(
                "InterviewRequest %s is no longer at version %s (status %s)",
                id,
                expected_version,
                expected_status or "any",
            )
            raise ConcurrencyConflict("InterviewRequest", id, expected_version)
        return expected_version + 1

    async def set_response(
        self, interview_id: int, applicant_id: int, values: Mapping[str, Any]
    ) -> None:
        """Overwrite one applicant's response row. Call after ``compare_and_set``."""
        result = await self.session.execute(
            update(ApplicantResponse)
            .where(
                ApplicantResponse.interview_id == interview_id,
                ApplicantResponse.applicant_id == applicant_id,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrencyConflict("ApplicantResponse", f"{interview_id}/{applicant_id}")

    async def replace_slots(self, interview_id: int, slots: Sequence[TimeRange]) -> None:
        """Swap the proposed slot list. Call after ``compare_and_set``."""
        await self.session.execute(
            delete(ProposedSlot).where(ProposedSlot.interview_id == interview_id)
        )
        await self.session.execute(
            insert(ProposedSlot),
            [
                {
                    "interview_id": interview_id,
                    "position": position,
                    "start_utc": slot.start,
                    "end_utc": slot.end,
                }
                for position, slot in enumerate(slots)
            ],
        )


def _newest_first():
    return InterviewRequest.created_at.desc(), InterviewRequest.id.desc()

"""Participant calendar versions.

A confirmed booking is a claim on the calendars of every participant. Each
user has a version counter; a scheduling write reads the counters together
with its conflict check and later advances them only if nobody else did in
between. Two writers racing for the same participant cannot both commit.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hirescore.core.repository.base import BaseRepository
from hirescore.core.time_utils import utcnow
from hirescore.domain.errors import ConcurrencyConflict
from hirescore.domain.models import ParticipantCalendar

logger = logging.getLogger(__name__)


class ParticipantCalendarRepository(BaseRepository[ParticipantCalendar]):
    def __init__(self, session: AsyncSession):
        super().__init__(ParticipantCalendar, session)

    async def read_versions(self, user_ids: Iterable[int]) -> Dict[int, int]:
        """Current version per user; users without a row are at version 0."""
        ids = sorted(set(user_ids))
        versions = {user_id: 0 for user_id in ids}
        if not ids:
            return versions
        rows = await self.session.execute(
            select(ParticipantCalendar.user_id, ParticipantCalendar.version).where(
                ParticipantCalendar.user_id.in_(ids)
            )
        )
        for user_id, version in rows:
            versions[user_id] = version
        return versions

    async def advance(self, expected: Mapping[int, int]) -> None:
        """Bump every calendar in ``expected`` by one, or raise ``ConcurrencyConflict``.

        Rows are touched in user id order so concurrent writers on PostgreSQL
        queue up instead of deadlocking.
        """
        now = utcnow()
        for user_id in sorted(expected):
            version = expected[user_id]
            if version == 0:
                # the surrounding transaction is rolled back on conflict
                try:
                    await self.session.execute(
                        insert(ParticipantCalendar).values(
                            user_id=user_id, version=1, updated_at=now
                        )
                    )
                except IntegrityError as exc:
                    logger.info("Calendar for user %s was created concurrently", user_id)
                    raise ConcurrencyConflict("ParticipantCalendar", user_id, 0) from exc
                continue

            result = await self.session.execute(
                update(ParticipantCalendar)
                .where(
                    ParticipantCalendar.user_id == user_id,
                    ParticipantCalendar.version == version,
                )
                .values(version=ParticipantCalendar.version + 1, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.info(
                    "Calendar for user %s moved past version %s", user_id, version
                )
                raise ConcurrencyConflict("ParticipantCalendar", user_id, version)

"""
Unit of Work for transaction management.

One UnitOfWork is one database transaction shared by all repositories.
The scheduling service opens a short one for its read phase and a separate
one for each conditional write attempt.

Example:
    async with UnitOfWork() as uow:
        result = await uow.interviews.get(interview_id)
        ...
        await uow.interviews.compare_and_set(interview_id, version, {"title": "New"})
        await uow.commit()
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Type

from sqlalchemy.ext.asyncio import AsyncSession

from hirescore.core.db import new_async_session

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Owns an AsyncSession and exposes the repositories bound to it.

    Nothing is committed implicitly: callers commit explicitly, and leaving
    the block with an exception rolls back.
    """

    def __init__(self, session: AsyncSession | None = None):
        self._session = session
        self._should_close = session is None

    async def __aenter__(self) -> UnitOfWork:
        if self._session is None:
            self._session = new_async_session()
        self._init_repositories()
        return self

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
                logger.debug(
                    "Transaction rolled back due to %s: %s", exc_type.__name__, exc_val
                )
        finally:
            if self._should_close and self._session is not None:
                await self._session.close()
                self._session = None

    def _init_repositories(self) -> None:
        # Imported here to avoid circular imports with the repositories package
        from hirescore.repositories import (
            InterviewRepository,
            ParticipantCalendarRepository,
            UserRepository,
        )

        session = self.session
        self.interviews = InterviewRepository(session)
        self.users = UserRepository(session)
        self.calendars = ParticipantCalendarRepository(session)

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("Session not initialized. Use async with UnitOfWork().")
        return self._session

    async def commit(self) -> None:
        try:
            await self.session.commit()
            logger.debug("Transaction committed successfully")
        except Exception as e:
            logger.error("Error committing transaction: %s", e, exc_info=True)
            await self.rollback()
            raise

    async def rollback(self) -> None:
        await self.session.rollback()


def create_uow(session: AsyncSession | None = None) -> UnitOfWork:
    """Factory used as the default ``uow_factory`` of the scheduling service."""
    return UnitOfWork(session)

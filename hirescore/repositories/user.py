"""User repository: applicant lookup for invitations and the recruiter picker."""

from __future__ import annotations

from typing import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hirescore.core.repository.base import BaseRepository
from hirescore.core.result import DatabaseError, Result, success
from hirescore.domain.models import User, UserRole


class UserRepository(BaseRepository[User]):
    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def find_applicants(self, user_ids: Iterable[int]) -> Result[Sequence[User], DatabaseError]:
        """Return the users among ``user_ids`` that hold the applicant role."""
        ids = list(user_ids)
        if not ids:
            return success([])
        try:
            stmt = select(User).where(User.id.in_(ids), User.role == UserRole.APPLICANT)
            return success((await self.session.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            return self._db_failure("find_applicants", e)

    async def list_verified_applicants(self) -> Result[Sequence[User], DatabaseError]:
        return await self.find(
            User.role == UserRole.APPLICANT,
            User.is_verified.is_(True),
            order_by=User.email.asc(),
        )

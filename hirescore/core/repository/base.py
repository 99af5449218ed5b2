"""
Base repository with the common read/write operations.

Every method returns a ``Result``: storage exceptions are logged and turned
into ``DatabaseError`` failures, lookups that find nothing become
``NotFoundError`` failures.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Sequence, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from hirescore.core.result import (
    DatabaseError,
    Failure,
    NotFoundError,
    Result,
    failure,
    success,
)
from hirescore.domain.base import Base

logger = logging.getLogger(__name__)

T_Model = TypeVar("T_Model", bound=Base)


class BaseRepository(Generic[T_Model]):
    """
    Generic repository for a single SQLAlchemy model.

    Example:
        class UserRepository(BaseRepository[User]):
            def __init__(self, session: AsyncSession):
                super().__init__(User, session)
    """

    def __init__(self, model: Type[T_Model], session: AsyncSession):
        self.model = model
        self.session = session

    @property
    def model_name(self) -> str:
        return self.model.__name__

    def _db_failure(self, operation: str, exc: Exception) -> Failure[DatabaseError]:
        logger.error("Database error in %s.%s", self.model_name, operation, exc_info=True)
        return failure(
            DatabaseError(
                operation=f"{self.model_name}.{operation}",
                message=str(exc),
                original_exception=exc,
            )
        )

    def _base_query(self) -> Select:
        """Statement used by ``get``; subclasses add eager loading here."""
        return select(self.model)

    async def get(self, id: Any) -> Result[T_Model, NotFoundError | DatabaseError]:
        """Get entity by primary key."""
        try:
            pk = self.model.__mapper__.primary_key[0]
            stmt = self._base_query().where(pk == id)
            entity = (await self.session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            return self._db_failure(f"get(id={id})", e)

        if entity is None:
            return failure(NotFoundError(entity_type=self.model_name, entity_id=id))
        return success(entity)

    async def find(
        self,
        *criteria: Any,
        order_by: Any | None = None,
    ) -> Result[Sequence[T_Model], DatabaseError]:
        """Return every entity matching ``criteria``."""
        try:
            stmt = self._base_query().where(*criteria)
            if isinstance(order_by, (tuple, list)):
                stmt = stmt.order_by(*order_by)
            elif order_by is not None:
                stmt = stmt.order_by(order_by)
            result = await self.session.execute(stmt)
            return success(result.scalars().unique().all())
        except SQLAlchemyError as e:
            return self._db_failure("find", e)

    async def add(self, entity: T_Model) -> Result[T_Model, DatabaseError]:
        """Add a new entity and flush so its primary key is populated."""
        try:
            self.session.add(entity)
            await self.session.flush()
            return success(entity)
        except IntegrityError as e:
            logger.warning("Integrity error in %s.add(): %s", self.model_name, e)
            return failure(
                DatabaseError(
                    operation=f"{self.model_name}.add",
                    message=f"Constraint violation: {e.orig}",
                    original_exception=e,
                )
            )
        except SQLAlchemyError as e:
            return self._db_failure("add", e)

"""Minimal migration runner inspired by Alembic.

Revisions live in ``hirescore.migrations.versions``; each module defines
``revision``, ``down_revision`` and ``upgrade(conn)`` taking a synchronous
SQLAlchemy connection. The applied head is recorded in ``alembic_version`` so
an Alembic setup can take over later without losing track.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil
from dataclasses import dataclass
from types import ModuleType
from typing import Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine

from hirescore.core.settings import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_PACKAGE = "hirescore.migrations.versions"

_version_metadata = sa.MetaData()
version_table = sa.Table(
    "alembic_version",
    _version_metadata,
    sa.Column("version_num", sa.String(64), primary_key=True),
)


@dataclass(frozen=True)
class Revision:
    revision: str
    down_revision: Optional[str]
    module: ModuleType

    def apply(self, conn: Connection) -> None:
        upgrade = getattr(self.module, "upgrade", None)
        if upgrade is None:
            raise RuntimeError(f"Migration {self.revision} is missing upgrade()")
        upgrade(conn)


def discover_revisions() -> List[Revision]:
    """Load every revision module and return them in upgrade order.

    Order follows the ``down_revision`` links starting from the single root;
    branches, gaps and duplicate revision ids are refused.
    """
    package = importlib.import_module(MIGRATIONS_PACKAGE)
    by_parent: Dict[Optional[str], Revision] = {}
    seen = set()

    for info in pkgutil.iter_modules(package.__path__):
        if info.ispkg or info.name.startswith("_"):
            continue
        module = importlib.import_module(f"{MIGRATIONS_PACKAGE}.{info.name}")
        revision = getattr(module, "revision", None)
        if not revision:
            raise RuntimeError(f"Migration {info.name} is missing 'revision'")
        if revision in seen:
            raise RuntimeError(f"Duplicate migration revision {revision!r}")
        parent = getattr(module, "down_revision", None)
        if parent in by_parent:
            raise RuntimeError(
                f"Migrations {by_parent[parent].revision} and {revision} "
                f"both follow {parent!r}"
            )
        seen.add(revision)
        by_parent[parent] = Revision(revision=revision, down_revision=parent, module=module)

    ordered: List[Revision] = []
    cursor: Optional[str] = None
    while cursor in by_parent:
        item = by_parent.pop(cursor)
        ordered.append(item)
        cursor = item.revision
    if by_parent:
        orphans = sorted(item.revision for item in by_parent.values())
        raise RuntimeError(f"Migrations not reachable from the root: {orphans}")
    return ordered


def current_revision(conn: Connection) -> Optional[str]:
    version_table.create(conn, checkfirst=True)
    return conn.execute(sa.select(version_table.c.version_num)).scalar()


def _record(conn: Connection, revision: str) -> None:
    conn.execute(version_table.delete())
    conn.execute(version_table.insert().values(version_num=revision))


def upgrade_to_head(engine_or_url: Engine | str | None = None) -> List[str]:
    """Apply every pending revision in one transaction; return the ones applied."""
    revisions = discover_revisions()

    if isinstance(engine_or_url, Engine):
        engine, owned = engine_or_url, False
    else:
        engine = sa.create_engine(engine_or_url or get_settings().database_url_sync, future=True)
        owned = True

    applied: List[str] = []
    try:
        with engine.begin() as conn:
            head = current_revision(conn)
            known = [item.revision for item in revisions]
            if head is not None and head not in known:
                raise RuntimeError(f"Database is at unknown migration revision {head!r}.")
            pending = revisions[known.index(head) + 1 :] if head is not None else revisions
            for item in pending:
                logger.info("Applying migration %s", item.revision)
                item.apply(conn)
                _record(conn, item.revision)
                applied.append(item.revision)
    finally:
        if owned:
            engine.dispose()

    if applied:
        logger.info("Database upgraded to %s", applied[-1])
    return applied


__all__ = ["Revision", "current_revision", "discover_revisions", "upgrade_to_head"]

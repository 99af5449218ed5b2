"""Index confirmed bookings for the overlap search."""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.engine import Connection

from hirescore.migrations.utils import index_exists, table_exists

revision = "0003_add_confirmed_booking_index"
down_revision = "0002_add_participant_calendars"
branch_labels = None
depends_on = None

TABLE_NAME = "interview_requests"
INDEX_NAME = "ix_interview_requests_status_confirmed"


def upgrade(conn: Connection) -> None:
    if not table_exists(conn, TABLE_NAME) or index_exists(conn, TABLE_NAME, INDEX_NAME):
        return
    conn.execute(
        sa.text(
            f"CREATE INDEX IF NOT EXISTS {INDEX_NAME} "
            f"ON {TABLE_NAME} (status, confirmed_start, confirmed_end)"
        )
    )


def downgrade(conn: Connection) -> None:  # pragma: no cover - symmetry only
    conn.execute(sa.text(f"DROP INDEX IF EXISTS {INDEX_NAME}"))

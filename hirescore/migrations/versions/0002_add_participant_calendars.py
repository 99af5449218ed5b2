"""Add per-participant calendar versions guarding confirmed bookings."""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.engine import Connection

from hirescore.migrations.utils import table_exists

revision = "0002_add_participant_calendars"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None

TABLE_NAME = "participant_calendars"


def _define_table(metadata: sa.MetaData, users: sa.Table) -> sa.Table:
    return sa.Table(
        TABLE_NAME,
        metadata,
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey(users.c.id, name="fk_participant_calendars_user_id", ondelete="CASCADE"),
            primary_key=True,
            autoincrement=False,
        ),
        sa.Column("version", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def upgrade(conn: Connection) -> None:
    if table_exists(conn, TABLE_NAME):
        return
    metadata = sa.MetaData()
    users = sa.Table("users", metadata, autoload_with=conn)
    _define_table(metadata, users).create(conn)


def downgrade(conn: Connection) -> None:  # pragma: no cover - symmetry only
    conn.execute(sa.text(f"DROP TABLE IF EXISTS {TABLE_NAME}"))

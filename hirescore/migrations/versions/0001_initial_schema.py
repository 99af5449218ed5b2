"""Create users and interview request tables."""

from __future__ import annotations

import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None


def _define_tables(metadata: sa.MetaData) -> None:
    sa.Table(
        "users",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    sa.Index("ix_users_role", metadata.tables["users"].c.role)

    sa.Table(
        "interview_requests",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("recruiter_id", sa.Integer, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("meeting_link", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("confirmed_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["recruiter_id"], ["users.id"], name="fk_interview_requests_recruiter_id"
        ),
    )
    requests = metadata.tables["interview_requests"]
    sa.Index("ix_interview_requests_recruiter_id", requests.c.recruiter_id)
    sa.Index(
        "ix_interview_requests_recruiter_created",
        requests.c.recruiter_id,
        requests.c.created_at,
    )

    sa.Table(
        "interview_slots",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("interview_id", sa.Integer, nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("start_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_utc", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["interview_id"],
            ["interview_requests.id"],
            name="fk_interview_slots_interview_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("interview_id", "position", name="uq_interview_slot_position"),
    )
    sa.Index("ix_interview_slots_interview_id", metadata.tables["interview_slots"].c.interview_id)

    sa.Table(
        "interview_responses",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("interview_id", sa.Integer, nullable=False),
        sa.Column("applicant_id", sa.Integer, nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("selected_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("selected_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["interview_id"],
            ["interview_requests.id"],
            name="fk_interview_responses_interview_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["applicant_id"], ["users.id"], name="fk_interview_responses_applicant_id"
        ),
        sa.UniqueConstraint(
            "interview_id", "applicant_id", name="uq_interview_response_applicant"
        ),
    )
    sa.Index(
        "ix_interview_responses_applicant",
        metadata.tables["interview_responses"].c.applicant_id,
    )


def upgrade(conn):
    metadata = sa.MetaData()
    _define_tables(metadata)
    metadata.create_all(conn)


def downgrade(conn):  # pragma: no cover - provided for completeness
    metadata = sa.MetaData()
    _define_tables(metadata)
    metadata.drop_all(conn)

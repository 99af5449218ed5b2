from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hirescore.core.time_utils import ensure_aware_utc, utcnow
from hirescore.domain.intervals import TimeRange

from .base import Base


class UserRole:
    RECRUITER = "recruiter"
    APPLICANT = "applicant"


class InterviewStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    ALL = frozenset({PENDING, CONFIRMED, REJECTED, CANCELLED, COMPLETED})


class ResponseStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CHANGE_REQUESTED = "change_requested"

    ALL = frozenset({PENDING, ACCEPTED, REJECTED, CHANGE_REQUESTED})
    DECISIONS = frozenset({ACCEPTED, REJECTED, CHANGE_REQUESTED})


def _range_or_none(start: Optional[datetime], end: Optional[datetime]) -> Optional[TimeRange]:
    if start is None or end is None:
        return None
    return TimeRange(ensure_aware_utc(start), ensure_aware_utc(end))


class User(Base):
    """Platform account. Owned by the identity subsystem, read-only here."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} ({self.role})>"


class InterviewRequest(Base):
    __tablename__ = "interview_requests"
    __table_args__ = (
        Index("ix_interview_requests_recruiter_created", "recruiter_id", "created_at"),
        Index("ix_interview_requests_status_confirmed", "status", "confirmed_start", "confirmed_end"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recruiter_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    meeting_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=InterviewStatus.PENDING, nullable=False)
    confirmed_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    recruiter: Mapped["User"] = relationship(foreign_keys=[recruiter_id])
    slots: Mapped[List["ProposedSlot"]] = relationship(
        back_populates="interview",
        cascade="all, delete-orphan",
        order_by="ProposedSlot.position",
    )
    responses: Mapped[List["ApplicantResponse"]] = relationship(
        back_populates="interview",
        cascade="all, delete-orphan",
        order_by="ApplicantResponse.position",
    )

    @property
    def applicant_ids(self) -> List[int]:
        return [response.applicant_id for response in self.responses]

    @property
    def participant_ids(self) -> List[int]:
        return [self.recruiter_id, *self.applicant_ids]

    @property
    def proposed_slots(self) -> List[TimeRange]:
        return [slot.time_range for slot in self.slots]

    @property
    def confirmed_slot(self) -> Optional[TimeRange]:
        return _range_or_none(self.confirmed_start, self.confirmed_end)

    def response_for(self, applicant_id: int) -> Optional["ApplicantResponse"]:
        for response in self.responses:
            if response.applicant_id == applicant_id:
                return response
        return None

    def is_participant(self, user_id: int) -> bool:
        return user_id == self.recruiter_id or user_id in self.applicant_ids

    def __repr__(self) -> str:
        return f"<InterviewRequest {self.id} {self.status} v{self.version}>"


class ProposedSlot(Base):
    __tablename__ = "interview_slots"
    __table_args__ = (UniqueConstraint("interview_id", "position", name="uq_interview_slot_position"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    interview_id: Mapped[int] = mapped_column(
        ForeignKey("interview_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    start_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    interview: Mapped["InterviewRequest"] = relationship(back_populates="slots")

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(ensure_aware_utc(self.start_utc), ensure_aware_utc(self.end_utc))


class ApplicantResponse(Base):
    __tablename__ = "interview_responses"
    __table_args__ = (
        UniqueConstraint("interview_id", "applicant_id", name="uq_interview_response_applicant"),
        Index("ix_interview_responses_applicant", "applicant_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    interview_id: Mapped[int] = mapped_column(
        ForeignKey("interview_requests.id", ondelete="CASCADE"), nullable=False
    )
    applicant_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=ResponseStatus.PENDING, nullable=False)
    selected_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    selected_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    interview: Mapped["InterviewRequest"] = relationship(back_populates="responses")
    applicant: Mapped["User"] = relationship(foreign_keys=[applicant_id])

    @property
    def selected_slot(self) -> Optional[TimeRange]:
        return _range_or_none(self.selected_start, self.selected_end)

    def __repr__(self) -> str:
        return f"<ApplicantResponse interview={self.interview_id} applicant={self.applicant_id} {self.status}>"


class ParticipantCalendar(Base):
    """Per-user version counter guarding confirmed bookings across requests."""

    __tablename__ = "participant_calendars"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


__all__ = [
    "ApplicantResponse",
    "InterviewRequest",
    "InterviewStatus",
    "ParticipantCalendar",
    "ProposedSlot",
    "ResponseStatus",
    "User",
    "UserRole",
]

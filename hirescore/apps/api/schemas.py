"""Request and response models for the scheduling API."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from hirescore.core.time_utils import ensure_aware_utc
from hirescore.domain.intervals import TimeRange
from hirescore.domain.models import ApplicantResponse, InterviewRequest, User
from hirescore.domain.responses import summarize


# ============================================================================
# Request Models
# ============================================================================


class TimeRangeIn(BaseModel):
    start: datetime
    end: datetime


class CreateInterviewRequest(BaseModel):
    applicant_ids: List[int] = Field(default_factory=list)
    proposed_slots: List[TimeRangeIn] = Field(default_factory=list)
    title: str = Field("", max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    meeting_link: Optional[str] = Field(None, max_length=500)


class RespondRequest(BaseModel):
    """Applicant decision; ``selected_slot`` is required when accepting."""

    status: str
    selected_slot: Optional[TimeRangeIn] = None
    message: Optional[str] = Field(None, max_length=2000)


class UpdateInterviewRequest(BaseModel):
    """Partial update: only the fields present in the body are applied."""

    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    meeting_link: Optional[str] = Field(None, max_length=500)
    proposed_slots: Optional[List[TimeRangeIn]] = None
    status: Optional[str] = None


# ============================================================================
# Response Models
# ============================================================================


class TimeRangeOut(BaseModel):
    start: datetime
    end: datetime

    @classmethod
    def from_range(cls, value: Optional[TimeRange]) -> Optional["TimeRangeOut"]:
        if value is None:
            return None
        return cls(start=value.start, end=value.end)


class ParticipantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: str

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional["ParticipantOut"]:
        return cls.model_validate(user) if user is not None else None


class ApplicantResponseOut(BaseModel):
    applicant_id: int
    applicant: Optional[ParticipantOut] = None
    status: str
    selected_slot: Optional[TimeRangeOut] = None
    message: Optional[str] = None
    responded_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, response: ApplicantResponse) -> "ApplicantResponseOut":
        return cls(
            applicant_id=response.applicant_id,
            applicant=ParticipantOut.from_user(response.applicant),
            status=response.status,
            selected_slot=TimeRangeOut.from_range(response.selected_slot),
            message=response.message,
            responded_at=ensure_aware_utc(response.responded_at) if response.responded_at else None,
        )


class InterviewOut(BaseModel):
    id: int
    recruiter_id: int
    applicant_ids: List[int]
    recruiter: Optional[ParticipantOut] = None
    applicants: List[ParticipantOut] = Field(default_factory=list)
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    status: str
    proposed_slots: List[TimeRangeOut]
    confirmed_slot: Optional[TimeRangeOut] = None
    responses: List[ApplicantResponseOut]
    response_summary: Dict[str, int]
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, interview: InterviewRequest) -> "InterviewOut":
        return cls(
            id=interview.id,
            recruiter_id=interview.recruiter_id,
            applicant_ids=interview.applicant_ids,
            recruiter=ParticipantOut.from_user(interview.recruiter),
            applicants=[
                ParticipantOut.from_user(r.applicant) for r in interview.responses if r.applicant is not None
            ],
            title=interview.title,
            description=interview.description,
            location=interview.location,
            meeting_link=interview.meeting_link,
            status=interview.status,
            proposed_slots=[TimeRangeOut.from_range(slot) for slot in interview.proposed_slots],
            confirmed_slot=TimeRangeOut.from_range(interview.confirmed_slot),
            responses=[ApplicantResponseOut.from_model(r) for r in interview.responses],
            response_summary=summarize(interview.responses),
            version=interview.version,
            created_at=ensure_aware_utc(interview.created_at),
            updated_at=ensure_aware_utc(interview.updated_at),
        )


class ApplicantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    created_at: datetime

"""Interview scheduling endpoints.

- Recruiter: POST /api/schedule, PATCH/DELETE /api/schedule/{id},
  GET /api/schedule/applicants/list
- Applicant: POST /api/schedule/{id}/respond
- Both: GET /api/schedule, GET /api/schedule/{id}
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from hirescore.apps.api.schemas import (
    ApplicantOut,
    CreateInterviewRequest,
    InterviewOut,
    RespondRequest,
    UpdateInterviewRequest,
)
from hirescore.core.auth import Principal
from hirescore.core.dependencies import get_principal, get_service
from hirescore.core.result import (
    ConcurrencyConflictError,
    DatabaseError,
    InvalidSlotError,
    NotAuthorizedError,
    NotFoundError,
    Result,
    SlotConflictError,
    ValidationError,
)
from hirescore.domain.scheduling_service import SchedulingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schedule", tags=["schedule"])

# Fields that may be omitted but never cleared
_NON_NULLABLE_UPDATES = ("title", "status", "proposed_slots")


def _http_error(error) -> HTTPException:
    detail = {"error": type(error).__name__, "message": str(error)}
    if isinstance(error, ValidationError):
        detail["field"] = error.field
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    if isinstance(error, InvalidSlotError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    if isinstance(error, NotAuthorizedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    if isinstance(error, SlotConflictError):
        detail["conflicts"] = [conflict.as_dict() for conflict in error.conflicts]
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    if isinstance(error, ConcurrencyConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    if isinstance(error, DatabaseError):
        logger.error("Scheduling request failed: %s", error)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "DatabaseError", "message": "Internal storage error"},
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


def _unwrap(result: Result):
    if result.is_failure():
        raise _http_error(result.error)
    return result.unwrap()


# ============================================================================
# Recruiter Endpoints
# ============================================================================


@router.get("/applicants/list", response_model=List[ApplicantOut])
async def list_applicants(
    principal: Principal = Depends(get_principal),
    service: SchedulingService = Depends(get_service),
):
    applicants = _unwrap(await service.list_applicants(principal))
    return [ApplicantOut.model_validate(user) for user in applicants]


@router.post("", response_model=InterviewOut, status_code=status.HTTP_201_CREATED)
async def create_interview(
    payload: CreateInterviewRequest,
    principal: Principal = Depends(get_principal),
    service: SchedulingService = Depends(get_service),
):
    result = await service.create(
        principal,
        applicant_ids=payload.applicant_ids,
        proposed_slots=[slot.model_dump() for slot in payload.proposed_slots],
        title=payload.title,
        description=payload.description,
        location=payload.location,
        meeting_link=payload.meeting_link,
    )
    return InterviewOut.from_model(_unwrap(result))


@router.patch("/{interview_id}", response_model=InterviewOut)
async def update_interview(
    interview_id: int,
    payload: UpdateInterviewRequest,
    principal: Principal = Depends(get_principal),
    service: SchedulingService = Depends(get_service),
):
    changes = payload.model_dump(exclude_unset=True)
    for name in _NON_NULLABLE_UPDATES:
        if name in changes and changes[name] is None:
            del changes[name]
    result = await service.update(principal, interview_id, changes)
    return InterviewOut.from_model(_unwrap(result))


@router.delete("/{interview_id}", response_model=InterviewOut)
async def cancel_interview(
    interview_id: int,
    principal: Principal = Depends(get_principal),
    service: SchedulingService = Depends(get_service),
):
    return InterviewOut.from_model(_unwrap(await service.cancel(principal, interview_id)))


# ============================================================================
# Applicant Endpoints
# ============================================================================


@router.post("/{interview_id}/respond", response_model=InterviewOut)
async def respond_to_interview(
    interview_id: int,
    payload: RespondRequest,
    principal: Principal = Depends(get_principal),
    service: SchedulingService = Depends(get_service),
):
    result = await service.respond(
        principal,
        interview_id,
        payload.status,
        selected_slot=payload.selected_slot.model_dump() if payload.selected_slot else None,
        message=payload.message,
    )
    return InterviewOut.from_model(_unwrap(result))


# ============================================================================
# Shared Endpoints
# ============================================================================


@router.get("", response_model=List[InterviewOut])
async def list_my_interviews(
    status_filter: Optional[str] = Query(None, alias="status"),
    principal: Principal = Depends(get_principal),
    service: SchedulingService = Depends(get_service),
):
    interviews = _unwrap(await service.list_mine(principal, status=status_filter))
    return [InterviewOut.from_model(interview) for interview in interviews]


@router.get("/{interview_id}", response_model=InterviewOut)
async def get_interview(
    interview_id: int,
    principal: Principal = Depends(get_principal),
    service: SchedulingService = Depends(get_service),
):
    return InterviewOut.from_model(_unwrap(await service.get(principal, interview_id)))

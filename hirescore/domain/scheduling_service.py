"""Interview scheduling lifecycle: create, respond, update, cancel and read accessors.

State machine::

    pending   -> confirmed | rejected | cancelled
    confirmed -> cancelled | completed
    rejected, cancelled, completed are terminal

Every write runs as an optimistic check-and-set:

1. a read phase in its own short transaction loads the request (with its
   ``version``), validates the call, reads the calendar versions of every
   participant and then runs the conflict check;
2. a write phase in a new transaction applies conditional updates keyed on
   those versions. A lost race raises ``ConcurrencyConflict``; the attempt is
   rolled back and the whole operation is retried a bounded number of times.

No lock is held between the two phases and no state is shared across calls.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from sqlalchemy.exc import OperationalError, SQLAlchemyError

from hirescore.core.auth import Principal
from hirescore.core.metrics import (
    SCHEDULING_CAS_RETRIES_TOTAL,
    SCHEDULING_CONFLICTS_TOTAL,
    record_outcome,
)
from hirescore.core.result import (
    ConcurrencyConflictError,
    DatabaseError,
    Failure,
    InvalidSlotError,
    NotAuthorizedError,
    NotFoundError,
    Result,
    SchedulingError,
    SlotConflictError,
    ValidationError,
    failure,
    success,
)
from hirescore.core.settings import get_settings
from hirescore.core.time_utils import utcnow
from hirescore.core.uow import UnitOfWork, create_uow
from hirescore.domain.conflicts import SlotConflict, find_conflicts
from hirescore.domain.errors import ConcurrencyConflict
from hirescore.domain.intervals import TimeRange
from hirescore.domain.models import (
    InterviewRequest,
    InterviewStatus,
    ProposedSlot,
    ResponseStatus,
    User,
)
from hirescore.domain.responses import DecisionOutcome, decide, has_binding_answer, initial_responses

logger = logging.getLogger(__name__)

SlotInput = Union[TimeRange, Mapping[str, Any]]

TRANSITIONS: Dict[str, frozenset] = {
    InterviewStatus.PENDING: frozenset(
        {InterviewStatus.CONFIRMED, InterviewStatus.REJECTED, InterviewStatus.CANCELLED}
    ),
    InterviewStatus.CONFIRMED: frozenset({InterviewStatus.CANCELLED, InterviewStatus.COMPLETED}),
}

# confirmed needs an applicant's slot choice, completed belongs to whoever runs the interview
RECRUITER_SETTABLE_STATUSES = frozenset({InterviewStatus.REJECTED, InterviewStatus.CANCELLED})

RESPONDABLE_STATUSES: Dict[str, frozenset] = {
    ResponseStatus.ACCEPTED: frozenset({InterviewStatus.PENDING}),
    ResponseStatus.REJECTED: frozenset({InterviewStatus.PENDING}),
    ResponseStatus.CHANGE_REQUESTED: frozenset({InterviewStatus.PENDING, InterviewStatus.CONFIRMED}),
}

UPDATABLE_FIELDS = frozenset(
    {"title", "description", "location", "meeting_link", "proposed_slots", "status"}
)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class _CreatePlan:
    recruiter_id: int
    applicant_ids: tuple
    slots: tuple
    title: str
    description: Optional[str]
    location: Optional[str]
    meeting_link: Optional[str]
    calendar_versions: Dict[int, int]


@dataclass(frozen=True)
class _ResponsePlan:
    interview_id: int
    applicant_id: int
    expected_version: int
    expected_status: str
    outcome: DecisionOutcome
    calendar_versions: Optional[Dict[int, int]] = None


@dataclass(frozen=True)
class _UpdatePlan:
    interview_id: int
    expected_version: int
    values: Dict[str, Any]
    slots: Optional[tuple] = None
    calendar_versions: Optional[Dict[int, int]] = None


class SchedulingService:
    """Entry point for every scheduling operation.

    All public methods take the caller's ``Principal`` and return a
    ``Result``; business failures never raise.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork] = create_uow,
        *,
        max_attempts: Optional[int] = None,
        retry_backoff_ms: Optional[int] = None,
    ):
        settings = get_settings()
        self._uow = uow_factory
        self.max_attempts = max_attempts or settings.scheduling_max_attempts
        self.retry_backoff_ms = (
            settings.scheduling_retry_backoff_ms if retry_backoff_ms is None else retry_backoff_ms
        )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    async def get(self, principal: Principal, interview_id: int) -> Result[InterviewRequest, SchedulingError]:
        async with self._uow() as uow:
            loaded = await self._load_for(uow, interview_id)
        if loaded.is_failure():
            return loaded
        interview = loaded.unwrap()
        if not interview.is_participant(principal.user_id):
            return failure(
                NotAuthorizedError("Not authorized to view this interview", principal.user_id)
            )
        return success(interview)

    async def list_mine(
        self, principal: Principal, *, status: Optional[str] = None
    ) -> Result[Sequence[InterviewRequest], SchedulingError]:
        if status is not None and status not in InterviewStatus.ALL:
            return failure(ValidationError("status", "Unknown interview status", status))
        async with self._uow() as uow:
            if principal.is_recruiter:
                return await uow.interviews.list_for_recruiter(principal.user_id, status=status)
            return await uow.interviews.list_for_applicant(principal.user_id, status=status)

    async def list_applicants(self, principal: Principal) -> Result[Sequence[User], SchedulingError]:
        if not principal.is_recruiter:
            return failure(
                NotAuthorizedError("Only recruiters can access this endpoint", principal.user_id)
            )
        async with self._uow() as uow:
            return await uow.users.list_verified_applicants()

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    async def create(
        self,
        principal: Principal,
        *,
        applicant_ids: Sequence[int],
        proposed_slots: Sequence[SlotInput],
        title: str,
        description: Optional[str] = None,
        location: Optional[str] = None,
        meeting_link: Optional[str] = None,
    ) -> Result[InterviewRequest, SchedulingError]:
        if not principal.is_recruiter:
            return self._done(
                "create",
                failure(
                    NotAuthorizedError(
                        "Only recruiters can create interview schedules", principal.user_id
                    )
                ),
            )

        applicants = list(applicant_ids or [])
        if not applicants:
            return self._done(
                "create", failure(ValidationError("applicant_ids", "At least one applicant is required"))
            )
        if len(set(applicants)) != len(applicants):
            return self._done(
                "create", failure(ValidationError("applicant_ids", "Applicants must be unique"))
            )
        slots = _parse_slots(proposed_slots)
        if isinstance(slots, Failure):
            return self._done("create", slots)
        clean_title = (title or "").strip()
        if not clean_title:
            return self._done("create", failure(ValidationError("title", "Interview title is required")))

        async def attempt(_: int) -> Result[InterviewRequest, SchedulingError]:
            plan = await self._prepare_create(
                principal.user_id,
                applicants,
                slots,
                clean_title,
                description,
                location,
                meeting_link,
            )
            if plan.is_failure():
                return plan
            committed = await self._commit_create(plan.unwrap())
            if committed.is_failure():
                return committed
            interview_id = committed.unwrap()
            logger.info(
                "Interview %s created by recruiter %s for applicants %s",
                interview_id,
                principal.user_id,
                applicants,
                extra={"interview_id": interview_id, "operation": "create"},
            )
            return await self._reload(interview_id)

        return await self._with_retries("create", attempt, slot_claim=True)

    async def _prepare_create(
        self,
        recruiter_id: int,
        applicant_ids: List[int],
        slots: List[TimeRange],
        title: str,
        description: Optional[str],
        location: Optional[str],
        meeting_link: Optional[str],
    ) -> Result[_CreatePlan, SchedulingError]:
        participants = [recruiter_id, *applicant_ids]
        async with self._uow() as uow:
            found = await uow.users.find_applicants(applicant_ids)
            if found.is_failure():
                return found
            if len(found.unwrap()) != len(applicant_ids):
                return failure(
                    ValidationError(
                        "applicant_ids", "One or more applicants not found or invalid role"
                    )
                )

            # versions first: a booking committed after this read fails the write phase
            versions = await uow.calendars.read_versions(participants)
            conflicts = await self._check_conflicts(uow, "create", participants, slots)
            if conflicts is not None:
                return conflicts

        return success(
            _CreatePlan(
                recruiter_id=recruiter_id,
                applicant_ids=tuple(applicant_ids),
                slots=tuple(slots),
                title=title,
                description=description,
                location=location,
                meeting_link=meeting_link,
                calendar_versions=versions,
            )
        )

    async def _commit_create(self, plan: _CreatePlan) -> Result[int, DatabaseError]:
        now = utcnow()
        async with self._uow() as uow:
            await uow.calendars.advance(plan.calendar_versions)
            interview = InterviewRequest(
                recruiter_id=plan.recruiter_id,
                title=plan.title,
                description=plan.description,
                location=plan.location,
                meeting_link=plan.meeting_link,
                status=InterviewStatus.PENDING,
                version=1,
                created_at=now,
                updated_at=now,
            )
            interview.slots = [
                ProposedSlot(position=position, start_utc=slot.start, end_utc=slot.end)
                for position, slot in enumerate(plan.slots)
            ]
            interview.responses = initial_responses(list(plan.applicant_ids))
            added = await uow.interviews.add(interview)
            if added.is_failure():
                return added
            await uow.commit()
            return success(interview.id)

    # ------------------------------------------------------------------
    # respond
    # ------------------------------------------------------------------

    async def respond(
        self,
        principal: Principal,
        interview_id: int,
        decision: str,
        *,
        selected_slot: Optional[SlotInput] = None,
        message: Optional[str] = None,
    ) -> Result[InterviewRequest, SchedulingError]:
        if decision not in ResponseStatus.DECISIONS:
            return self._done(
                "respond", failure(ValidationError("decision", "Invalid response status", str(decision)))
            )

        slot: Optional[TimeRange] = None
        if decision == ResponseStatus.ACCEPTED:
            if selected_slot is None:
                return self._done(
                    "respond",
                    failure(
                        ValidationError(
                            "selected_slot", "Selected time slot is required when accepting"
                        )
                    ),
                )
            try:
                slot = TimeRange.parse(selected_slot)
            except (TypeError, ValueError) as exc:
                return self._done("respond", failure(ValidationError("selected_slot", str(exc))))

        async def attempt(_: int) -> Result[InterviewRequest, SchedulingError]:
            plan = await self._prepare_response(principal, interview_id, decision, slot, message)
            if plan.is_failure():
                return plan
            await self._commit_response(plan.unwrap())
            logger.info(
                "Applicant %s answered %s on interview %s",
                principal.user_id,
                decision,
                interview_id,
                extra={"interview_id": interview_id, "operation": "respond"},
            )
            return await self._reload(interview_id)

        return await self._with_retries(
            "respond", attempt, slot_claim=decision == ResponseStatus.ACCEPTED
        )

    async def _prepare_response(
        self,
        principal: Principal,
        interview_id: int,
        decision: str,
        slot: Optional[TimeRange],
        message: Optional[str],
    ) -> Result[_ResponsePlan, SchedulingError]:
        calendar_versions = None
        async with self._uow() as uow:
            loaded = await self._load_for(uow, interview_id)
            if loaded.is_failure():
                return loaded
            interview = loaded.unwrap()

            if principal.user_id not in interview.applicant_ids:
                return failure(
                    NotAuthorizedError(
                        "Not authorized to respond to this interview", principal.user_id
                    )
                )
            open_statuses = RESPONDABLE_STATUSES.get(decision, frozenset())
            if interview.status not in open_statuses:
                return failure(
                    ValidationError(
                        "status",
                        "Interview is no longer accepting responses",
                        interview.status,
                    )
                )

            if decision == ResponseStatus.ACCEPTED:
                if slot not in interview.proposed_slots:
                    return failure(InvalidSlotError(slot=slot))
                # every invited applicant is booked by the confirmation, not only the responder
                participants = interview.participant_ids
                calendar_versions = await uow.calendars.read_versions(participants)
                conflicts = await self._check_conflicts(
                    uow, "respond", participants, [slot], exclude_interview_id=interview_id
                )
                if conflicts is not None:
                    return conflicts

            expected_version = interview.version
            expected_status = interview.status

        outcome = decide(decision, responded_at=utcnow(), selected_slot=slot, message=message)
        return success(
            _ResponsePlan(
                interview_id=interview_id,
                applicant_id=principal.user_id,
                expected_version=expected_version,
                expected_status=expected_status,
                outcome=outcome,
                calendar_versions=calendar_versions,
            )
        )

    async def _commit_response(self, plan: _ResponsePlan) -> None:
        async with self._uow() as uow:
            await uow.interviews.compare_and_set(
                plan.interview_id,
                plan.expected_version,
                plan.outcome.request_values,
                expected_status=plan.expected_status,
            )
            await uow.interviews.set_response(
                plan.interview_id, plan.applicant_id, plan.outcome.response_values
            )
            if plan.calendar_versions is not None:
                await uow.calendars.advance(plan.calendar_versions)
            await uow.commit()

    # ------------------------------------------------------------------
    # update
    # ------------------------------------------------------------------

    async def update(
        self, principal: Principal, interview_id: int, changes: Mapping[str, Any]
    ) -> Result[InterviewRequest, SchedulingError]:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            return self._done(
                "update",
                failure(ValidationError(", ".join(sorted(unknown)), "Field cannot be updated")),
            )
        if "title" in changes and not (changes["title"] or "").strip():
            return self._done("update", failure(ValidationError("title", "Interview title is required")))
        if "status" in changes and changes["status"] not in InterviewStatus.ALL:
            return self._done(
                "update",
                failure(ValidationError("status", "Unknown interview status", str(changes["status"]))),
            )
        slots: Optional[List[TimeRange]] = None
        if changes.get("proposed_slots") is not None:
            parsed = _parse_slots(changes["proposed_slots"])
            if isinstance(parsed, Failure):
                return self._done("update", parsed)
            slots = parsed

        async def attempt(_: int) -> Result[InterviewRequest, SchedulingError]:
            plan = await self._prepare_update(principal, interview_id, changes, slots)
            if plan.is_failure():
                return plan
            update_plan = plan.unwrap()
            if update_plan is None:
                return await self._reload(interview_id)
            async with self._uow() as uow:
                await uow.interviews.compare_and_set(
                    interview_id, update_plan.expected_version, update_plan.values
                )
                if update_plan.slots is not None:
                    await uow.interviews.replace_slots(interview_id, update_plan.slots)
                if update_plan.calendar_versions is not None:
                    await uow.calendars.advance(update_plan.calendar_versions)
                await uow.commit()
            logger.info(
                "Interview %s updated by recruiter %s: %s",
                interview_id,
                principal.user_id,
                sorted(update_plan.values) + (["proposed_slots"] if update_plan.slots else []),
                extra={"interview_id": interview_id, "operation": "update"},
            )
            return await self._reload(interview_id)

        return await self._with_retries("update", attempt, slot_claim=slots is not None)

    async def _prepare_update(
        self,
        principal: Principal,
        interview_id: int,
        changes: Mapping[str, Any],
        slots: Optional[List[TimeRange]],
    ) -> Result[Optional[_UpdatePlan], SchedulingError]:
        async with self._uow() as uow:
            loaded = await self._load_owned(uow, principal, interview_id, "update")
            if loaded.is_failure():
                return loaded
            interview = loaded.unwrap()

            calendar_versions: Optional[Dict[int, int]] = None
            values: Dict[str, Any] = {}
            if "title" in changes:
                values["title"] = changes["title"].strip()
            for name in ("description", "location", "meeting_link"):
                if name in changes:
                    values[name] = changes[name]

            target = changes.get("status")
            if target is not None and target != interview.status:
                if target not in RECRUITER_SETTABLE_STATUSES or not can_transition(
                    interview.status, target
                ):
                    return failure(
                        ValidationError(
                            "status",
                            f"Cannot move interview from {interview.status} to {target}",
                            target,
                        )
                    )
                values["status"] = target
                if interview.status == InterviewStatus.CONFIRMED:
                    values["confirmed_start"] = None
                    values["confirmed_end"] = None

            if slots is not None:
                if interview.status != InterviewStatus.PENDING:
                    return failure(
                        ValidationError(
                            "proposed_slots", "Slots can only be changed while the interview is pending"
                        )
                    )
                if has_binding_answer(interview.responses):
                    return failure(
                        ValidationError(
                            "proposed_slots",
                            "Slots cannot be changed after an applicant has accepted or rejected",
                        )
                    )
                calendar_versions = await uow.calendars.read_versions(interview.participant_ids)
                conflicts = await self._check_conflicts(
                    uow, "update", interview.participant_ids, slots, exclude_interview_id=interview_id
                )
                if conflicts is not None:
                    return conflicts

            if not values and slots is None:
                return success(None)
            return success(
                _UpdatePlan(
                    interview_id=interview_id,
                    expected_version=interview.version,
                    values=values,
                    slots=tuple(slots) if slots is not None else None,
                    calendar_versions=calendar_versions,
                )
            )

    # ------------------------------------------------------------------
    # cancel
    # ------------------------------------------------------------------

    async def cancel(self, principal: Principal, interview_id: int) -> Result[InterviewRequest, SchedulingError]:
        async def attempt(_: int) -> Result[InterviewRequest, SchedulingError]:
            async with self._uow() as uow:
                loaded = await self._load_owned(uow, principal, interview_id, "cancel")
            if loaded.is_failure():
                return loaded
            interview = loaded.unwrap()
            if interview.status == InterviewStatus.CANCELLED:
                return success(interview)

            async with self._uow() as uow:
                await uow.interviews.compare_and_set(
                    interview_id,
                    interview.version,
                    {
                        "status": InterviewStatus.CANCELLED,
                        "confirmed_start": None,
                        "confirmed_end": None,
                    },
                )
                await uow.commit()
            logger.info(
                "Interview %s cancelled by recruiter %s (was %s)",
                interview_id,
                principal.user_id,
                interview.status,
                extra={"interview_id": interview_id, "operation": "cancel"},
            )
            return await self._reload(interview_id)

        return await self._with_retries("cancel", attempt, slot_claim=False)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _load_for(self, uow: UnitOfWork, interview_id: int) -> Result[InterviewRequest, SchedulingError]:
        loaded = await uow.interviews.get(interview_id)
        if loaded.is_failure() and isinstance(loaded.error, NotFoundError):
            return failure(NotFoundError("InterviewRequest", interview_id, "Interview not found"))
        return loaded

    async def _load_owned(
        self, uow: UnitOfWork, principal: Principal, interview_id: int, action: str
    ) -> Result[InterviewRequest, SchedulingError]:
        loaded = await self._load_for(uow, interview_id)
        if loaded.is_failure():
            return loaded
        if loaded.unwrap().recruiter_id != principal.user_id:
            return failure(
                NotAuthorizedError(f"Not authorized to {action} this interview", principal.user_id)
            )
        return loaded

    async def _reload(self, interview_id: int) -> Result[InterviewRequest, SchedulingError]:
        async with self._uow() as uow:
            return await self._load_for(uow, interview_id)

    async def _check_conflicts(
        self,
        uow: UnitOfWork,
        operation: str,
        participants: Iterable[int],
        slots: Sequence[TimeRange],
        *,
        exclude_interview_id: Optional[int] = None,
    ) -> Optional[Failure]:
        """``None`` when the slots are free, otherwise the failure to return."""
        found = await find_conflicts(uow.interviews, participants, slots, exclude_interview_id)
        if found.is_failure():
            return found
        conflicts: List[SlotConflict] = found.unwrap()
        if not conflicts:
            return None
        SCHEDULING_CONFLICTS_TOTAL.labels(operation=operation).inc(len(conflicts))
        return failure(
            SlotConflictError(
                message="Time slot conflicts detected",
                conflicts=tuple(conflicts),
            )
        )

    async def _with_retries(
        self,
        operation: str,
        attempt: Callable[[int], Awaitable[Result]],
        *,
        slot_claim: bool,
    ) -> Result:
        for number in range(1, self.max_attempts + 1):
            try:
                result = await attempt(number)
            except (ConcurrencyConflict, OperationalError) as exc:
                SCHEDULING_CAS_RETRIES_TOTAL.labels(operation=operation).inc()
                logger.warning(
                    "%s lost a concurrent write (attempt %d/%d): %s",
                    operation,
                    number,
                    self.max_attempts,
                    exc,
                    extra={"operation": operation, "attempt": number},
                )
                if number < self.max_attempts:
                    await self._backoff(number)
                continue
            except SQLAlchemyError as exc:
                logger.error("Database error during %s", operation, exc_info=True)
                result = failure(DatabaseError(operation=operation, message=str(exc), original_exception=exc))
            return self._done(operation, result)

        if slot_claim:
            exhausted: Result = failure(
                SlotConflictError(
                    message="Time slot could not be secured because of concurrent changes",
                )
            )
        else:
            exhausted = failure(
                ConcurrencyConflictError("InterviewRequest", operation, attempts=self.max_attempts)
            )
        return self._done(operation, exhausted)

    async def _backoff(self, attempt: int) -> None:
        if self.retry_backoff_ms <= 0:
            return
        delay = self.retry_backoff_ms * attempt * random.uniform(0.5, 1.5) / 1000
        await asyncio.sleep(delay)

    @staticmethod
    def _done(operation: str, result: Result) -> Result:
        record_outcome(operation, result)
        return result


def _parse_slots(raw: Sequence[SlotInput]) -> Union[List[TimeRange], Failure]:
    items = list(raw or [])
    if not items:
        return failure(ValidationError("proposed_slots", "At least one time slot is required"))
    slots: List[TimeRange] = []
    for index, item in enumerate(items):
        try:
            slots.append(TimeRange.parse(item))
        except (TypeError, ValueError) as exc:
            return failure(ValidationError(f"proposed_slots[{index}]", str(exc)))
    return slots


_default_service: Optional[SchedulingService] = None


def get_scheduling_service() -> SchedulingService:
    global _default_service
    if _default_service is None:
        _default_service = SchedulingService()
    return _default_service


__all__ = [
    "RECRUITER_SETTABLE_STATUSES",
    "SchedulingService",
    "TRANSITIONS",
    "can_transition",
    "get_scheduling_service",
]

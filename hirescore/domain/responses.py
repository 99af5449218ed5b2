"""Per-applicant responses and the overall decision derived from them.

Every invited applicant has exactly one response row, created ``pending``
together with the request. A decision rewrites that single row and may move
the request as a whole:

* ``accepted`` confirms the request on the chosen slot;
* ``rejected`` rejects the whole request, even when other applicants have
  not answered yet (first rejection ends the process);
* ``change_requested`` leaves the request status untouched.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from hirescore.domain.intervals import TimeRange
from hirescore.domain.models import (
    ApplicantResponse,
    InterviewRequest,
    InterviewStatus,
    ResponseStatus,
)


@dataclass(frozen=True)
class DecisionOutcome:
    """Column values to write for one decision."""

    response_values: Dict[str, Any]
    request_values: Dict[str, Any] = field(default_factory=dict)

    @property
    def request_status(self) -> Optional[str]:
        return self.request_values.get("status")


def initial_responses(applicant_ids: Sequence[int]) -> List[ApplicantResponse]:
    """One pending response per applicant, in invitation order."""
    if len(set(applicant_ids)) != len(applicant_ids):
        raise ValueError("applicant ids must be unique")
    return [
        ApplicantResponse(
            applicant_id=applicant_id,
            position=position,
            status=ResponseStatus.PENDING,
        )
        for position, applicant_id in enumerate(applicant_ids)
    ]


def decide(
    decision: str,
    *,
    responded_at: datetime,
    selected_slot: Optional[TimeRange] = None,
    message: Optional[str] = None,
) -> DecisionOutcome:
    """Translate an applicant decision into response and request column values.

    The caller has already validated ``selected_slot`` against the proposed
    slots and run the conflict check.
    """
    if decision not in ResponseStatus.DECISIONS:
        raise ValueError(f"unknown decision: {decision!r}")

    accepted = decision == ResponseStatus.ACCEPTED
    if accepted and selected_slot is None:
        raise ValueError("accepting requires a selected slot")

    response_values: Dict[str, Any] = {
        "status": decision,
        "selected_start": selected_slot.start if accepted else None,
        "selected_end": selected_slot.end if accepted else None,
        "message": message,
        "responded_at": responded_at,
    }

    if accepted:
        request_values = {
            "status": InterviewStatus.CONFIRMED,
            "confirmed_start": selected_slot.start,
            "confirmed_end": selected_slot.end,
        }
    elif decision == ResponseStatus.REJECTED:
        request_values = {"status": InterviewStatus.REJECTED}
    else:
        request_values = {}

    return DecisionOutcome(response_values=response_values, request_values=request_values)


def has_binding_answer(responses: Iterable[ApplicantResponse]) -> bool:
    """True once any applicant accepted or rejected."""
    return any(
        response.status in {ResponseStatus.ACCEPTED, ResponseStatus.REJECTED}
        for response in responses
    )


def summarize(responses: Iterable[ApplicantResponse]) -> Dict[str, int]:
    counts = Counter(response.status for response in responses)
    return {status: counts.get(status, 0) for status in sorted(ResponseStatus.ALL)}


def responses_consistent(interview: InterviewRequest, applicant_ids: Sequence[int]) -> bool:
    """Exactly one response per invited applicant, and a slot only on acceptance."""
    seen = [response.applicant_id for response in interview.responses]
    if sorted(seen) != sorted(applicant_ids) or len(set(seen)) != len(seen):
        return False
    return all(
        (response.selected_slot is not None) == (response.status == ResponseStatus.ACCEPTED)
        for response in interview.responses
    )


__all__ = [
    "DecisionOutcome",
    "decide",
    "has_binding_answer",
    "initial_responses",
    "responses_consistent",
    "summarize",
]

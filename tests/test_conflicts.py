from datetime import datetime, timezone

import pytest

from hirescore.core.uow import UnitOfWork
from hirescore.domain.conflicts import bucket_conflicts, find_conflicts
from hirescore.domain.intervals import TimeRange
from hirescore.domain.models import ApplicantResponse, InterviewRequest, InterviewStatus


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 10, hour, minute, tzinfo=timezone.utc)


def _confirmed(interview_id: int, start: datetime, end: datetime) -> InterviewRequest:
    interview = InterviewRequest(
        id=interview_id,
        recruiter_id=1,
        title=f"Interview {interview_id}",
        status=InterviewStatus.CONFIRMED,
        confirmed_start=start,
        confirmed_end=end,
    )
    interview.responses = [ApplicantResponse(applicant_id=2, position=0, status="accepted")]
    return interview


@pytest.mark.no_db_cleanup
def test_bucket_conflicts_preserves_candidate_order():
    morning = _confirmed(1, _at(9), _at(9, 30))
    noon = _confirmed(2, _at(12), _at(13))
    candidates = [
        TimeRange(_at(12, 30), _at(13, 30)),
        TimeRange(_at(10), _at(10, 30)),
        TimeRange(_at(9, 15), _at(9, 45)),
    ]

    conflicts = bucket_conflicts(candidates, [morning, noon])

    assert [c.slot for c in conflicts] == [candidates[0], candidates[2]]
    assert conflicts[0].conflicting_interviews == (noon,)
    assert conflicts[1].conflicting_interviews == (morning,)


@pytest.mark.no_db_cleanup
def test_bucket_conflicts_ignores_touching_bookings():
    booking = _confirmed(1, _at(9), _at(9, 30))
    assert bucket_conflicts([TimeRange(_at(9, 30), _at(10))], [booking]) == []
    assert bucket_conflicts([TimeRange(_at(8, 30), _at(9))], [booking]) == []


@pytest.mark.no_db_cleanup
def test_slot_conflict_as_dict_lists_competing_interview():
    booking = _confirmed(7, _at(9), _at(9, 30))
    [conflict] = bucket_conflicts([TimeRange(_at(9, 15), _at(9, 45))], [booking])

    payload = conflict.as_dict()
    assert payload["slot"]["start"] == "2025-01-10T09:15:00+00:00"
    assert payload["conflicts"] == [
        {
            "id": 7,
            "title": "Interview 7",
            "recruiter_id": 1,
            "applicant_ids": [2],
            "confirmed_slot": {
                "start": "2025-01-10T09:00:00+00:00",
                "end": "2025-01-10T09:30:00+00:00",
            },
        }
    ]


@pytest.mark.asyncio
async def test_find_conflicts_only_sees_confirmed_bookings_of_participants(
    service, recruiter, other_recruiter, applicant_a, applicant_b, principal_for
):
    booked_slot = {"start": _at(9), "end": _at(9, 30)}
    confirmed = (
        await service.create(
            principal_for(recruiter),
            applicant_ids=[applicant_a.id],
            proposed_slots=[booked_slot],
            title="Confirmed screen",
        )
    ).unwrap()
    await service.respond(
        principal_for(applicant_a), confirmed.id, "accepted", selected_slot=booked_slot
    )
    # pending requests never block anybody
    await service.create(
        principal_for(other_recruiter),
        applicant_ids=[applicant_b.id],
        proposed_slots=[booked_slot],
        title="Still pending",
    )

    candidates = [TimeRange(_at(9, 15), _at(9, 45))]
    async with UnitOfWork() as uow:
        hit_recruiter = (await find_conflicts(uow.interviews, [recruiter.id], candidates)).unwrap()
        hit_applicant = (await find_conflicts(uow.interviews, [applicant_a.id], candidates)).unwrap()
        bystanders = (
            await find_conflicts(uow.interviews, [other_recruiter.id, applicant_b.id], candidates)
        ).unwrap()
        excluded = (
            await find_conflicts(
                uow.interviews, [recruiter.id], candidates, exclude_interview_id=confirmed.id
            )
        ).unwrap()

    assert [c.conflicting_interviews[0].id for c in hit_recruiter] == [confirmed.id]
    assert [c.conflicting_interviews[0].id for c in hit_applicant] == [confirmed.id]
    assert bystanders == []
    assert excluded == []


@pytest.mark.asyncio
async def test_find_conflicts_batches_many_slots(service, recruiter, applicant_a, principal_for):
    first = {"start": _at(9), "end": _at(9, 30)}
    second = {"start": _at(14), "end": _at(15)}
    for booked in (first, second):
        created = (
            await service.create(
                principal_for(recruiter),
                applicant_ids=[applicant_a.id],
                proposed_slots=[booked],
                title="Booked",
            )
        ).unwrap()
        await service.respond(principal_for(applicant_a), created.id, "accepted", selected_slot=booked)

    candidates = [
        TimeRange(_at(14, 30), _at(15, 30)),
        TimeRange(_at(11), _at(12)),
        TimeRange(_at(8, 45), _at(9, 15)),
    ]
    async with UnitOfWork() as uow:
        conflicts = (await find_conflicts(uow.interviews, [recruiter.id], candidates)).unwrap()

    assert [c.slot for c in conflicts] == [candidates[0], candidates[2]]
    assert all(len(c.conflicting_interviews) == 1 for c in conflicts)

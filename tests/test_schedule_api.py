import pytest
from httpx import ASGITransport, AsyncClient

from hirescore.apps.api.main import app
from hirescore.core.auth import create_access_token

NINE = {"start": "2025-01-10T09:00:00Z", "end": "2025-01-10T09:30:00Z"}
TEN = {"start": "2025-01-10T10:00:00Z", "end": "2025-01-10T10:30:00Z"}


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


async def _create(client, headers, applicant_ids, slots=(NINE, TEN), title="Technical screen"):
    response = await client.post(
        "/api/schedule",
        json={"applicant_ids": applicant_ids, "proposed_slots": list(slots), "title": title},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_requests_without_valid_token_are_rejected(recruiter):
    async with _client() as client:
        missing = await client.get("/api/schedule")
        garbage = await client.get("/api/schedule", headers={"Authorization": "Bearer nope"})
        ghost = await client.get(
            "/api/schedule", headers={"Authorization": f"Bearer {create_access_token(424242)}"}
        )

    assert missing.status_code == 401
    assert garbage.status_code == 401
    assert ghost.status_code == 401


@pytest.mark.asyncio
async def test_create_accept_and_fetch(recruiter, applicant_a, auth_headers):
    async with _client() as client:
        created = await _create(client, auth_headers(recruiter), [applicant_a.id])
        assert created["status"] == "pending"
        assert created["applicant_ids"] == [applicant_a.id]
        assert created["confirmed_slot"] is None
        assert [r["status"] for r in created["responses"]] == ["pending"]
        assert created["recruiter"] == {"id": recruiter.id, "email": recruiter.email, "role": "recruiter"}
        assert created["applicants"] == [
            {"id": applicant_a.id, "email": "alice@example.com", "role": "applicant"}
        ]
        assert created["responses"][0]["applicant"]["email"] == "alice@example.com"
        assert created["response_summary"]["pending"] == 1

        accepted = await client.post(
            f"/api/schedule/{created['id']}/respond",
            json={"status": "accepted", "selected_slot": NINE, "message": "See you"},
            headers=auth_headers(applicant_a),
        )
        assert accepted.status_code == 200, accepted.text

        fetched = await client.get(f"/api/schedule/{created['id']}", headers=auth_headers(recruiter))

    body = fetched.json()
    assert fetched.status_code == 200
    assert body["status"] == "confirmed"
    assert body["confirmed_slot"]["start"].startswith("2025-01-10T09:00:00")
    assert body["responses"][0]["status"] == "accepted"
    assert body["responses"][0]["message"] == "See you"
    assert body["version"] == 2


@pytest.mark.asyncio
async def test_error_mapping(recruiter, applicant_a, applicant_b, auth_headers):
    async with _client() as client:
        created = await _create(client, auth_headers(recruiter), [applicant_a.id])
        interview_url = f"/api/schedule/{created['id']}"

        invalid = await client.post(
            "/api/schedule",
            json={"applicant_ids": [], "proposed_slots": [NINE], "title": "Screen"},
            headers=auth_headers(recruiter),
        )
        forbidden = await client.post(
            "/api/schedule",
            json={"applicant_ids": [applicant_b.id], "proposed_slots": [NINE], "title": "Screen"},
            headers=auth_headers(applicant_a),
        )
        outsider = await client.get(interview_url, headers=auth_headers(applicant_b))
        missing = await client.get("/api/schedule/999999", headers=auth_headers(recruiter))
        wrong_slot = await client.post(
            f"{interview_url}/respond",
            json={
                "status": "accepted",
                "selected_slot": {"start": "2025-01-10T11:00:00Z", "end": "2025-01-10T11:30:00Z"},
            },
            headers=auth_headers(applicant_a),
        )

    assert invalid.status_code == 400
    assert invalid.json()["detail"]["field"] == "applicant_ids"
    assert forbidden.status_code == 403
    assert outsider.status_code == 403
    assert missing.status_code == 404
    assert wrong_slot.status_code == 400
    assert wrong_slot.json()["detail"]["error"] == "InvalidSlotError"


@pytest.mark.asyncio
async def test_slot_conflict_returns_409_with_details(recruiter, applicant_a, applicant_b, auth_headers):
    async with _client() as client:
        booked = await _create(client, auth_headers(recruiter), [applicant_a.id], slots=[NINE])
        await client.post(
            f"/api/schedule/{booked['id']}/respond",
            json={"status": "accepted", "selected_slot": NINE},
            headers=auth_headers(applicant_a),
        )

        clash = await client.post(
            "/api/schedule",
            json={
                "applicant_ids": [applicant_b.id],
                "proposed_slots": [{"start": "2025-01-10T09:15:00Z", "end": "2025-01-10T09:45:00Z"}],
                "title": "Overlapping",
            },
            headers=auth_headers(recruiter),
        )

    assert clash.status_code == 409
    detail = clash.json()["detail"]
    assert detail["error"] == "SlotConflictError"
    [conflict] = detail["conflicts"]
    assert conflict["slot"]["start"] == "2025-01-10T09:15:00+00:00"
    assert [c["id"] for c in conflict["conflicts"]] == [booked["id"]]


@pytest.mark.asyncio
async def test_update_cancel_and_list(recruiter, applicant_a, auth_headers):
    async with _client() as client:
        created = await _create(client, auth_headers(recruiter), [applicant_a.id])
        interview_url = f"/api/schedule/{created['id']}"

        patched = await client.patch(
            interview_url,
            json={"title": "Final round", "meeting_link": "https://meet.example.com/abc"},
            headers=auth_headers(recruiter),
        )
        assert patched.status_code == 200
        assert patched.json()["title"] == "Final round"
        assert patched.json()["meeting_link"] == "https://meet.example.com/abc"
        assert len(patched.json()["proposed_slots"]) == 2

        cancelled = await client.delete(interview_url, headers=auth_headers(recruiter))
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        again = await client.delete(interview_url, headers=auth_headers(recruiter))
        assert again.status_code == 200

        listed = await client.get("/api/schedule", headers=auth_headers(applicant_a))
        pending_only = await client.get(
            "/api/schedule", params={"status": "pending"}, headers=auth_headers(applicant_a)
        )

    assert listed.status_code == 200
    assert pending_only.status_code == 200
    assert [i["id"] for i in listed.json()] == [created["id"]]
    assert pending_only.json() == []


@pytest.mark.asyncio
async def test_list_applicants_is_recruiter_only(recruiter, applicant_a, applicant_b, auth_headers):
    async with _client() as client:
        allowed = await client.get("/api/schedule/applicants/list", headers=auth_headers(recruiter))
        denied = await client.get("/api/schedule/applicants/list", headers=auth_headers(applicant_a))

    assert allowed.status_code == 200
    listed = allowed.json()
    assert [(item["id"], item["email"]) for item in listed] == [
        (applicant_a.id, "alice@example.com"),
        (applicant_b.id, "bob@example.com"),
    ]
    assert all(item["created_at"] for item in listed)
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_metrics_endpoint_exposes_scheduling_counters(recruiter, applicant_a, auth_headers):
    async with _client() as client:
        await _create(client, auth_headers(recruiter), [applicant_a.id])
        response = await client.get("/metrics")

    assert response.status_code == 200
    assert "scheduling_operations_total" in response.text

"""
Integration tests for time entry endpoints.

WHAT: Timer start/stop, manual entries and entry maintenance over HTTP.

WHY: Verifies routing, status codes and the common error body on top of
the service behavior covered by the unit tests.
"""

import pytest

from tests.factories import BillingCodeFactory, TimeEntryFactory


class TestHealth:
    """Health and root endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_shape(self, client):
        response = await client.get("/api/nowhere")

        assert response.status_code == 404
        assert response.json()["error"] == "HTTPException"


class TestTimerEndpoints:
    """Tests for /api/time-entries timer endpoints."""

    @pytest.mark.asyncio
    async def test_start_then_stop(self, client, test_matter, test_attorney):
        start = await client.post(
            "/api/time-entries/timer/start",
            json={
                "matter_id": test_matter.id,
                "user_id": test_attorney.id,
                "description": "Draft complaint",
                "tags": ["drafting"],
            },
        )

        assert start.status_code == 200
        started = start.json()
        assert started["status"] == "running"
        assert started["is_running"] is True
        assert started["matter_name"] == test_matter.name
        assert started["user_name"] == test_attorney.name
        assert started["tags"] == ["drafting"]

        running = await client.get(
            "/api/time-entries/running", params={"user_id": test_attorney.id}
        )
        assert running.json()["id"] == started["id"]

        stop = await client.post(f"/api/time-entries/{started['id']}/stop")

        assert stop.status_code == 200
        stopped = stop.json()
        assert stopped["status"] == "draft"
        assert stopped["is_running"] is False
        assert stopped["ended_at"] is not None
        assert stopped["billed_minutes"] % 6 == 0
        assert stopped["rate_cents_applied"] == 35000
        assert stopped["amount_cents"] == stopped["billed_minutes"] * 35000 // 60

        none_running = await client.get(
            "/api/time-entries/running", params={"user_id": test_attorney.id}
        )
        assert none_running.json() is None

    @pytest.mark.asyncio
    async def test_second_start_is_a_conflict(self, client, test_matter, test_attorney):
        body = {"matter_id": test_matter.id, "user_id": test_attorney.id}
        first = await client.post("/api/time-entries/timer/start", json=body)

        second = await client.post("/api/time-entries/timer/start", json=body)

        assert second.status_code == 409
        error = second.json()
        assert error["error"] == "TimerAlreadyRunningError"
        assert error["details"]["existing_entry_id"] == first.json()["id"]
        assert "X-Request-ID" in second.headers

    @pytest.mark.asyncio
    async def test_stop_requires_description(self, client, test_matter, test_attorney):
        start = await client.post(
            "/api/time-entries/timer/start",
            json={"matter_id": test_matter.id, "user_id": test_attorney.id},
        )
        entry_id = start.json()["id"]

        missing = await client.post(f"/api/time-entries/{entry_id}/stop")
        assert missing.status_code == 400

        given = await client.post(
            f"/api/time-entries/{entry_id}/stop", json={"description": "Client call"}
        )
        assert given.status_code == 200
        assert given.json()["description"] == "Client call"

    @pytest.mark.asyncio
    async def test_stopping_twice_is_not_found(self, client, test_matter, test_attorney):
        start = await client.post(
            "/api/time-entries/timer/start",
            json={"matter_id": test_matter.id, "user_id": test_attorney.id, "description": "Call"},
        )
        entry_id = start.json()["id"]
        await client.post(f"/api/time-entries/{entry_id}/stop")

        again = await client.post(f"/api/time-entries/{entry_id}/stop")

        assert again.status_code == 404
        assert again.json()["error"] == "TimerNotRunningError"

    @pytest.mark.asyncio
    async def test_start_on_unknown_matter(self, client, test_attorney):
        response = await client.post(
            "/api/time-entries/timer/start",
            json={"matter_id": 9999, "user_id": test_attorney.id},
        )
        assert response.status_code == 404


class TestManualEntries:
    """Tests for POST /api/time-entries/manual."""

    @pytest.mark.asyncio
    async def test_manual_entry_is_rounded_and_priced(self, client, test_matter, test_attorney):
        response = await client.post(
            "/api/time-entries/manual",
            json={
                "matter_id": test_matter.id,
                "user_id": test_attorney.id,
                "description": "Review discovery",
                "raw_minutes": 11,
            },
        )

        assert response.status_code == 200
        entry = response.json()
        assert entry["status"] == "draft"
        assert entry["raw_minutes"] == 11
        assert entry["billed_minutes"] == 12
        assert entry["amount_cents"] == 7000

    @pytest.mark.asyncio
    async def test_billing_code_fixed_rate_applies(
        self, client, db_session, test_matter, test_attorney
    ):
        code = await BillingCodeFactory.create(db_session, code="L110", fixed_rate_cents=20000)

        response = await client.post(
            "/api/time-entries/manual",
            json={
                "matter_id": test_matter.id,
                "user_id": test_attorney.id,
                "description": "Fact investigation",
                "raw_minutes": 60,
                "billing_code_id": code.id,
            },
        )

        entry = response.json()
        assert entry["billing_code"] == "L110"
        assert entry["rate_cents_applied"] == 20000
        assert entry["amount_cents"] == 20000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw_minutes", [0, -5])
    async def test_non_positive_duration_rejected(
        self, client, test_matter, test_attorney, raw_minutes
    ):
        response = await client.post(
            "/api/time-entries/manual",
            json={
                "matter_id": test_matter.id,
                "user_id": test_attorney.id,
                "description": "Nothing",
                "raw_minutes": raw_minutes,
            },
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_offset_times_are_stored_as_utc(self, client, test_matter, test_attorney):
        response = await client.post(
            "/api/time-entries/manual",
            json={
                "matter_id": test_matter.id,
                "user_id": test_attorney.id,
                "description": "Client call",
                "started_at": "2026-01-05T10:00:00+02:00",
                "ended_at": "2026-01-05T10:30:00+02:00",
            },
        )

        assert response.status_code == 200
        entry = response.json()
        assert entry["started_at"] == "2026-01-05T08:00:00"
        assert entry["ended_at"] == "2026-01-05T08:30:00"
        assert entry["raw_minutes"] == 30

    @pytest.mark.asyncio
    async def test_naive_time_paired_with_utc_time_is_read_as_utc(
        self, client, test_matter, test_attorney
    ):
        response = await client.post(
            "/api/time-entries/manual",
            json={
                "matter_id": test_matter.id,
                "user_id": test_attorney.id,
                "description": "Draft letter",
                "started_at": "2026-01-05T10:00:00Z",
                "ended_at": "2026-01-05T10:11:00",
            },
        )

        assert response.status_code == 200
        entry = response.json()
        assert entry["raw_minutes"] == 11
        assert entry["billed_minutes"] == 12

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "ended_at, status_code",
        [("2026-01-05T07:30:00", 400), ("2026-01-05T09:00:00", 200)],
    )
    async def test_ordering_is_checked_on_utc_values(
        self, client, test_matter, test_attorney, ended_at, status_code
    ):
        """
        Test ordering is checked after conversion to UTC.

        WHY: 10:00+02:00 is 08:00 UTC, so a naive end of 07:30 is before
        the start and a naive end of 09:00 is an hour after it.
        """
        response = await client.post(
            "/api/time-entries/manual",
            json={
                "matter_id": test_matter.id,
                "user_id": test_attorney.id,
                "description": "Research",
                "started_at": "2026-01-05T10:00:00+02:00",
                "ended_at": ended_at,
            },
        )

        assert response.status_code == status_code
        if status_code == 200:
            assert response.json()["raw_minutes"] == 60
        else:
            assert response.json()["error"] == "ValidationError"


class TestEntryMaintenance:
    """Tests for reading, editing, deleting and writing off entries."""

    @pytest.mark.asyncio
    async def test_get_and_list(self, client, db_session, test_matter, test_attorney):
        entry = await TimeEntryFactory.create(db_session, test_matter, test_attorney)

        single = await client.get(f"/api/time-entries/{entry.id}")
        by_user = await client.get("/api/time-entries", params={"user_id": test_attorney.id})
        by_matter = await client.get(f"/api/time-entries/matter/{test_matter.id}")

        assert single.json()["id"] == entry.id
        assert [e["id"] for e in by_user.json()] == [entry.id]
        assert [e["id"] for e in by_matter.json()] == [entry.id]

    @pytest.mark.asyncio
    async def test_get_missing_entry(self, client):
        response = await client.get("/api/time-entries/9999")

        assert response.status_code == 404
        assert response.json()["error"] == "TimeEntryNotFoundError"

    @pytest.mark.asyncio
    async def test_edit_draft(self, client, db_session, test_matter, test_attorney):
        entry = await TimeEntryFactory.create(db_session, test_matter, test_attorney)

        response = await client.put(
            f"/api/time-entries/{entry.id}",
            json={"description": "Revised", "tags": ["billing"]},
        )

        assert response.status_code == 200
        assert response.json()["description"] == "Revised"
        assert response.json()["tags"] == ["billing"]

    @pytest.mark.asyncio
    async def test_billed_entry_is_immutable(self, client, db_session, test_matter, test_attorney):
        entry = await TimeEntryFactory.create(
            db_session, test_matter, test_attorney, status="billed"
        )

        edit = await client.put(f"/api/time-entries/{entry.id}", json={"description": "x"})
        delete = await client.delete(f"/api/time-entries/{entry.id}")

        assert edit.status_code == 409
        assert delete.status_code == 409
        assert edit.json()["error"] == "ImmutableError"

    @pytest.mark.asyncio
    async def test_delete_draft(self, client, db_session, test_matter, test_attorney):
        entry = await TimeEntryFactory.create(db_session, test_matter, test_attorney)

        response = await client.delete(f"/api/time-entries/{entry.id}")

        assert response.status_code == 204
        assert (await client.get(f"/api/time-entries/{entry.id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_write_off(self, client, db_session, test_matter, test_attorney):
        entry = await TimeEntryFactory.create(db_session, test_matter, test_attorney)

        response = await client.post(f"/api/time-entries/{entry.id}/write-off")

        assert response.status_code == 200
        assert response.json()["status"] == "written_off"

"""
Tests for delegate self-service endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from models.vote_report import VoteReport
from services.assignment_allocator import AssignmentAllocator


async def _assigned_delegate(session_factory, capabilities, seed, tables=(1, 2)):
    delegate_id = await seed.delegate()
    location_id = await seed.location(code="41-807-00-01")
    async with session_factory() as session:
        result = await AssignmentAllocator(session, capabilities).allocate(
            delegate_id, list(tables), location_id=location_id
        )
    return delegate_id, result.assignment_ids


@pytest.mark.integration
class TestMyAssignments:
    """Test GET /api/v1/my/assignments."""

    async def test_lists_own_tables(self, client: AsyncClient, seed, auth_headers, session_factory, capabilities) -> None:
        delegate_id, _ = await _assigned_delegate(session_factory, capabilities, seed)

        response = await client.get("/api/v1/my/assignments", headers=auth_headers("delegate", delegate_id))

        assert response.status_code == 200
        data = response.json()
        assert data["delegate_id"] == delegate_id
        assert [item["table_number"] for item in data["items"]] == [1, 2]

    async def test_requires_delegate_profile(self, client: AsyncClient, auth_headers) -> None:
        response = await client.get("/api/v1/my/assignments", headers=auth_headers("delegate"))

        assert response.status_code == 403


@pytest.mark.integration
class TestSubmitVoteReport:
    """Test POST /api/v1/my/vote-report."""

    async def test_submit_and_resubmit(
        self, client: AsyncClient, seed, auth_headers, session_factory, capabilities
    ) -> None:
        delegate_id, assignment_ids = await _assigned_delegate(session_factory, capabilities, seed)
        ana = await seed.candidate(full_name="Ana Gómez")
        bruno = await seed.candidate(full_name="Bruno Díaz", party="Partido Liberal")
        headers = auth_headers("delegate", delegate_id)

        first = await client.post(
            "/api/v1/my/vote-report",
            json={
                "delegate_assignment_id": assignment_ids[0],
                "details": [{"candidate_id": ana, "votes": 12}, {"candidate_id": bruno, "votes": 7}],
                "notes": "Acta legible",
            },
            headers=headers,
        )
        second = await client.post(
            "/api/v1/my/vote-report",
            json={
                "delegate_assignment_id": assignment_ids[0],
                "details": [{"candidate_id": ana, "votes": 10}],
            },
            headers=headers,
        )

        assert first.status_code == 200
        assert first.json()["total_votes"] == 19
        assert second.status_code == 200
        assert second.json() == {"report_id": first.json()["report_id"], "total_votes": 10}

        reports = (await client.get("/api/v1/my/reports", headers=headers)).json()
        assert len(reports) == 1
        assert reports[0]["total_votes"] == 10
        assert reports[0]["table_number"] == 1
        assert reports[0]["municipality"] == "Timaná"
        assert [(d["candidate_name"], d["votes"]) for d in reports[0]["details"]] == [("Ana Gómez", 10)]

    async def test_stored_report_notifies_warroom(
        self, app, client: AsyncClient, seed, auth_headers, session_factory, capabilities
    ) -> None:
        delegate_id, assignment_ids = await _assigned_delegate(session_factory, capabilities, seed)
        candidate_id = await seed.candidate()
        headers = auth_headers("delegate", delegate_id)

        async with app.state.warroom_events.subscribe() as updates:
            rejected = await client.post(
                "/api/v1/my/vote-report",
                json={"delegate_assignment_id": assignment_ids[0], "details": []},
                headers=headers,
            )
            stored = await client.post(
                "/api/v1/my/vote-report",
                json={
                    "delegate_assignment_id": assignment_ids[0],
                    "details": [{"candidate_id": candidate_id, "votes": 3}],
                },
                headers=headers,
            )

            assert rejected.status_code == 400
            assert stored.status_code == 200
            assert updates.qsize() == 1
            update = updates.get_nowait()

        assert update["type"] == "votes"
        assert update["source"] == "vote-report"

    async def test_negative_votes(self, client: AsyncClient, seed, auth_headers, session_factory, capabilities) -> None:
        delegate_id, assignment_ids = await _assigned_delegate(session_factory, capabilities, seed)
        candidate_id = await seed.candidate()

        response = await client.post(
            "/api/v1/my/vote-report",
            json={
                "delegate_assignment_id": assignment_ids[0],
                "details": [{"candidate_id": candidate_id, "votes": -1}],
            },
            headers=auth_headers("delegate", delegate_id),
        )

        assert response.status_code == 400
        assert response.json()["field"] == "details[0].votes"

    @pytest.mark.parametrize("votes", [True, "7", 3.0])
    async def test_non_integer_votes_are_rejected(
        self, client: AsyncClient, seed, auth_headers, session_factory, capabilities, votes
    ) -> None:
        delegate_id, assignment_ids = await _assigned_delegate(session_factory, capabilities, seed)
        candidate_id = await seed.candidate()

        response = await client.post(
            "/api/v1/my/vote-report",
            json={
                "delegate_assignment_id": assignment_ids[0],
                "details": [{"candidate_id": candidate_id, "votes": votes}],
            },
            headers=auth_headers("delegate", delegate_id),
        )

        assert response.status_code == 422
        async with session_factory() as session:
            assert (await session.execute(select(func.count(VoteReport.id)))).scalar() == 0

    async def test_empty_details(self, client: AsyncClient, seed, auth_headers, session_factory, capabilities) -> None:
        delegate_id, assignment_ids = await _assigned_delegate(session_factory, capabilities, seed)

        response = await client.post(
            "/api/v1/my/vote-report",
            json={"delegate_assignment_id": assignment_ids[0], "details": []},
            headers=auth_headers("delegate", delegate_id),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    async def test_other_delegates_table(
        self, client: AsyncClient, seed, auth_headers, session_factory, capabilities
    ) -> None:
        _, assignment_ids = await _assigned_delegate(session_factory, capabilities, seed)
        intruder = await seed.delegate(full_name="Pedro Ruiz")
        candidate_id = await seed.candidate()

        response = await client.post(
            "/api/v1/my/vote-report",
            json={
                "delegate_assignment_id": assignment_ids[0],
                "details": [{"candidate_id": candidate_id, "votes": 3}],
            },
            headers=auth_headers("delegate", intruder),
        )

        assert response.status_code == 403

    async def test_malformed_assignment_id(self, client: AsyncClient, seed, auth_headers) -> None:
        delegate_id = await seed.delegate()

        response = await client.post(
            "/api/v1/my/vote-report",
            json={"delegate_assignment_id": "mesa-1", "details": []},
            headers=auth_headers("delegate", delegate_id),
        )

        assert response.status_code == 400
        assert response.json()["field"] == "delegate_assignment_id"

    async def test_store_outage_is_retryable(
        self, client: AsyncClient, seed, auth_headers, session_factory, capabilities, monkeypatch
    ) -> None:
        from sqlalchemy.exc import OperationalError

        from repositories.vote_report_repository import VoteReportRepository

        delegate_id, assignment_ids = await _assigned_delegate(session_factory, capabilities, seed)
        candidate_id = await seed.candidate()

        async def broken_upsert(*args, **kwargs):
            raise OperationalError("INSERT INTO vote_reports", {}, Exception("connection reset"))

        monkeypatch.setattr(VoteReportRepository, "upsert", broken_upsert)

        response = await client.post(
            "/api/v1/my/vote-report",
            json={
                "delegate_assignment_id": assignment_ids[0],
                "details": [{"candidate_id": candidate_id, "votes": 3}],
            },
            headers=auth_headers("delegate", delegate_id),
        )

        assert response.status_code == 503
        assert response.json()["code"] == "store_unavailable"

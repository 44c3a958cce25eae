"""
Tests for table assignment endpoints.
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient


@pytest.mark.integration
class TestReplaceAssignments:
    """Test PUT /api/v1/delegates/{delegate_id}/assignments."""

    async def test_coordinator_assigns_tables(self, client: AsyncClient, seed, auth_headers) -> None:
        delegate_id = await seed.delegate()
        location_id = await seed.location(code="41-807-00-01")

        response = await client.put(
            f"/api/v1/delegates/{delegate_id}/assignments",
            json={"location_id": location_id, "table_numbers": [3, 1, 3]},
            headers=auth_headers("coordinator"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["assigned"] == 2
        assert data["table_numbers"] == [1, 3]
        assert data["polling_station"] == "41-807-00-01"
        assert data["location_id"] == location_id

    async def test_list_after_assignment(self, client: AsyncClient, seed, auth_headers) -> None:
        delegate_id = await seed.delegate()
        location_id = await seed.location(code="41-807-00-01")
        headers = auth_headers("admin")
        await client.put(
            f"/api/v1/delegates/{delegate_id}/assignments",
            json={"location_id": location_id, "table_numbers": [2, 1]},
            headers=headers,
        )

        response = await client.get(f"/api/v1/delegates/{delegate_id}/assignments", headers=headers)

        assert response.status_code == 200
        items = response.json()["items"]
        assert [item["table_number"] for item in items] == [1, 2]
        assert items[0]["label"] == "41-807-00-01 · Mesa 1"
        assert items[0]["municipality"] == "Timaná"

    async def test_allocation_notifies_warroom(self, app, client: AsyncClient, seed, auth_headers) -> None:
        delegate_id = await seed.delegate()
        location_id = await seed.location()

        async with app.state.warroom_events.subscribe() as updates:
            await client.put(
                f"/api/v1/delegates/{delegate_id}/assignments",
                json={"location_id": location_id, "table_numbers": [1]},
                headers=auth_headers("admin"),
            )
            update = updates.get_nowait()

        assert update["type"] == "assignment"

    async def test_conflict_names_tables(self, client: AsyncClient, seed, auth_headers) -> None:
        holder = await seed.delegate()
        requester = await seed.delegate()
        location_id = await seed.location()
        headers = auth_headers("leader")
        await client.put(
            f"/api/v1/delegates/{holder}/assignments",
            json={"location_id": location_id, "table_numbers": [4, 5]},
            headers=headers,
        )

        response = await client.put(
            f"/api/v1/delegates/{requester}/assignments",
            json={"location_id": location_id, "table_numbers": [5, 6]},
            headers=headers,
        )

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "conflict"
        assert data["tables"] == [5]

    async def test_negative_table_is_rejected(self, client: AsyncClient, seed, auth_headers) -> None:
        delegate_id = await seed.delegate()
        location_id = await seed.location()

        response = await client.put(
            f"/api/v1/delegates/{delegate_id}/assignments",
            json={"location_id": location_id, "table_numbers": [1, -2]},
            headers=auth_headers("admin"),
        )

        assert response.status_code == 400
        assert response.json()["field"] == "table_numbers"

    @pytest.mark.parametrize("table_numbers", [[True], ["3"], [2.0]])
    async def test_non_integer_tables_are_rejected(self, client: AsyncClient, seed, auth_headers, table_numbers) -> None:
        delegate_id = await seed.delegate()
        location_id = await seed.location()
        headers = auth_headers("admin")

        response = await client.put(
            f"/api/v1/delegates/{delegate_id}/assignments",
            json={"location_id": location_id, "table_numbers": table_numbers},
            headers=headers,
        )

        assert response.status_code == 422
        listed = await client.get(f"/api/v1/delegates/{delegate_id}/assignments", headers=headers)
        assert listed.json()["items"] == []

    async def test_unknown_delegate(self, client: AsyncClient, seed, auth_headers) -> None:
        location_id = await seed.location()

        response = await client.put(
            f"/api/v1/delegates/{uuid4()}/assignments",
            json={"location_id": location_id, "table_numbers": [1]},
            headers=auth_headers("admin"),
        )

        assert response.status_code == 404

    async def test_delegates_cannot_allocate(self, client: AsyncClient, seed, auth_headers) -> None:
        delegate_id = await seed.delegate()

        response = await client.put(
            f"/api/v1/delegates/{delegate_id}/assignments",
            json={"table_numbers": []},
            headers=auth_headers("delegate", delegate_id=delegate_id),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.get(f"/api/v1/delegates/{uuid4()}/assignments")

        assert response.status_code == 401

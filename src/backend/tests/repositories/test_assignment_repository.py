"""
Tests for assignment and delegate repositories.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from core.errors import SchemaUnavailable
from db.capabilities import SchemaCapabilities


@pytest.fixture
def mock_session():
    """Create a mock database session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.mark.unit
class TestAssignmentRepository:
    """Test AssignmentRepository operations."""

    async def test_no_tables_no_query(self, mock_session) -> None:
        from repositories.assignment_repository import AssignmentRepository

        repo = AssignmentRepository(mock_session, SchemaCapabilities.full())

        assert await repo.find_conflicts("d-1", [], "PU-12", location_id=3) == []
        mock_session.execute.assert_not_called()

    async def test_no_place_no_query(self, mock_session) -> None:
        """Without a location or station there is nothing to collide with."""
        from repositories.assignment_repository import AssignmentRepository

        repo = AssignmentRepository(mock_session, SchemaCapabilities.for_version("v1"))

        assert await repo.find_conflicts("d-1", [1, 2], None, location_id=3) == []
        mock_session.execute.assert_not_called()

    async def test_replace_writes_location_link(self, mock_session) -> None:
        from repositories.assignment_repository import AssignmentRepository

        mock_session.execute = AsyncMock(return_value=MagicMock(all=MagicMock(return_value=[])))
        repo = AssignmentRepository(mock_session, SchemaCapabilities.full())

        ids = await repo.replace_for_delegate("d-1", [1, 2], "41-807-00-01", location_id=7, municipality="Timaná")

        assert len(ids) == 2
        rows = mock_session.execute.await_args_list[2].args[1]
        assert [row["table_number"] for row in rows] == [1, 2]
        assert {row["location_id"] for row in rows} == {7}

    async def test_replace_on_legacy_schema_omits_location(self, mock_session) -> None:
        from repositories.assignment_repository import AssignmentRepository

        mock_session.execute = AsyncMock(return_value=MagicMock(all=MagicMock(return_value=[])))
        repo = AssignmentRepository(mock_session, SchemaCapabilities.for_version("v1"))

        await repo.replace_for_delegate("d-1", [4], "PU-12", location_id=7)

        rows = mock_session.execute.await_args_list[2].args[1]
        assert "location_id" not in rows[0]
        assert rows[0]["polling_station"] == "PU-12"

    async def test_replace_relinks_reports_of_kept_tables(self, mock_session) -> None:
        from repositories.assignment_repository import AssignmentRepository

        linked = [
            MagicMock(id="r-1", location_id=7, polling_station="41-807-00-01", table_number=1),
            MagicMock(id="r-3", location_id=7, polling_station="41-807-00-01", table_number=3),
            MagicMock(id="r-9", location_id=9, polling_station="41-001-00-02", table_number=2),
        ]
        mock_session.execute = AsyncMock(return_value=MagicMock(all=MagicMock(return_value=linked)))
        repo = AssignmentRepository(mock_session, SchemaCapabilities.full())

        ids = await repo.replace_for_delegate("d-1", [1, 2], "41-807-00-01", location_id=7)

        assert mock_session.execute.await_count == 4
        relinks = mock_session.execute.await_args_list[3].args[1]
        assert relinks == [{"id": "r-1", "delegate_assignment_id": ids[0]}]

    async def test_replace_without_kept_tables_skips_relink(self, mock_session) -> None:
        from repositories.assignment_repository import AssignmentRepository

        linked = [MagicMock(id="r-5", location_id=None, polling_station="PU-12", table_number=5)]
        mock_session.execute = AsyncMock(return_value=MagicMock(all=MagicMock(return_value=linked)))
        repo = AssignmentRepository(mock_session, SchemaCapabilities.for_version("v1"))

        await repo.replace_for_delegate("d-1", [4], "PU-12")

        assert mock_session.execute.await_count == 3

    async def test_replace_with_empty_set_only_deletes(self, mock_session) -> None:
        from repositories.assignment_repository import AssignmentRepository

        repo = AssignmentRepository(mock_session, SchemaCapabilities.full())

        assert await repo.replace_for_delegate("d-1", [], None) == []
        mock_session.execute.assert_awaited_once()


@pytest.mark.unit
class TestDelegateRepository:
    """Test DelegateRepository operations."""

    async def test_exists(self, mock_session) -> None:
        from repositories.delegate_repository import DelegateRepository

        mock_result = MagicMock()
        mock_result.scalar_one_or_none = MagicMock(return_value="d-1")
        mock_session.execute = AsyncMock(return_value=mock_result)

        repo = DelegateRepository(mock_session, SchemaCapabilities.full())

        assert await repo.exists("d-1") is True

    async def test_assigned_count_without_team_profiles(self, mock_session) -> None:
        from dataclasses import replace

        from repositories.delegate_repository import DelegateRepository

        repo = DelegateRepository(mock_session, replace(SchemaCapabilities.full(), team_profiles=False))

        with pytest.raises(SchemaUnavailable):
            await repo.set_assigned_count("d-1", 3)
        mock_session.execute.assert_not_called()

    async def test_assigned_count_returns_rowcount(self, mock_session) -> None:
        from repositories.delegate_repository import DelegateRepository

        mock_session.execute = AsyncMock(return_value=MagicMock(rowcount=1))

        repo = DelegateRepository(mock_session, SchemaCapabilities.full())

        assert await repo.set_assigned_count("d-1", 3) == 1

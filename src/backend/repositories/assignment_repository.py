"""
Table assignment repository for database operations.
"""

from typing import Any, Optional, Sequence
from uuid import uuid4

from sqlalchemy import delete, func, insert, literal, or_, select, update
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from db.capabilities import SchemaCapabilities
from models.assignment import TableAssignment
from models.delegate import Delegate
from models.location import PollingLocation
from models.vote_report import VoteReport


class AssignmentRepository:
    """Repository for table assignment database operations."""

    def __init__(self, db: AsyncSession, capabilities: SchemaCapabilities):
        self.db = db
        self.capabilities = capabilities

    def _location_id_column(self) -> Any:
        """location_id, or a NULL placeholder on schemas without the link."""
        if self.capabilities.assignment_location_link:
            return TableAssignment.location_id
        return literal(None).label("location_id")

    def _columns(self) -> list[Any]:
        return [
            TableAssignment.id,
            TableAssignment.delegate_id,
            self._location_id_column(),
            TableAssignment.polling_station,
            TableAssignment.table_number,
            TableAssignment.department,
            TableAssignment.municipality,
        ]

    async def get_by_id(self, assignment_id: str) -> Optional[Row]:
        """Get an assignment row by ID."""
        result = await self.db.execute(
            select(*self._columns()).where(TableAssignment.id == assignment_id)
        )
        return result.one_or_none()

    async def get_with_location_sources(self, assignment_id: str) -> Optional[Row]:
        """
        Get an assignment together with everything needed to resolve a report location.

        Joins the owning delegate's home profile and, when the schema links
        assignments to the catalog, the polling location.
        """
        columns = self._columns() + [
            Delegate.department.label("delegate_department"),
            Delegate.municipality.label("delegate_municipality"),
            Delegate.address.label("delegate_address"),
            Delegate.polling_station_code.label("delegate_polling_station_code"),
        ]
        query = select(*columns).join(Delegate, Delegate.id == TableAssignment.delegate_id)

        if self.capabilities.assignment_location_link and self.capabilities.location_catalog:
            query = query.add_columns(
                PollingLocation.department.label("catalog_department"),
                PollingLocation.municipality.label("catalog_municipality"),
                PollingLocation.address.label("catalog_address"),
                PollingLocation.code.label("catalog_code"),
            ).outerjoin(PollingLocation, PollingLocation.id == TableAssignment.location_id)
        else:
            query = query.add_columns(
                literal(None).label("catalog_department"),
                literal(None).label("catalog_municipality"),
                literal(None).label("catalog_address"),
                literal(None).label("catalog_code"),
            )

        result = await self.db.execute(query.where(TableAssignment.id == assignment_id))
        return result.one_or_none()

    async def list_for_delegate(self, delegate_id: str) -> list[Row]:
        """Get a delegate's assignments ordered by station and table."""
        result = await self.db.execute(
            select(*self._columns())
            .where(TableAssignment.delegate_id == delegate_id)
            .order_by(TableAssignment.polling_station, TableAssignment.table_number)
        )
        return list(result.all())

    async def count_for_delegate(self, delegate_id: str) -> int:
        """Get the number of tables assigned to a delegate."""
        result = await self.db.execute(
            select(func.count(TableAssignment.id)).where(TableAssignment.delegate_id == delegate_id)
        )
        return result.scalar() or 0

    async def find_conflicts(
        self,
        delegate_id: str,
        table_numbers: Sequence[int],
        polling_station: Optional[str],
        location_id: Optional[int] = None,
    ) -> list[Row]:
        """
        Find assignments held by other delegates on the requested tables.

        A table matches when it sits at the same catalog location or carries
        the same station code.
        """
        if not table_numbers:
            return []

        place_filters = []
        if location_id is not None and self.capabilities.assignment_location_link:
            place_filters.append(TableAssignment.location_id == location_id)
        if polling_station:
            place_filters.append(TableAssignment.polling_station == polling_station)
        if not place_filters:
            return []

        result = await self.db.execute(
            select(TableAssignment.table_number, TableAssignment.delegate_id)
            .where(
                or_(*place_filters),
                TableAssignment.table_number.in_(list(table_numbers)),
                TableAssignment.delegate_id != delegate_id,
            )
            .order_by(TableAssignment.table_number)
        )
        return list(result.all())

    async def _linked_reports(self, delegate_id: str) -> list[Row]:
        """Reports attached to the delegate's current assignments, with the table they cover."""
        result = await self.db.execute(
            select(
                VoteReport.id,
                self._location_id_column(),
                TableAssignment.polling_station,
                TableAssignment.table_number,
            )
            .join(TableAssignment, TableAssignment.id == VoteReport.delegate_assignment_id)
            .where(TableAssignment.delegate_id == delegate_id)
        )
        return list(result.all())

    async def replace_for_delegate(
        self,
        delegate_id: str,
        table_numbers: Sequence[int],
        polling_station: Optional[str],
        location_id: Optional[int] = None,
        department: Optional[str] = None,
        municipality: Optional[str] = None,
    ) -> list[str]:
        """
        Delete every assignment of the delegate and insert the new set.

        Reports already filed for a table that stays in the set are moved to
        the new assignment, so a resubmission keeps replacing the same report.
        Must run inside the caller's transaction. Returns the new assignment IDs.
        """
        linked = await self._linked_reports(delegate_id) if table_numbers else []

        await self.db.execute(delete(TableAssignment).where(TableAssignment.delegate_id == delegate_id))

        linked_location = location_id if self.capabilities.assignment_location_link else None
        reports_by_table: dict[int, list[Any]] = {}
        for report in linked:
            same_place = (
                report.location_id == linked_location
                if report.location_id is not None and linked_location is not None
                else report.polling_station == polling_station
            )
            if same_place:
                reports_by_table.setdefault(report.table_number, []).append(report.id)

        rows = []
        relinks = []
        for number in table_numbers:
            row = {
                "id": str(uuid4()),
                "delegate_id": delegate_id,
                "polling_station": polling_station,
                "table_number": number,
                "department": department,
                "municipality": municipality,
            }
            if self.capabilities.assignment_location_link:
                row["location_id"] = location_id
            rows.append(row)
            relinks.extend(
                {"id": report_id, "delegate_assignment_id": row["id"]}
                for report_id in reports_by_table.get(number, [])
            )

        if rows:
            await self.db.execute(insert(TableAssignment), rows)
        if relinks:
            await self.db.execute(update(VoteReport), relinks)

        return [row["id"] for row in rows]

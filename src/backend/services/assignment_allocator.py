"""
Assignment allocator.

Replaces the full set of tables a delegate covers. Every table of a polling
location belongs to at most one delegate; the check-then-write sequence runs
in one transaction and the store's unique constraints settle any race
between concurrent allocators.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ConflictError, NotFoundError, SchemaUnavailable, ValidationError
from db.capabilities import SchemaCapabilities
from db.session import atomic
from repositories.assignment_repository import AssignmentRepository
from repositories.delegate_repository import DelegateRepository
from repositories.location_repository import LocationRepository

logger = structlog.get_logger(__name__)

TABLE_CONFLICT_MESSAGE = "one or more tables are already assigned to another delegate"


@dataclass
class AllocationResult:
    """Outcome of a successful allocation."""

    delegate_id: str
    table_numbers: list[int]
    assignment_ids: list[str] = field(default_factory=list)
    polling_station: Optional[str] = None
    location_id: Optional[int] = None

    @property
    def assigned(self) -> int:
        return len(self.table_numbers)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ok": True,
            "delegate_id": self.delegate_id,
            "assigned": self.assigned,
            "table_numbers": self.table_numbers,
            "polling_station": self.polling_station,
            "location_id": self.location_id,
        }


def parse_uuid(value: Any, field_name: str) -> str:
    """Normalize a UUID string or raise ValidationError naming the field."""
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"{field_name} must be a valid UUID", field=field_name) from None


def normalize_table_numbers(table_numbers: Iterable[Any]) -> list[int]:
    """
    Validate table numbers and drop duplicates, keeping ascending order.

    Booleans and negative or non-integer values are rejected.
    """
    if table_numbers is None:
        return []
    normalized = set()
    for index, value in enumerate(table_numbers):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(
                "table numbers must be non-negative integers",
                field="table_numbers",
                details={"index": index},
            )
        normalized.add(value)
    return sorted(normalized)


class AssignmentAllocator:
    """Allocates polling tables to delegates."""

    def __init__(self, db: AsyncSession, capabilities: SchemaCapabilities):
        self.db = db
        self.capabilities = capabilities
        self.assignments = AssignmentRepository(db, capabilities)
        self.delegates = DelegateRepository(db, capabilities)
        self.locations = LocationRepository(db)

    async def allocate(
        self,
        delegate_id: Any,
        table_numbers: Iterable[Any],
        location_id: Optional[int] = None,
        polling_station: Optional[str] = None,
        department: Optional[str] = None,
        municipality: Optional[str] = None,
    ) -> AllocationResult:
        """
        Replace a delegate's assignments with ``table_numbers`` at one location.

        An empty table list unassigns the delegate. Raises ValidationError for
        malformed input, NotFoundError for an unknown delegate or location and
        ConflictError when another delegate already holds a requested table;
        in every failure case the stored assignments are left unchanged.
        """
        delegate_id = parse_uuid(delegate_id, "delegate_id")
        tables = normalize_table_numbers(table_numbers)
        station = (polling_station or "").strip() or None

        if tables and location_id is None and station is None:
            raise ValidationError(
                "a polling location or station code is required to assign tables",
                field="location_id",
            )

        async with atomic(self.db, conflict_message=TABLE_CONFLICT_MESSAGE):
            if not await self.delegates.exists(delegate_id):
                raise NotFoundError("delegate not found", field="delegate_id")

            if tables and location_id is not None:
                if not self.capabilities.location_catalog:
                    raise ValidationError(
                        "the polling location catalog is not available; send a station code",
                        field="location_id",
                    )
                location = await self.locations.get_by_id(location_id)
                if location is None:
                    raise NotFoundError("polling location not found", field="location_id")
                station = location.code
                department = location.department
                municipality = location.municipality

            if not self.capabilities.assignment_location_link:
                # Legacy schema: tables are keyed by station code only
                location_id = None

            if not tables:
                station, location_id, department, municipality = None, None, None, None

            conflicts = await self.assignments.find_conflicts(
                delegate_id, tables, station, location_id=location_id
            )
            if conflicts:
                taken = sorted({row.table_number for row in conflicts})
                logger.info(
                    "assignment_conflict",
                    delegate_id=delegate_id,
                    polling_station=station,
                    tables=taken,
                )
                raise ConflictError(TABLE_CONFLICT_MESSAGE, field="table_numbers", details={"tables": taken})

            assignment_ids = await self.assignments.replace_for_delegate(
                delegate_id,
                tables,
                station,
                location_id=location_id,
                department=department,
                municipality=municipality,
            )

            try:
                await self.delegates.set_assigned_count(delegate_id, len(tables))
            except SchemaUnavailable as e:
                logger.debug("team_profile_sync_skipped", feature=e.feature)

        logger.info(
            "tables_allocated",
            delegate_id=delegate_id,
            polling_station=station,
            location_id=location_id,
            assigned=len(tables),
        )
        return AllocationResult(
            delegate_id=delegate_id,
            table_numbers=tables,
            assignment_ids=assignment_ids,
            polling_station=station,
            location_id=location_id,
        )

    async def list_for_delegate(self, delegate_id: Any) -> list[Any]:
        """Get a delegate's current assignments."""
        delegate_id = parse_uuid(delegate_id, "delegate_id")
        return await self.assignments.list_for_delegate(delegate_id)

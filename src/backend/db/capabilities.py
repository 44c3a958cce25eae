"""
Schema capability descriptor.

Deployments of the reporting database have drifted over time: some lack the
party rollup table, the catalog link columns or the one-report-per-assignment
unique index. Instead of probing catalog metadata on every request, the set
of optional features is resolved once at startup into a SchemaCapabilities
value and passed to the services that need it.
"""

from dataclasses import asdict, dataclass
from typing import Any, Optional

import structlog
from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

ASSIGNMENTS_TABLE = "delegate_polling_assignments"
REPORTS_TABLE = "vote_reports"
PARTY_DETAILS_TABLE = "vote_party_details"
CANDIDATES_TABLE = "candidates"
TEAM_PROFILES_TABLE = "team_profiles"
LOCATIONS_TABLE = "polling_locations"


@dataclass(frozen=True)
class SchemaCapabilities:
    """Optional schema features available in this deployment."""

    version: str
    assignment_location_link: bool = True
    report_location_link: bool = True
    report_assignment_unique: bool = True
    party_rollups: bool = True
    candidate_position: bool = True
    candidate_party: bool = True
    report_photo: bool = True
    team_profiles: bool = True
    location_catalog: bool = True

    @classmethod
    def full(cls) -> "SchemaCapabilities":
        """Current schema with every optional feature."""
        return cls(version="v3")

    @classmethod
    def for_version(cls, version: str) -> "SchemaCapabilities":
        """Get the preset for a known schema version."""
        try:
            return SCHEMA_PRESETS[version]
        except KeyError:
            raise ValueError(
                f"Unknown schema version {version!r}; expected one of {sorted(SCHEMA_PRESETS)}"
            ) from None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


SCHEMA_PRESETS: dict[str, SchemaCapabilities] = {
    # Original deployments: assignments keyed by free-text station code only
    "v1": SchemaCapabilities(
        version="v1",
        assignment_location_link=False,
        report_location_link=False,
        report_assignment_unique=False,
        party_rollups=False,
    ),
    # Catalog links and the report uniqueness index, no party rollups yet
    "v2": SchemaCapabilities(version="v2", party_rollups=False),
    "v3": SchemaCapabilities(version="v3"),
}


def _has_single_column_unique(inspector: Any, table: str, column: str) -> bool:
    """Check for a unique constraint or unique index on exactly one column."""
    for constraint in inspector.get_unique_constraints(table):
        if constraint.get("column_names") == [column]:
            return True
    for index in inspector.get_indexes(table):
        if index.get("unique") and index.get("column_names") == [column]:
            return True
    return False


def inspect_schema(sync_conn: Connection) -> SchemaCapabilities:
    """Derive capabilities from a live connection (runs in a sync context)."""
    inspector = inspect(sync_conn)
    tables = set(inspector.get_table_names())

    def columns(table: str) -> set[str]:
        if table not in tables:
            return set()
        return {column["name"] for column in inspector.get_columns(table)}

    assignment_columns = columns(ASSIGNMENTS_TABLE)
    report_columns = columns(REPORTS_TABLE)
    candidate_columns = columns(CANDIDATES_TABLE)

    return SchemaCapabilities(
        version="probed",
        assignment_location_link="location_id" in assignment_columns,
        report_location_link="location_id" in report_columns,
        report_assignment_unique=(
            REPORTS_TABLE in tables
            and _has_single_column_unique(inspector, REPORTS_TABLE, "delegate_assignment_id")
        ),
        party_rollups=PARTY_DETAILS_TABLE in tables,
        candidate_position="position" in candidate_columns,
        candidate_party="party" in candidate_columns,
        report_photo="photo_url" in report_columns,
        team_profiles=TEAM_PROFILES_TABLE in tables,
        location_catalog=LOCATIONS_TABLE in tables,
    )


async def resolve_capabilities(
    engine: AsyncEngine,
    version: Optional[str] = None,
) -> SchemaCapabilities:
    """
    Resolve the capability descriptor once.

    A configured schema version wins; otherwise the live schema is inspected.
    """
    if version:
        capabilities = SchemaCapabilities.for_version(version)
    else:
        async with engine.connect() as conn:
            capabilities = await conn.run_sync(inspect_schema)

    logger.info("schema_capabilities_resolved", **capabilities.to_dict())
    return capabilities

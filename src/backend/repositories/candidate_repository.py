"""
Candidate catalog repository.
"""

from typing import Any, Iterable, Optional

from sqlalchemy import literal, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from db.capabilities import SchemaCapabilities
from models.candidate import Candidate


class CandidateRepository:
    """Read-only access to the candidate catalog."""

    def __init__(self, db: AsyncSession, capabilities: SchemaCapabilities):
        self.db = db
        self.capabilities = capabilities

    def metadata_columns(self) -> list[Any]:
        """Ballot metadata, with NULL placeholders for columns the schema lacks."""
        position = (
            Candidate.position if self.capabilities.candidate_position else literal(None).label("position")
        )
        party = Candidate.party if self.capabilities.candidate_party else literal(None).label("party")
        return [position, party, Candidate.ballot_number, Candidate.color]

    def select_columns(self) -> list[Any]:
        return [Candidate.id, Candidate.full_name, *self.metadata_columns()]

    async def get_many(self, candidate_ids: Iterable[str]) -> dict[str, Row]:
        """Get candidates by ID, keyed by ID. Unknown IDs are absent from the result."""
        ids = list(candidate_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(*self.select_columns()).where(Candidate.id.in_(ids)))
        return {row.id: row for row in result.all()}

    async def list_active(self, position: Optional[str] = None) -> list[Row]:
        """List active candidates in ballot order."""
        stmt = select(*self.select_columns()).where(Candidate.is_active.is_(True))
        if position and self.capabilities.candidate_position:
            stmt = stmt.where(Candidate.position == position)
        stmt = stmt.order_by(Candidate.ballot_number.asc().nulls_last(), Candidate.full_name)
        result = await self.db.execute(stmt)
        return list(result.all())

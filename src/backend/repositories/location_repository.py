"""
Polling location catalog repository.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.location import PollingLocation


class LocationRepository:
    """Read-only access to the polling location catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, location_id: int) -> Optional[PollingLocation]:
        """Get a polling location by ID."""
        result = await self.db.execute(select(PollingLocation).where(PollingLocation.id == location_id))
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Optional[PollingLocation]:
        """Get a polling location by its composite station code."""
        result = await self.db.execute(select(PollingLocation).where(PollingLocation.code == code))
        return result.scalar_one_or_none()

    async def search(
        self,
        department: Optional[str] = None,
        municipality: Optional[str] = None,
        query: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PollingLocation]:
        """List polling locations filtered by department, municipality and name."""
        stmt = select(PollingLocation)
        if department:
            stmt = stmt.where(func.lower(PollingLocation.department) == department.strip().lower())
        if municipality:
            stmt = stmt.where(func.lower(PollingLocation.municipality) == municipality.strip().lower())
        if query:
            pattern = f"%{query.strip().lower()}%"
            stmt = stmt.where(
                func.lower(PollingLocation.name).like(pattern) | func.lower(PollingLocation.code).like(pattern)
            )
        stmt = (
            stmt.order_by(PollingLocation.department, PollingLocation.municipality, PollingLocation.name)
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

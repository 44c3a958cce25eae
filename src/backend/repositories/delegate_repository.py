"""
Delegate roster repository for database operations.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import SchemaUnavailable
from db.capabilities import SchemaCapabilities
from models.delegate import Delegate, TeamProfile


class DelegateRepository:
    """Repository for delegate database operations."""

    def __init__(self, db: AsyncSession, capabilities: SchemaCapabilities):
        self.db = db
        self.capabilities = capabilities

    async def get_by_id(self, delegate_id: str) -> Optional[Delegate]:
        """Get a delegate by ID."""
        result = await self.db.execute(select(Delegate).where(Delegate.id == delegate_id))
        return result.scalar_one_or_none()

    async def exists(self, delegate_id: str) -> bool:
        """Check whether a delegate exists."""
        result = await self.db.execute(select(Delegate.id).where(Delegate.id == delegate_id))
        return result.scalar_one_or_none() is not None

    async def set_assigned_count(self, delegate_id: str, count: int) -> int:
        """
        Mirror the delegate's assignment count onto the team profile.

        Raises SchemaUnavailable when the deployment has no team profiles.
        Returns the number of profiles updated (0 when the delegate has none).
        """
        if not self.capabilities.team_profiles:
            raise SchemaUnavailable(TeamProfile.__tablename__)

        result = await self.db.execute(
            update(TeamProfile)
            .where(TeamProfile.delegate_id == delegate_id)
            .values(assigned_polling_stations=count, updated_at=func.now())
        )
        return getattr(result, "rowcount", 0) or 0

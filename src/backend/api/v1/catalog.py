"""
Reference catalog endpoints: candidates and polling locations.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_capabilities, get_current_identity, get_db
from db.capabilities import SchemaCapabilities
from repositories.candidate_repository import CandidateRepository
from repositories.location_repository import LocationRepository
from schemas.catalog import CandidateOut, PollingLocationOut
from schemas.identity import Identity

router = APIRouter()


@router.get("/candidates", response_model=list[CandidateOut])
async def list_candidates(
    identity: Annotated[Identity, Depends(get_current_identity)],
    position: Optional[str] = Query(None, max_length=120),
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
) -> list[CandidateOut]:
    """List active candidates in ballot order."""
    rows = await CandidateRepository(db, capabilities).list_active(position=position)
    return [CandidateOut(**row._mapping) for row in rows]


@router.get("/locations", response_model=list[PollingLocationOut])
async def list_locations(
    identity: Annotated[Identity, Depends(get_current_identity)],
    department: Optional[str] = Query(None, max_length=100),
    municipality: Optional[str] = Query(None, max_length=100),
    q: Optional[str] = Query(None, max_length=100),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
) -> list[PollingLocationOut]:
    """Search the polling location catalog."""
    if not capabilities.location_catalog:
        return []
    locations = await LocationRepository(db).search(
        department=department,
        municipality=municipality,
        query=q,
        limit=limit,
        offset=offset,
    )
    return [PollingLocationOut.model_validate(location) for location in locations]

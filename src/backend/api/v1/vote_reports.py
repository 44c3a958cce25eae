"""
Vote report read endpoints.

Coordinators and administrators see every report; delegates and witnesses
only the ones they filed.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_capabilities, get_current_identity, get_db
from core.config import settings
from core.errors import Forbidden
from db.capabilities import SchemaCapabilities
from schemas.identity import Identity
from schemas.vote_report import VoteReportList, VoteReportOut
from services.vote_report_service import VoteReportService

router = APIRouter()


def _owner_scope(identity: Identity) -> Optional[str]:
    """Delegate whose reports the caller may read, or None for all of them."""
    if not identity.is_delegate:
        return None
    if not identity.delegate_id:
        raise Forbidden("the caller has no delegate profile")
    return identity.delegate_id


@router.get("", response_model=VoteReportList)
async def list_vote_reports(
    identity: Annotated[Identity, Depends(get_current_identity)],
    limit: int = Query(settings.REPORT_LIST_LIMIT, ge=1, le=settings.REPORT_LIST_LIMIT),
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
) -> VoteReportList:
    """Get the most recent reports with their candidate lines."""
    service = VoteReportService(db, capabilities)
    reports = await service.list_reports(delegate_id=_owner_scope(identity), limit=limit)
    return VoteReportList(items=[VoteReportOut(**report) for report in reports])


@router.get("/{report_id}", response_model=VoteReportOut)
async def get_vote_report(
    report_id: str,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
) -> VoteReportOut:
    """Get one report; delegates get 404 for reports they did not file."""
    service = VoteReportService(db, capabilities)
    report = await service.get_report(report_id, delegate_id=_owner_scope(identity))
    return VoteReportOut(**report)

"""
Delegate self-service endpoints: own tables and vote reports.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_capabilities, get_db, get_warroom_events, require_delegate
from api.v1.assignments import to_assignment_item
from db.capabilities import SchemaCapabilities
from schemas.assignment import AssignmentList
from schemas.identity import Identity
from schemas.vote_report import VoteReportOut, VoteReportResult, VoteReportSubmit
from services.assignment_allocator import AssignmentAllocator
from services.vote_report_service import VoteReportService
from services.warroom_events import WarRoomEvents

router = APIRouter()


@router.get("/assignments", response_model=AssignmentList)
async def my_assignments(
    identity: Annotated[Identity, Depends(require_delegate)],
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
) -> AssignmentList:
    """Get the tables assigned to the calling delegate."""
    rows = await AssignmentAllocator(db, capabilities).list_for_delegate(identity.delegate_id)
    return AssignmentList(delegate_id=identity.delegate_id, items=[to_assignment_item(row) for row in rows])


@router.post("/vote-report", response_model=VoteReportResult, status_code=status.HTTP_200_OK)
async def submit_vote_report(
    payload: VoteReportSubmit,
    identity: Annotated[Identity, Depends(require_delegate)],
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    events: WarRoomEvents = Depends(get_warroom_events),
) -> VoteReportResult:
    """
    Submit or replace the tally for one of the caller's tables.

    Resubmitting for the same table replaces the previous tally. Open
    war-room streams are notified once the report is stored.
    """
    service = VoteReportService(db, capabilities)
    result = await service.submit(
        payload.delegate_assignment_id,
        identity.delegate_id,
        payload.details,
        notes=payload.notes,
        photo_url=payload.photo_url,
        location_id=payload.location_id,
    )
    events.publish("votes", source="vote-report")
    return VoteReportResult(**result.to_dict())


@router.get("/reports", response_model=list[VoteReportOut])
async def my_reports(
    identity: Annotated[Identity, Depends(require_delegate)],
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
) -> list[VoteReportOut]:
    """Get the reports filed by the calling delegate, newest first."""
    reports = await VoteReportService(db, capabilities).list_for_delegate(identity.delegate_id, limit=limit)
    return [VoteReportOut(**report) for report in reports]

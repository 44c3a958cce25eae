"""
Table assignment API endpoints.

Coordinators replace the full set of tables a delegate covers; the allocator
guarantees that no table ends up with two delegates.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_capabilities, get_db, get_warroom_events, require_allocator
from db.capabilities import SchemaCapabilities
from models.assignment import table_label
from schemas.assignment import AssignmentItem, AssignmentList, AssignmentUpdate, AssignmentUpdateResponse
from schemas.identity import Identity
from services.assignment_allocator import AssignmentAllocator
from services.warroom_events import WarRoomEvents

router = APIRouter()


def to_assignment_item(row: Any) -> AssignmentItem:
    """Convert an assignment row to its API representation."""
    return AssignmentItem(
        id=str(row.id),
        label=table_label(row.polling_station, row.table_number),
        location_id=row.location_id,
        polling_station=row.polling_station,
        table_number=row.table_number,
        department=row.department,
        municipality=row.municipality,
    )


@router.put("/{delegate_id}/assignments", response_model=AssignmentUpdateResponse)
async def replace_assignments(
    delegate_id: str,
    payload: AssignmentUpdate,
    identity: Annotated[Identity, Depends(require_allocator)],
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    events: WarRoomEvents = Depends(get_warroom_events),
) -> AssignmentUpdateResponse:
    """
    Replace every table assigned to a delegate.

    An empty ``table_numbers`` list unassigns the delegate.
    """
    allocator = AssignmentAllocator(db, capabilities)
    result = await allocator.allocate(
        delegate_id,
        payload.table_numbers,
        location_id=payload.location_id,
        polling_station=payload.polling_station,
        department=payload.department,
        municipality=payload.municipality,
    )
    events.publish("assignment", source="assignments")
    return AssignmentUpdateResponse(**result.to_dict())


@router.get("/{delegate_id}/assignments", response_model=AssignmentList)
async def list_assignments(
    delegate_id: str,
    identity: Annotated[Identity, Depends(require_allocator)],
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
) -> AssignmentList:
    """Get the tables currently assigned to a delegate."""
    allocator = AssignmentAllocator(db, capabilities)
    rows = await allocator.list_for_delegate(delegate_id)
    return AssignmentList(delegate_id=delegate_id, items=[to_assignment_item(row) for row in rows])

"""
War-room dashboard API endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_capabilities, get_current_identity, get_db, get_warroom_events
from core.config import settings
from core.errors import Forbidden
from db.capabilities import SchemaCapabilities
from schemas.identity import Identity
from schemas.warroom import WarRoomSummary
from services.warroom_events import WarRoomEvents, event_stream
from services.warroom_service import WarRoomScope, WarRoomService

router = APIRouter()


@router.get("", response_model=WarRoomSummary)
async def get_warroom(
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
) -> WarRoomSummary:
    """Live coverage and results; delegates only see their own tables."""
    if identity.is_delegate:
        if not identity.delegate_id:
            raise Forbidden("the caller has no delegate profile")
        scope = WarRoomScope(delegate_id=identity.delegate_id)
    else:
        scope = WarRoomScope()
    return await WarRoomService(db, capabilities).summary(scope)


@router.get("/stream", response_class=StreamingResponse)
async def stream_warroom(
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    events: WarRoomEvents = Depends(get_warroom_events),
) -> StreamingResponse:
    """
    Server-sent events telling open dashboards to refresh.

    Sends ``ready`` on connect, ``update`` after each stored report or
    allocation and a ``: ping`` comment while idle.
    """
    return StreamingResponse(
        event_stream(events, settings.WARROOM_STREAM_KEEPALIVE_SECONDS, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache, no-transform", "Connection": "keep-alive"},
    )

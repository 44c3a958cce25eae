"""
Reporting compliance API endpoint.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_identity, get_db
from core.errors import Forbidden
from schemas.compliance import ComplianceResponse
from schemas.identity import Identity
from services.compliance_service import ComplianceService

router = APIRouter()


@router.get("", response_model=ComplianceResponse)
async def get_compliance(
    identity: Annotated[Identity, Depends(get_current_identity)],
    search: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
) -> ComplianceResponse:
    """
    Assigned vs reported tables.

    Administrators get every delegate, least compliant first; delegates get
    their own summary.
    """
    service = ComplianceService(db)
    if identity.is_admin:
        return await service.for_all(search=search)
    if not identity.delegate_id:
        raise Forbidden("the caller has no delegate profile")
    return await service.for_delegate(identity.delegate_id)

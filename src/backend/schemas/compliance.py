"""
Reporting compliance Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ComplianceSummary(BaseModel):
    """Assigned vs reported tables."""

    assigned: int = 0
    reported: int = 0
    missing: int = 0
    coverage_pct: int = 0


class ComplianceItem(BaseModel):
    """Compliance of one delegate."""

    id: str
    name: str
    email: Optional[str] = None
    municipality: Optional[str] = None
    assigned: int = 0
    reported: int = 0
    missing: int = 0
    coverage_pct: int = 0
    last_reported_at: Optional[datetime] = None


class ComplianceResponse(BaseModel):
    """Summary plus, for administrators, one row per delegate."""

    summary: ComplianceSummary
    items: list[ComplianceItem] = Field(default_factory=list)

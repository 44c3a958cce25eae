"""
War-room summary Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class WarRoomStats(BaseModel):
    """Headline counters."""

    reports: int = 0
    active_delegates: int = 0
    assigned_tables: int = 0
    reported_tables: int = 0
    coverage_pct: int = 0
    last_updated: Optional[datetime] = None


class CandidateTotal(BaseModel):
    """Votes for one candidate."""

    candidate_id: str
    name: str
    party: Optional[str] = None
    color: Optional[str] = None
    votes: int
    percentage: float


class PartyTotal(BaseModel):
    """Votes for one (position, party) pair."""

    position: str
    party: str
    votes: int
    percentage: float


class MunicipalityCoverage(BaseModel):
    """Reported vs total tables in one municipality."""

    department: Optional[str] = None
    municipality: str
    reported: int
    total: int
    coverage: int
    status: str


class WarRoomAlert(BaseModel):
    """Derived alert."""

    id: str
    severity: str
    title: str
    message: str
    municipality: Optional[str] = None


class FeedItem(BaseModel):
    """Recent report."""

    report_id: str
    delegate: str
    action: str = "Acta subida"
    municipality: str
    department: Optional[str] = None
    location: str
    table_number: Optional[int] = None
    total_votes: int
    reported_at: datetime


class EvidenceItem(BaseModel):
    """Recent tally sheet photo."""

    report_id: str
    photo_url: str
    delegate: str
    municipality: str
    polling_station: str
    table: str
    reported_at: datetime


class WarRoomSummary(BaseModel):
    """Live coverage and results."""

    scope: str
    stats: WarRoomStats = Field(default_factory=WarRoomStats)
    candidates: list[CandidateTotal] = Field(default_factory=list)
    parties: list[PartyTotal] = Field(default_factory=list)
    municipalities: list[MunicipalityCoverage] = Field(default_factory=list)
    alerts: list[WarRoomAlert] = Field(default_factory=list)
    feed: list[FeedItem] = Field(default_factory=list)
    evidences: list[EvidenceItem] = Field(default_factory=list)

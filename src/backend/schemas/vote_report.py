"""
Vote report Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictInt


class VoteDetailIn(BaseModel):
    """Votes read for one candidate."""

    candidate_id: str
    votes: StrictInt


class VoteReportSubmit(BaseModel):
    """Tally for one assigned table."""

    delegate_assignment_id: str
    details: list[VoteDetailIn] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=2000)
    photo_url: Optional[str] = Field(None, max_length=2048)
    location_id: Optional[StrictInt] = None


class VoteReportResult(BaseModel):
    """Stored report for a submission."""

    report_id: str
    total_votes: int


class VoteDetailOut(BaseModel):
    """Stored candidate line of a report."""

    candidate_id: str
    candidate_name: str
    votes: int
    party: Optional[str] = None
    position: Optional[str] = None
    ballot_number: Optional[int] = None
    color: Optional[str] = None


class VoteReportOut(BaseModel):
    """A stored report with its candidate lines."""

    id: str
    delegate_id: Optional[str] = None
    delegate_assignment_id: Optional[str] = None
    table_number: Optional[int] = None
    polling_station_code: Optional[str] = None
    department: str
    municipality: str
    address: str = ""
    total_votes: int
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    reported_at: datetime
    details: list[VoteDetailOut] = Field(default_factory=list)


class VoteReportList(BaseModel):
    """Reports visible to the caller, newest first."""

    items: list[VoteReportOut] = Field(default_factory=list)

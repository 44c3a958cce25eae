"""
Reference catalog Pydantic schemas.
"""

from typing import Optional

from pydantic import BaseModel


class CandidateOut(BaseModel):
    """Ballot candidate."""

    id: str
    full_name: str
    position: Optional[str] = None
    party: Optional[str] = None
    ballot_number: Optional[int] = None
    color: Optional[str] = None

    model_config = {"from_attributes": True}


class PollingLocationOut(BaseModel):
    """Polling location from the catalog."""

    id: int
    code: str
    department: str
    municipality: str
    name: str
    address: Optional[str] = None
    table_count: int
    registered_voters: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = {"from_attributes": True}

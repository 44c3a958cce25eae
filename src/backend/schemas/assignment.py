"""
Table assignment Pydantic schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field, StrictInt


class AssignmentUpdate(BaseModel):
    """Full replacement of a delegate's tables at one polling location."""

    location_id: Optional[StrictInt] = Field(None, description="Polling location from the catalog")
    polling_station: Optional[str] = Field(
        None, max_length=32, description="Station code, for deployments without the catalog link"
    )
    table_numbers: list[StrictInt] = Field(default_factory=list, description="Empty list unassigns the delegate")
    department: Optional[str] = Field(None, max_length=100)
    municipality: Optional[str] = Field(None, max_length=100)


class AssignmentUpdateResponse(BaseModel):
    """Result of replacing a delegate's assignments."""

    ok: bool = True
    delegate_id: str
    assigned: int
    table_numbers: list[int]
    polling_station: Optional[str] = None
    location_id: Optional[int] = None


class AssignmentItem(BaseModel):
    """One assigned table."""

    id: str
    label: str
    location_id: Optional[int] = None
    polling_station: Optional[str] = None
    table_number: int
    department: Optional[str] = None
    municipality: Optional[str] = None

    model_config = {"from_attributes": True}


class AssignmentList(BaseModel):
    """Tables assigned to one delegate."""

    delegate_id: str
    items: list[AssignmentItem]

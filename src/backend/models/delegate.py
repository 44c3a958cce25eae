"""Delegate (field witness) roster models."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class Delegate(Base):
    """
    A field observer who reports results for the tables assigned to them.

    Owned by roster management; the home department/municipality/address are
    the last-resort source when a report's location has to be resolved.
    """

    __tablename__ = "delegates"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    document_number: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    municipality: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    # Default station from the roster import
    polling_station_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    polling_station_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Delegate {self.full_name}>"


class TeamProfile(Base):
    """Roster aggregate kept in sync with the delegate's assignment count."""

    __tablename__ = "team_profiles"

    delegate_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("delegates.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(String(30), nullable=False, default="witness")
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="active")
    zone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    assigned_polling_stations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

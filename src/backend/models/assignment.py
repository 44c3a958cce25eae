"""Table assignment model."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

UNNAMED_STATION = "Puesto asignado"


def table_label(polling_station: Optional[str], table_number: int) -> str:
    """Human readable label, e.g. "05-001-01-03 · Mesa 3"."""
    return f"{polling_station or UNNAMED_STATION} · Mesa {table_number}"


class TableAssignment(Base):
    """
    Binds one delegate to one voting table.

    The table is identified by a catalog location plus table number, or in
    legacy deployments by a free-text station code plus table number. Either
    pair is held by at most one assignment.
    """

    __tablename__ = "delegate_polling_assignments"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    delegate_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("delegates.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    location_id: Mapped[Optional[int]] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("polling_locations.id"),
        nullable=True,
    )
    polling_station: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    table_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # Recorded at allocation time; second source for report location resolution
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    municipality: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("location_id", "table_number", name="uq_assignments_location_table"),
        UniqueConstraint("polling_station", "table_number", name="uq_assignments_station_table"),
        CheckConstraint("table_number >= 0", name="table_number_non_negative"),
    )

    @property
    def label(self) -> str:
        return table_label(self.polling_station, self.table_number)

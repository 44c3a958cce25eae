"""Polling location catalog (DIVIPOLE reference data)."""

from typing import Optional

from sqlalchemy import BigInteger, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class PollingLocation(Base):
    """
    A polling site with one or more voting tables.

    Loaded by the catalog import process; this service only reads it.
    """

    __tablename__ = "polling_locations"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)

    # DIVIPOLE codes: department / municipality / zone / station
    department_code: Mapped[str] = mapped_column(String(4), nullable=False)
    municipality_code: Mapped[str] = mapped_column(String(6), nullable=False)
    zone_code: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    station_code: Mapped[str] = mapped_column(String(4), nullable=False)
    # Globally unique "dd-mmm-zz-pp" code, used as the station reference on assignments
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    department: Mapped[str] = mapped_column(String(100), nullable=False)
    municipality: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    table_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    registered_voters: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    registered_men: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    registered_women: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index("ix_polling_locations_department_municipality", "department", "municipality"),
    )

    def __repr__(self) -> str:
        return f"<PollingLocation {self.code}: {self.name}>"

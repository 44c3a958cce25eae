"""
Vote report models.

A VoteReport is the tally one delegate submitted for one assigned table.
Resubmitting replaces the report's detail rows; the report row itself is
updated in place so there is never more than one per assignment.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class VoteReport(Base):
    """Submitted tally for one table, with denormalized location fields."""

    __tablename__ = "vote_reports"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    delegate_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("delegates.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    # Cleared when the table leaves the delegate; kept tables are relinked on re-allocation
    delegate_assignment_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("delegate_polling_assignments.id", ondelete="SET NULL"),
        nullable=True,
    )
    location_id: Mapped[Optional[int]] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("polling_locations.id"),
        nullable=True,
    )

    polling_station_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    municipality: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    address: Mapped[str] = mapped_column(String(300), nullable=False, default="")

    total_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    reported_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("delegate_assignment_id", name="uq_vote_reports_assignment"),
        Index("ix_vote_reports_reported_at", "reported_at"),
    )


class VoteDetail(Base):
    """Votes for one candidate in one report."""

    __tablename__ = "vote_details"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    vote_report_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("vote_reports.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    candidate_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("candidates.id"),
        index=True,
        nullable=False,
    )
    votes: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("vote_report_id", "candidate_id", name="uq_vote_details_report_candidate"),
        CheckConstraint("votes >= 0", name="votes_non_negative"),
    )


class PartyVoteDetail(Base):
    """
    Votes per (position, party) in one report.

    Derived from VoteDetail when the report is written; never edited directly.
    """

    __tablename__ = "vote_party_details"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    vote_report_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("vote_reports.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    position: Mapped[str] = mapped_column(String(120), nullable=False)
    party: Mapped[str] = mapped_column(String(120), nullable=False)
    votes: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "vote_report_id", "position", "party", name="uq_vote_party_details_report_position_party"
        ),
        CheckConstraint("votes >= 0", name="votes_non_negative"),
    )

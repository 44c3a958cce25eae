"""
Reporting compliance calculator.

Compares the tables each delegate was assigned with the tables that already
have a vote report. Reported tables are counted through the assignment
reference of the report, so ``reported`` can never exceed ``assigned``.
"""

from typing import Optional

from sqlalchemy import case, func, literal, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from models.assignment import TableAssignment
from models.delegate import Delegate
from models.vote_report import VoteReport
from schemas.compliance import ComplianceItem, ComplianceResponse, ComplianceSummary
from services.metrics import percentage


def summarize(assigned: int, reported: int) -> ComplianceSummary:
    """Build a summary from raw counts."""
    assigned = max(assigned or 0, 0)
    reported = min(max(reported or 0, 0), assigned)
    return ComplianceSummary(
        assigned=assigned,
        reported=reported,
        missing=max(assigned - reported, 0),
        coverage_pct=percentage(reported, assigned),
    )


class ComplianceService:
    """Read-only compliance queries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _summary(self, delegate_id: Optional[str] = None) -> ComplianceSummary:
        assigned_query = select(func.count(TableAssignment.id))
        reported_query = select(func.count(func.distinct(VoteReport.delegate_assignment_id))).join(
            TableAssignment, TableAssignment.id == VoteReport.delegate_assignment_id
        )
        if delegate_id is not None:
            assigned_query = assigned_query.where(TableAssignment.delegate_id == delegate_id)
            reported_query = reported_query.where(TableAssignment.delegate_id == delegate_id)

        assigned = (await self.db.execute(assigned_query)).scalar() or 0
        reported = (await self.db.execute(reported_query)).scalar() or 0
        return summarize(assigned, reported)

    async def for_delegate(self, delegate_id: str) -> ComplianceResponse:
        """Summary of one delegate's own tables."""
        return ComplianceResponse(summary=await self._summary(delegate_id), items=[])

    async def for_all(self, search: Optional[str] = None, limit: Optional[int] = None) -> ComplianceResponse:
        """
        Summary over every delegate plus one row per delegate.

        Least compliant delegates come first. ``search`` matches name, email
        or municipality case-insensitively.
        """
        limit = limit or settings.COMPLIANCE_LIST_LIMIT

        assigned_sq = (
            select(
                TableAssignment.delegate_id.label("delegate_id"),
                func.count(TableAssignment.id).label("assigned"),
            )
            .group_by(TableAssignment.delegate_id)
            .subquery()
        )
        reported_sq = (
            select(
                TableAssignment.delegate_id.label("delegate_id"),
                func.count(func.distinct(VoteReport.delegate_assignment_id)).label("reported"),
                func.max(VoteReport.reported_at).label("last_reported_at"),
            )
            .join(VoteReport, VoteReport.delegate_assignment_id == TableAssignment.id)
            .group_by(TableAssignment.delegate_id)
            .subquery()
        )

        assigned = func.coalesce(assigned_sq.c.assigned, literal(0))
        reported = func.coalesce(reported_sq.c.reported, literal(0))
        missing = case((assigned - reported > 0, assigned - reported), else_=literal(0))

        query = (
            select(
                Delegate.id,
                Delegate.full_name,
                Delegate.email,
                Delegate.municipality,
                assigned.label("assigned"),
                reported.label("reported"),
                missing.label("missing"),
                reported_sq.c.last_reported_at,
            )
            .outerjoin(assigned_sq, assigned_sq.c.delegate_id == Delegate.id)
            .outerjoin(reported_sq, reported_sq.c.delegate_id == Delegate.id)
        )

        term = (search or "").strip().lower()
        if term:
            pattern = f"%{term}%"
            query = query.where(
                or_(
                    func.lower(Delegate.full_name).like(pattern),
                    func.lower(Delegate.email).like(pattern),
                    func.lower(func.coalesce(Delegate.municipality, "")).like(pattern),
                )
            )

        query = query.order_by(missing.desc(), assigned.desc(), Delegate.full_name.asc()).limit(limit)
        result = await self.db.execute(query)

        items = []
        for row in result.all():
            counts = summarize(row.assigned, row.reported)
            items.append(
                ComplianceItem(
                    id=str(row.id),
                    name=row.full_name,
                    email=row.email,
                    municipality=row.municipality,
                    assigned=counts.assigned,
                    reported=counts.reported,
                    missing=counts.missing,
                    coverage_pct=counts.coverage_pct,
                    last_reported_at=row.last_reported_at,
                )
            )

        return ComplianceResponse(summary=await self._summary(), items=items)

"""
War-room coverage and results aggregator.

Builds the live dashboard: headline counters, votes per candidate and per
party, table coverage per municipality with traffic-light status, derived
alerts, the recent report feed and the latest tally sheet photos.

Each slice runs in its own savepoint. A deployment missing a table or column
one slice needs gets an empty value for that slice instead of a failed
summary.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy import distinct, func, select
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import SchemaUnavailable
from db.capabilities import SchemaCapabilities
from models.assignment import TableAssignment
from models.candidate import Candidate
from models.delegate import Delegate
from models.location import PollingLocation
from models.vote_report import PartyVoteDetail, VoteDetail, VoteReport
from repositories.candidate_repository import CandidateRepository
from schemas.warroom import (
    CandidateTotal,
    EvidenceItem,
    FeedItem,
    MunicipalityCoverage,
    PartyTotal,
    WarRoomAlert,
    WarRoomStats,
    WarRoomSummary,
)
from services.location_resolution import DEFAULT_DEPARTMENT, DEFAULT_MUNICIPALITY
from services.metrics import STATUS_RED, STATUS_YELLOW, coverage_status, percentage
from services.vote_report_service import rollup_by_party

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MAX_ALERTS = 10
MAX_ALERTS_PER_SEVERITY = 5
UNKNOWN_DELEGATE = "Delegado"
UNKNOWN_STATION = "Puesto sin codigo"


@dataclass(frozen=True)
class WarRoomScope:
    """Whole deployment, or the reports and tables of one delegate."""

    delegate_id: Optional[str] = None

    @property
    def is_global(self) -> bool:
        return self.delegate_id is None

    @property
    def name(self) -> str:
        return "global" if self.is_global else "delegate"


def build_alerts(
    municipalities: list[MunicipalityCoverage],
    missing_photos: int,
) -> list[WarRoomAlert]:
    """Derive coverage and evidence alerts, most severe first."""
    critical = [m for m in municipalities if m.status == STATUS_RED][:MAX_ALERTS_PER_SEVERITY]
    warning = [m for m in municipalities if m.status == STATUS_YELLOW][:MAX_ALERTS_PER_SEVERITY]

    alerts = [
        WarRoomAlert(
            id=f"low-{index}",
            severity="critical",
            title="Cobertura critica",
            message=f"{m.municipality} con {m.coverage}% de cobertura ({m.reported}/{m.total})",
            municipality=m.municipality,
        )
        for index, m in enumerate(critical)
    ]
    alerts.extend(
        WarRoomAlert(
            id=f"warn-{index}",
            severity="warning",
            title="Cobertura media",
            message=f"{m.municipality} con {m.coverage}% de cobertura",
            municipality=m.municipality,
        )
        for index, m in enumerate(warning)
    )
    if missing_photos > 0:
        alerts.append(
            WarRoomAlert(
                id="photo-missing",
                severity="warning",
                title="Reportes sin foto",
                message=f"{missing_photos} reportes sin evidencia fotografica",
            )
        )
    return alerts[:MAX_ALERTS]


def _coverage_row(
    department: Optional[str],
    municipality: Optional[str],
    reported: int,
    total: int,
) -> MunicipalityCoverage:
    coverage = percentage(reported, total)
    return MunicipalityCoverage(
        department=department,
        municipality=municipality or DEFAULT_MUNICIPALITY,
        reported=reported,
        total=total,
        coverage=coverage,
        status=coverage_status(coverage),
    )


class WarRoomService:
    """Read-only war-room summary."""

    def __init__(
        self,
        db: AsyncSession,
        capabilities: SchemaCapabilities,
        feed_limit: Optional[int] = None,
        evidence_limit: Optional[int] = None,
        municipality_limit: Optional[int] = None,
    ):
        self.db = db
        self.capabilities = capabilities
        self.feed_limit = feed_limit or settings.WARROOM_FEED_LIMIT
        self.evidence_limit = evidence_limit or settings.WARROOM_EVIDENCE_LIMIT
        self.municipality_limit = municipality_limit or settings.WARROOM_MUNICIPALITY_LIMIT
        self.candidates = CandidateRepository(db, capabilities)

    async def _slice(self, name: str, loader: Callable[[], Awaitable[T]], default: T) -> T:
        """Run one slice in a savepoint, degrading to ``default`` on schema errors."""
        try:
            async with self.db.begin_nested():
                return await loader()
        except SchemaUnavailable as e:
            logger.info("warroom_slice_skipped", slice=name, feature=e.feature)
        except (ProgrammingError, OperationalError) as e:
            logger.warning("warroom_slice_unavailable", slice=name, error=str(e.orig))
        return default

    def _scoped_reports(self, query: Any, scope: WarRoomScope) -> Any:
        if scope.is_global:
            return query
        return query.where(VoteReport.delegate_id == scope.delegate_id)

    def _scoped_assignments(self, query: Any, scope: WarRoomScope) -> Any:
        if scope.is_global:
            return query
        return query.where(TableAssignment.delegate_id == scope.delegate_id)

    async def summary(self, scope: WarRoomScope) -> WarRoomSummary:
        """Build every slice of the dashboard for ``scope``."""
        now = datetime.now(timezone.utc)

        stats = await self._slice("stats", lambda: self._stats(scope, now), WarRoomStats(last_updated=now))
        candidate_rows = await self._slice("candidates", lambda: self._candidate_rows(scope), [])
        parties = await self._slice("parties", lambda: self._parties(scope, candidate_rows), [])
        municipalities = await self._slice("municipalities", lambda: self._municipalities(scope), [])
        missing_photos = await self._slice("missing_photos", lambda: self._missing_photos(scope), 0)
        feed = await self._slice("feed", lambda: self._feed(scope), [])
        evidences = await self._slice("evidences", lambda: self._evidences(scope), [])

        ranked = sorted(municipalities, key=lambda m: (-m.coverage, m.municipality))
        worst_first = sorted(municipalities, key=lambda m: (m.coverage, m.municipality))
        return WarRoomSummary(
            scope=scope.name,
            stats=stats,
            candidates=self._candidate_totals(candidate_rows),
            parties=parties,
            municipalities=ranked[: self.municipality_limit],
            alerts=build_alerts(worst_first, missing_photos),
            feed=feed,
            evidences=evidences,
        )

    async def _count(self, query: Any) -> int:
        return (await self.db.execute(query)).scalar() or 0

    async def _stats(self, scope: WarRoomScope, now: datetime) -> WarRoomStats:
        reports = await self._count(self._scoped_reports(select(func.count(VoteReport.id)), scope))
        active = await self._count(
            self._scoped_assignments(select(func.count(distinct(TableAssignment.delegate_id))), scope)
        )
        assigned = await self._count(self._scoped_assignments(select(func.count(TableAssignment.id)), scope))
        reported = await self._count(
            self._scoped_assignments(
                select(func.count(distinct(VoteReport.delegate_assignment_id))).join(
                    TableAssignment, TableAssignment.id == VoteReport.delegate_assignment_id
                ),
                scope,
            )
        )
        return WarRoomStats(
            reports=reports,
            active_delegates=active,
            assigned_tables=assigned,
            reported_tables=reported,
            coverage_pct=percentage(reported, assigned),
            last_updated=now,
        )

    async def _candidate_rows(self, scope: WarRoomScope) -> list[Any]:
        totals = (
            self._scoped_reports(
                select(VoteDetail.candidate_id, func.sum(VoteDetail.votes).label("votes")).join(
                    VoteReport, VoteReport.id == VoteDetail.vote_report_id
                ),
                scope,
            )
            .group_by(VoteDetail.candidate_id)
            .subquery()
        )
        result = await self.db.execute(
            select(*self.candidates.select_columns(), totals.c.votes)
            .join(totals, totals.c.candidate_id == Candidate.id)
            .order_by(totals.c.votes.desc(), Candidate.full_name)
        )
        return list(result.all())

    @staticmethod
    def _candidate_totals(rows: list[Any]) -> list[CandidateTotal]:
        grand_total = sum(int(row.votes or 0) for row in rows)
        return [
            CandidateTotal(
                candidate_id=str(row.id),
                name=row.full_name,
                party=row.party,
                color=row.color,
                votes=int(row.votes or 0),
                percentage=percentage(int(row.votes or 0), grand_total, digits=1),
            )
            for row in rows
        ]

    async def _parties(self, scope: WarRoomScope, candidate_rows: list[Any]) -> list[PartyTotal]:
        if self.capabilities.party_rollups:
            votes = func.sum(PartyVoteDetail.votes)
            result = await self.db.execute(
                self._scoped_reports(
                    select(PartyVoteDetail.position, PartyVoteDetail.party, votes.label("votes")).join(
                        VoteReport, VoteReport.id == PartyVoteDetail.vote_report_id
                    ),
                    scope,
                )
                .group_by(PartyVoteDetail.position, PartyVoteDetail.party)
                .order_by(votes.desc(), PartyVoteDetail.party)
            )
            totals = {(row.position, row.party): int(row.votes or 0) for row in result.all()}
        else:
            rollup = rollup_by_party(
                {str(row.id): int(row.votes or 0) for row in candidate_rows},
                {str(row.id): row for row in candidate_rows},
            )
            totals = dict(sorted(rollup.items(), key=lambda item: (-item[1], item[0][1])))

        grand_total = sum(totals.values())
        return [
            PartyTotal(
                position=position,
                party=party,
                votes=votes,
                percentage=percentage(votes, grand_total, digits=1),
            )
            for (position, party), votes in totals.items()
        ]

    async def _municipalities(self, scope: WarRoomScope) -> list[MunicipalityCoverage]:
        if not scope.is_global:
            return await self._delegate_municipalities(scope)
        if self.capabilities.location_catalog:
            return await self._catalog_municipalities()
        return await self._reported_municipalities()

    def _reported_per_municipality(self) -> Any:
        return (
            select(
                VoteReport.department,
                VoteReport.municipality,
                func.count(distinct(VoteReport.delegate_assignment_id)).label("reported"),
            )
            .join(TableAssignment, TableAssignment.id == VoteReport.delegate_assignment_id)
            .group_by(VoteReport.department, VoteReport.municipality)
        )

    async def _catalog_municipalities(self) -> list[MunicipalityCoverage]:
        totals = await self.db.execute(
            select(
                PollingLocation.department,
                PollingLocation.municipality,
                func.sum(PollingLocation.table_count).label("total"),
            ).group_by(PollingLocation.department, PollingLocation.municipality)
        )
        reported_result = await self.db.execute(self._reported_per_municipality())
        reported = {(row.department, row.municipality): int(row.reported or 0) for row in reported_result.all()}

        rows = []
        for row in totals.all():
            total = int(row.total or 0)
            if total <= 0:
                continue
            key = (row.department, row.municipality)
            rows.append(_coverage_row(row.department, row.municipality, reported.get(key, 0), total))
        return rows

    async def _reported_municipalities(self) -> list[MunicipalityCoverage]:
        # Without table totals every reporting municipality counts as fully covered
        result = await self.db.execute(self._reported_per_municipality())
        return [
            _coverage_row(row.department, row.municipality, int(row.reported), int(row.reported))
            for row in result.all()
            if row.reported
        ]

    async def _delegate_municipalities(self, scope: WarRoomScope) -> list[MunicipalityCoverage]:
        linked = self.capabilities.assignment_location_link and self.capabilities.location_catalog
        if linked:
            department = func.coalesce(PollingLocation.department, TableAssignment.department, DEFAULT_DEPARTMENT)
            municipality = func.coalesce(
                PollingLocation.municipality, TableAssignment.municipality, DEFAULT_MUNICIPALITY
            )
        else:
            department = func.coalesce(TableAssignment.department, DEFAULT_DEPARTMENT)
            municipality = func.coalesce(TableAssignment.municipality, DEFAULT_MUNICIPALITY)

        query = select(
            department.label("department"),
            municipality.label("municipality"),
            func.count(TableAssignment.id).label("total"),
            func.count(distinct(VoteReport.delegate_assignment_id)).label("reported"),
        ).select_from(TableAssignment)
        if linked:
            query = query.outerjoin(PollingLocation, PollingLocation.id == TableAssignment.location_id)
        query = (
            query.outerjoin(VoteReport, VoteReport.delegate_assignment_id == TableAssignment.id)
            .where(TableAssignment.delegate_id == scope.delegate_id)
            .group_by(department, municipality)
        )
        result = await self.db.execute(query)
        return [
            _coverage_row(row.department, row.municipality, int(row.reported or 0), int(row.total or 0))
            for row in result.all()
        ]

    async def _missing_photos(self, scope: WarRoomScope) -> int:
        if not self.capabilities.report_photo:
            raise SchemaUnavailable("vote_reports.photo_url")
        return await self._count(
            self._scoped_reports(select(func.count(VoteReport.id)).where(VoteReport.photo_url.is_(None)), scope)
        )

    async def _feed(self, scope: WarRoomScope) -> list[FeedItem]:
        result = await self.db.execute(
            self._scoped_reports(
                select(
                    VoteReport.id,
                    Delegate.full_name,
                    VoteReport.department,
                    VoteReport.municipality,
                    VoteReport.polling_station_code,
                    VoteReport.address,
                    VoteReport.total_votes,
                    VoteReport.reported_at,
                    TableAssignment.table_number,
                )
                .outerjoin(Delegate, Delegate.id == VoteReport.delegate_id)
                .outerjoin(TableAssignment, TableAssignment.id == VoteReport.delegate_assignment_id),
                scope,
            )
            .order_by(VoteReport.reported_at.desc(), VoteReport.created_at.desc())
            .limit(self.feed_limit)
        )
        return [
            FeedItem(
                report_id=str(row.id),
                delegate=row.full_name or UNKNOWN_DELEGATE,
                municipality=row.municipality,
                department=row.department,
                location=f"{row.polling_station_code or row.address or UNKNOWN_STATION} · {row.municipality}",
                table_number=row.table_number,
                total_votes=row.total_votes,
                reported_at=row.reported_at,
            )
            for row in result.all()
        ]

    async def _evidences(self, scope: WarRoomScope) -> list[EvidenceItem]:
        if not self.capabilities.report_photo:
            raise SchemaUnavailable("vote_reports.photo_url")
        result = await self.db.execute(
            self._scoped_reports(
                select(
                    VoteReport.id,
                    VoteReport.photo_url,
                    VoteReport.municipality,
                    VoteReport.polling_station_code,
                    VoteReport.address,
                    VoteReport.reported_at,
                    Delegate.full_name,
                    TableAssignment.table_number,
                )
                .outerjoin(Delegate, Delegate.id == VoteReport.delegate_id)
                .outerjoin(TableAssignment, TableAssignment.id == VoteReport.delegate_assignment_id)
                .where(VoteReport.photo_url.is_not(None)),
                scope,
            )
            .order_by(VoteReport.reported_at.desc(), VoteReport.created_at.desc())
            .limit(self.evidence_limit)
        )
        return [
            EvidenceItem(
                report_id=str(row.id),
                photo_url=row.photo_url,
                delegate=row.full_name or UNKNOWN_DELEGATE,
                municipality=row.municipality,
                polling_station=row.polling_station_code or UNKNOWN_STATION,
                table=f"Mesa {row.table_number}" if row.table_number is not None else (row.address or row.municipality),
                reported_at=row.reported_at,
            )
            for row in result.all()
        ]

"""
Vote report repository for database operations.

Writes here are always part of a larger unit of work; callers wrap them in
``db.atomic`` so that a report and its detail rows change together.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from uuid import uuid4

from sqlalchemy import delete, insert, literal, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import SchemaUnavailable
from db.capabilities import PARTY_DETAILS_TABLE, SchemaCapabilities
from models.assignment import TableAssignment
from models.candidate import Candidate
from models.vote_report import PartyVoteDetail, VoteDetail, VoteReport
from repositories.candidate_repository import CandidateRepository

# Dialects with INSERT ... ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class VoteReportRepository:
    """Repository for vote report database operations."""

    def __init__(self, db: AsyncSession, capabilities: SchemaCapabilities):
        self.db = db
        self.capabilities = capabilities

    def _dialect_name(self) -> str:
        return self.db.get_bind().dialect.name

    async def get_id_for_assignment(self, assignment_id: str) -> Optional[str]:
        """Get the ID of the report filed for an assignment, if any."""
        result = await self.db.execute(
            select(VoteReport.id).where(VoteReport.delegate_assignment_id == assignment_id)
        )
        return result.scalars().first()

    async def get_photo_url(self, assignment_id: str) -> Optional[str]:
        """Get the tally sheet photo already stored for an assignment's report."""
        if not self.capabilities.report_photo:
            raise SchemaUnavailable("vote_reports.photo_url")
        result = await self.db.execute(
            select(VoteReport.photo_url).where(VoteReport.delegate_assignment_id == assignment_id)
        )
        return result.scalars().first()

    async def upsert(
        self,
        assignment_id: str,
        delegate_id: str,
        location: Mapping[str, Any],
        notes: Optional[str] = None,
        location_id: Optional[int] = None,
    ) -> tuple[str, bool]:
        """
        Create or refresh the single report row for an assignment.

        Location fields, notes and the reporting time are overwritten on
        resubmission. Returns (report_id, created).
        """
        now = datetime.now(timezone.utc)
        values: dict[str, Any] = {
            "delegate_id": delegate_id,
            "polling_station_code": location.get("polling_station_code"),
            "department": location["department"],
            "municipality": location["municipality"],
            "address": location.get("address") or "",
            "notes": notes,
            "reported_at": now,
        }
        if self.capabilities.report_location_link:
            values["location_id"] = location_id

        dialect_insert = UPSERT_INSERTS.get(self._dialect_name())
        if self.capabilities.report_assignment_unique and dialect_insert is not None:
            return await self._upsert_on_conflict(dialect_insert, assignment_id, values)
        return await self._upsert_by_lookup(assignment_id, values)

    async def _upsert_on_conflict(
        self,
        dialect_insert: Any,
        assignment_id: str,
        values: dict[str, Any],
    ) -> tuple[str, bool]:
        new_id = str(uuid4())
        stmt = dialect_insert(VoteReport).values(
            id=new_id,
            delegate_assignment_id=assignment_id,
            total_votes=0,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[VoteReport.delegate_assignment_id],
            set_={key: stmt.excluded[key] for key in values},
        ).returning(VoteReport.id)

        result = await self.db.execute(stmt)
        report_id = result.scalar_one()
        return report_id, report_id == new_id

    async def _upsert_by_lookup(self, assignment_id: str, values: dict[str, Any]) -> tuple[str, bool]:
        # No unique index to arbitrate: lock the existing row where the dialect allows it
        result = await self.db.execute(
            select(VoteReport.id)
            .where(VoteReport.delegate_assignment_id == assignment_id)
            .order_by(VoteReport.reported_at.desc())
            .limit(1)
            .with_for_update()
        )
        report_id = result.scalar_one_or_none()

        if report_id is not None:
            await self.db.execute(update(VoteReport).where(VoteReport.id == report_id).values(**values))
            return report_id, False

        report_id = str(uuid4())
        await self.db.execute(
            insert(VoteReport).values(
                id=report_id,
                delegate_assignment_id=assignment_id,
                total_votes=0,
                **values,
            )
        )
        return report_id, True

    async def replace_details(self, report_id: str, votes_by_candidate: Mapping[str, int]) -> None:
        """Replace the per-candidate detail rows of a report."""
        await self.db.execute(delete(VoteDetail).where(VoteDetail.vote_report_id == report_id))
        rows = [
            {"id": str(uuid4()), "vote_report_id": report_id, "candidate_id": candidate_id, "votes": votes}
            for candidate_id, votes in votes_by_candidate.items()
        ]
        if rows:
            await self.db.execute(insert(VoteDetail), rows)

    async def replace_party_details(
        self,
        report_id: str,
        votes_by_party: Mapping[tuple[str, str], int],
    ) -> None:
        """
        Replace the (position, party) rollup rows of a report.

        Raises SchemaUnavailable when the deployment has no rollup table.
        """
        if not self.capabilities.party_rollups:
            raise SchemaUnavailable(PARTY_DETAILS_TABLE)

        await self.db.execute(delete(PartyVoteDetail).where(PartyVoteDetail.vote_report_id == report_id))
        rows = [
            {"id": str(uuid4()), "vote_report_id": report_id, "position": position, "party": party, "votes": votes}
            for (position, party), votes in votes_by_party.items()
        ]
        if rows:
            await self.db.execute(insert(PartyVoteDetail), rows)

    async def finalize(self, report_id: str, total_votes: int, photo_url: Optional[str] = None) -> None:
        """Store the report total and, when given, a new tally sheet photo."""
        values: dict[str, Any] = {"total_votes": total_votes}
        if photo_url and self.capabilities.report_photo:
            values["photo_url"] = photo_url
        await self.db.execute(update(VoteReport).where(VoteReport.id == report_id).values(**values))

    def _report_columns(self) -> list[Any]:
        photo_url = VoteReport.photo_url if self.capabilities.report_photo else literal(None).label("photo_url")
        return [
            VoteReport.id,
            VoteReport.delegate_id,
            VoteReport.delegate_assignment_id,
            VoteReport.polling_station_code,
            VoteReport.department,
            VoteReport.municipality,
            VoteReport.address,
            VoteReport.total_votes,
            VoteReport.notes,
            VoteReport.reported_at,
            TableAssignment.table_number,
            photo_url,
        ]

    async def list_reports(self, delegate_id: Optional[str] = None, limit: int = 300) -> list[Row]:
        """
        Get reports newest first, with the table they cover.

        Restricted to one delegate's reports when ``delegate_id`` is given.
        """
        query = select(*self._report_columns()).outerjoin(
            TableAssignment, TableAssignment.id == VoteReport.delegate_assignment_id
        )
        if delegate_id is not None:
            query = query.where(VoteReport.delegate_id == delegate_id)
        result = await self.db.execute(
            query.order_by(VoteReport.reported_at.desc(), VoteReport.created_at.desc()).limit(limit)
        )
        return list(result.all())

    async def get_report(self, report_id: str, delegate_id: Optional[str] = None) -> Optional[Row]:
        """Get one report, only if filed by ``delegate_id`` when one is given."""
        query = (
            select(*self._report_columns())
            .outerjoin(TableAssignment, TableAssignment.id == VoteReport.delegate_assignment_id)
            .where(VoteReport.id == report_id)
        )
        if delegate_id is not None:
            query = query.where(VoteReport.delegate_id == delegate_id)
        result = await self.db.execute(query)
        return result.one_or_none()

    async def get_details(self, report_ids: list[str], ballot_order: bool = False) -> dict[str, list[Row]]:
        """
        Get detail rows with candidate name and ballot metadata, grouped by report ID.

        Lines come most voted first, or in ballot order (position, ballot
        number, name) when ``ballot_order`` is set.
        """
        if not report_ids:
            return {}

        candidates = CandidateRepository(self.db, self.capabilities)
        query = (
            select(
                VoteDetail.vote_report_id,
                VoteDetail.candidate_id,
                Candidate.full_name,
                VoteDetail.votes,
                *candidates.metadata_columns(),
            )
            .join(Candidate, Candidate.id == VoteDetail.candidate_id)
            .where(VoteDetail.vote_report_id.in_(report_ids))
        )
        if ballot_order:
            order = [Candidate.ballot_number.asc().nulls_last(), Candidate.full_name]
            if self.capabilities.candidate_position:
                order.insert(0, Candidate.position)
        else:
            order = [VoteDetail.votes.desc(), Candidate.full_name]

        result = await self.db.execute(query.order_by(*order))
        details: dict[str, list[Row]] = {report_id: [] for report_id in report_ids}
        for row in result.all():
            details[row.vote_report_id].append(row)
        return details

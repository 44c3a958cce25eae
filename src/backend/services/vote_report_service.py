"""
Vote report aggregator.

Ingests the tally a delegate reads off one table: validates the candidate
lines, resolves where the table is, and replaces the single report kept per
assignment together with its candidate and party rollup rows. The whole
submission is one transaction.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import Forbidden, NotFoundError, SchemaUnavailable, ValidationError
from db.capabilities import SchemaCapabilities
from db.session import atomic
from models.candidate import NO_PARTY, NO_POSITION
from repositories.assignment_repository import AssignmentRepository
from repositories.candidate_repository import CandidateRepository
from repositories.location_repository import LocationRepository
from repositories.vote_report_repository import VoteReportRepository
from services.assignment_allocator import parse_uuid
from services.location_resolution import LocationFields, resolve_location, sources_from_row

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    """Stored report for a submission."""

    report_id: str
    total_votes: int
    created: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"report_id": self.report_id, "total_votes": self.total_votes}


def _entry_value(entry: Any, name: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(name)
    return getattr(entry, name, None)


def aggregate_votes(details: Optional[Iterable[Any]]) -> "OrderedDict[str, int]":
    """
    Validate candidate lines and sum votes per candidate.

    Accepts mappings or objects with ``candidate_id`` and ``votes``.
    Repeated candidates are added together, in order of first appearance.
    """
    entries = list(details or [])
    if not entries:
        raise ValidationError("no candidates with votes", field="details")

    totals: "OrderedDict[str, int]" = OrderedDict()
    for index, entry in enumerate(entries):
        raw_id = _entry_value(entry, "candidate_id")
        try:
            candidate_id = parse_uuid(raw_id, "candidate_id")
        except ValidationError as e:
            raise ValidationError(e.message, field=f"details[{index}].candidate_id") from None

        votes = _entry_value(entry, "votes")
        if isinstance(votes, bool) or not isinstance(votes, int) or votes < 0:
            raise ValidationError(
                "votes must be a non-negative integer",
                field=f"details[{index}].votes",
            )
        totals[candidate_id] = totals.get(candidate_id, 0) + votes
    return totals


def rollup_by_party(
    votes_by_candidate: Mapping[str, int],
    candidates: Mapping[str, Any],
) -> "OrderedDict[tuple[str, str], int]":
    """Sum candidate votes per (position, party), using sentinels for blank metadata."""
    rollup: "OrderedDict[tuple[str, str], int]" = OrderedDict()
    for candidate_id, votes in votes_by_candidate.items():
        candidate = candidates.get(candidate_id)
        position = (getattr(candidate, "position", None) or "").strip() or NO_POSITION
        party = (getattr(candidate, "party", None) or "").strip() or NO_PARTY
        key = (position, party)
        rollup[key] = rollup.get(key, 0) + votes
    return rollup


class VoteReportService:
    """Creates and replaces vote reports."""

    def __init__(
        self,
        db: AsyncSession,
        capabilities: SchemaCapabilities,
        location_order: Optional[Sequence[str]] = None,
        require_photo: Optional[bool] = None,
    ):
        self.db = db
        self.capabilities = capabilities
        self.location_order = tuple(location_order or settings.location_resolution_order)
        self.require_photo = settings.REQUIRE_REPORT_PHOTO if require_photo is None else require_photo
        self.assignments = AssignmentRepository(db, capabilities)
        self.candidates = CandidateRepository(db, capabilities)
        self.reports = VoteReportRepository(db, capabilities)
        self.locations = LocationRepository(db)

    async def submit(
        self,
        assignment_id: Any,
        delegate_id: Optional[str],
        details: Optional[Iterable[Any]],
        notes: Optional[str] = None,
        photo_url: Optional[str] = None,
        location_id: Optional[int] = None,
    ) -> SubmissionResult:
        """
        Create or replace the report for an assignment owned by ``delegate_id``.

        Nothing is written unless ownership, every candidate line and the
        photo policy check out. Resubmitting replaces the previous tally.
        """
        if not delegate_id:
            raise Forbidden("only delegates can submit vote reports")
        assignment_id = parse_uuid(assignment_id, "delegate_assignment_id")
        photo_url = (photo_url or "").strip() or None

        async with atomic(self.db, conflict_message="the report was modified concurrently; retry"):
            assignment = await self.assignments.get_with_location_sources(assignment_id)
            if assignment is None:
                raise NotFoundError("assignment not found", field="delegate_assignment_id")
            if str(assignment.delegate_id) != str(delegate_id):
                raise Forbidden("the assignment belongs to another delegate", field="delegate_assignment_id")

            votes_by_candidate = aggregate_votes(details)
            candidates = await self.candidates.get_many(votes_by_candidate.keys())
            unknown = [cid for cid in votes_by_candidate if cid not in candidates]
            if unknown:
                raise ValidationError(
                    "unknown candidate",
                    field="candidate_id",
                    details={"candidate_ids": unknown},
                )

            if self.require_photo and not photo_url:
                await self._require_stored_photo(assignment_id)

            sources = sources_from_row(assignment)
            if assignment.location_id is not None:
                location_id = assignment.location_id
            elif location_id is not None and self.capabilities.location_catalog:
                sources["catalog"] = await self._catalog_source(location_id)
            else:
                location_id = None
            location = resolve_location(sources, self.location_order)

            report_id, created = await self.reports.upsert(
                assignment_id,
                assignment.delegate_id,
                location.to_dict(),
                notes=notes,
                location_id=location_id,
            )
            await self.reports.replace_details(report_id, votes_by_candidate)

            try:
                await self.reports.replace_party_details(
                    report_id, rollup_by_party(votes_by_candidate, candidates)
                )
            except SchemaUnavailable as e:
                logger.debug("party_rollup_skipped", feature=e.feature, report_id=report_id)

            total_votes = sum(votes_by_candidate.values())
            await self.reports.finalize(report_id, total_votes, photo_url=photo_url)

        logger.info(
            "vote_report_submitted",
            report_id=report_id,
            assignment_id=assignment_id,
            delegate_id=delegate_id,
            municipality=location.municipality,
            total_votes=total_votes,
            created=created,
        )
        return SubmissionResult(report_id=report_id, total_votes=total_votes, created=created)

    async def _catalog_source(self, location_id: int) -> LocationFields:
        location = await self.locations.get_by_id(location_id)
        if location is None:
            raise NotFoundError("polling location not found", field="location_id")
        return LocationFields(
            department=location.department,
            municipality=location.municipality,
            address=location.address,
            polling_station_code=location.code,
        )

    async def _require_stored_photo(self, assignment_id: str) -> None:
        try:
            stored = await self.reports.get_photo_url(assignment_id)
        except SchemaUnavailable as e:
            logger.debug("photo_policy_skipped", feature=e.feature)
            return
        if not stored:
            raise ValidationError("a photo of the tally sheet is required", field="photo_url")

    async def _with_details(self, rows: Sequence[Any], ballot_order: bool = False) -> list[dict[str, Any]]:
        details = await self.reports.get_details([row.id for row in rows], ballot_order=ballot_order)
        reports = []
        for row in rows:
            report = dict(row._mapping)
            report["details"] = [
                {
                    "candidate_id": d.candidate_id,
                    "candidate_name": d.full_name,
                    "votes": d.votes,
                    "party": d.party,
                    "position": d.position,
                    "ballot_number": d.ballot_number,
                    "color": d.color,
                }
                for d in details.get(row.id, [])
            ]
            reports.append(report)
        return reports

    async def list_for_delegate(self, delegate_id: Optional[str], limit: int = 100) -> list[dict[str, Any]]:
        """Get a delegate's reports with their candidate lines, newest first."""
        if not delegate_id:
            raise Forbidden("only delegates have vote reports")
        rows = await self.reports.list_reports(delegate_id=delegate_id, limit=limit)
        return await self._with_details(rows)

    async def list_reports(self, delegate_id: Optional[str] = None, limit: Optional[int] = None) -> list[dict[str, Any]]:
        """
        Get reports newest first, candidate lines in ballot order.

        Every report when ``delegate_id`` is None, else only that delegate's.
        """
        limit = limit or settings.REPORT_LIST_LIMIT
        rows = await self.reports.list_reports(delegate_id=delegate_id, limit=limit)
        return await self._with_details(rows, ballot_order=True)

    async def get_report(self, report_id: Any, delegate_id: Optional[str] = None) -> dict[str, Any]:
        """
        Get one report with its candidate lines in ballot order.

        With ``delegate_id`` set, reports filed by anyone else are reported
        as missing rather than forbidden.
        """
        report_id = parse_uuid(report_id, "report_id")
        row = await self.reports.get_report(report_id, delegate_id=delegate_id)
        if row is None:
            raise NotFoundError("report does not exist", field="report_id")
        [report] = await self._with_details([row], ballot_order=True)
        return report

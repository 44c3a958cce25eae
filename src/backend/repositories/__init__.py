"""Repository modules for database access."""

from repositories.assignment_repository import AssignmentRepository
from repositories.candidate_repository import CandidateRepository
from repositories.delegate_repository import DelegateRepository
from repositories.location_repository import LocationRepository
from repositories.vote_report_repository import VoteReportRepository

__all__ = [
    "AssignmentRepository",
    "CandidateRepository",
    "DelegateRepository",
    "LocationRepository",
    "VoteReportRepository",
]

"""Schemas module initialization."""

from schemas.assignment import AssignmentItem, AssignmentList, AssignmentUpdate, AssignmentUpdateResponse
from schemas.compliance import ComplianceItem, ComplianceResponse, ComplianceSummary
from schemas.identity import Identity
from schemas.vote_report import VoteDetailIn, VoteReportList, VoteReportOut, VoteReportResult, VoteReportSubmit
from schemas.warroom import WarRoomSummary

__all__ = [
    "AssignmentUpdate",
    "AssignmentUpdateResponse",
    "AssignmentItem",
    "AssignmentList",
    "VoteDetailIn",
    "VoteReportSubmit",
    "VoteReportResult",
    "VoteReportOut",
    "VoteReportList",
    "ComplianceSummary",
    "ComplianceItem",
    "ComplianceResponse",
    "WarRoomSummary",
    "Identity",
]

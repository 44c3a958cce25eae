"""Database models module."""

from models.assignment import TableAssignment
from models.candidate import NO_PARTY, NO_POSITION, Candidate
from models.delegate import Delegate, TeamProfile
from models.location import PollingLocation
from models.vote_report import PartyVoteDetail, VoteDetail, VoteReport

__all__ = [
    "PollingLocation",
    "Delegate",
    "TeamProfile",
    "TableAssignment",
    "Candidate",
    "NO_POSITION",
    "NO_PARTY",
    "VoteReport",
    "VoteDetail",
    "PartyVoteDetail",
]

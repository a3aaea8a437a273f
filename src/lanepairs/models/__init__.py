"""Domain models and error types."""

from .domain import CandidatePair, City, Lane, PairSequence, PostingRow
from .errors import DirectoryUnavailable, InvalidLaneInput, VerificationUnavailable

__all__ = [
    "CandidatePair",
    "City",
    "DirectoryUnavailable",
    "InvalidLaneInput",
    "Lane",
    "PairSequence",
    "PostingRow",
    "VerificationUnavailable",
]

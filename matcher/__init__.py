"""LLM-backed résumé/job scoring.

``MatchScorer`` makes one scoring call per pair; ``BatchMatcher`` runs it
over a collection with a fixed pause between calls.
"""

from matcher.batch import BatchMatcher, Counterpart, MatchResult, SubjectKind
from matcher.scoring import (
    ConfigurationError,
    InvalidResponseError,
    MatchScorer,
    ScoringError,
    parse_percentage,
)

__all__ = [
    "BatchMatcher",
    "ConfigurationError",
    "Counterpart",
    "InvalidResponseError",
    "MatchResult",
    "MatchScorer",
    "ScoringError",
    "SubjectKind",
    "parse_percentage",
]

from .lead import (
    DecisionMaker,
    DuplicateCluster,
    ImportResult,
    Lead,
    LeadDraft,
    LeadFilter,
    MatchCandidate,
    MergeResult,
    ReviewDecision,
    ReviewOutcome,
    ScoreSet,
)
from .job import (
    BulkJob,
    EnrichmentOutcome,
    JobLogEntry,
    JobProgress,
)

__all__ = [
    "DecisionMaker", "DuplicateCluster", "ImportResult", "Lead", "LeadDraft",
    "LeadFilter", "MatchCandidate", "MergeResult", "ReviewDecision",
    "ReviewOutcome", "ScoreSet",
    "BulkJob", "EnrichmentOutcome", "JobLogEntry", "JobProgress",
]

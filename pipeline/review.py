"""Duplicate review decisions: merge a cluster or mark it as not duplicate."""
import logging

from pipeline.errors import InputValidationError
from pipeline.merge import merge_cluster
from schemas.lead import ReviewDecision, ReviewOutcome

logger = logging.getLogger(__name__)


async def apply_review_decision(store, decision: ReviewDecision) -> ReviewOutcome:
    """Apply a reviewer's decision for the leads of one cluster."""
    if len(set(decision.lead_ids)) < 2:
        raise InputValidationError("A review decision needs at least 2 distinct leads")

    if decision.action == "merge":
        result = await merge_cluster(store, decision.lead_ids, decision.primary_id)
        return ReviewOutcome(action="merge", message=result.message, merge=result)

    # Ignored clusters are not remembered; the next scan may report them again.
    logger.info("Cluster marked as not duplicate: %s", ", ".join(decision.lead_ids))
    return ReviewOutcome(action="ignore", message="Marked as not duplicate")

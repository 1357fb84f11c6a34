"""Duplicate detection over a snapshot of the lead population.

The scan is seed-based and quadratic: each unprocessed lead in fetch order
seeds a cluster and absorbs every later unprocessed lead whose similarity to
the seed meets the threshold. A lead therefore lands in at most one cluster,
and results are deterministic for a given snapshot order.
"""
import logging
from typing import List, Optional, Sequence

from pipeline.config import SimilarityWeights, default_duplicate_threshold
from pipeline.errors import InputValidationError
from pipeline.merge import select_primary
from pipeline.similarity import similarity
from schemas.lead import DuplicateCluster, MatchCandidate

logger = logging.getLogger(__name__)


def validate_threshold(threshold: float) -> float:
    if threshold is None or not 0 <= threshold <= 100:
        raise InputValidationError(f"Similarity threshold must be between 0 and 100, got {threshold!r}")
    return float(threshold)


def cluster_candidates(
    candidates: Sequence[MatchCandidate],
    threshold: float,
    weights: Optional[SimilarityWeights] = None,
) -> List[DuplicateCluster]:
    """Group candidates into duplicate clusters of two or more members."""
    threshold = validate_threshold(threshold)
    weights = weights or SimilarityWeights()
    processed: set[str] = set()
    clusters: List[DuplicateCluster] = []

    for i, seed in enumerate(candidates):
        if seed.id in processed:
            continue

        members = [seed]
        best = 0.0
        for other in candidates[i + 1:]:
            if other.id in processed:
                continue
            score = similarity(seed, other, weights)
            if score >= threshold:
                members.append(other)
                processed.add(other.id)
                best = max(best, score)

        if len(members) > 1:
            clusters.append(DuplicateCluster(
                cluster_id=f"group_{len(clusters) + 1}",
                similarity=best,
                leads=members,
                suggested_primary_id=select_primary(members).id,
            ))

        processed.add(seed.id)

    return clusters


def total_duplicates(clusters: Sequence[DuplicateCluster]) -> int:
    """Number of records that would be removed by merging every cluster."""
    return sum(len(cluster.leads) - 1 for cluster in clusters)


async def find_duplicates(
    store,
    threshold: Optional[float] = None,
    weights: Optional[SimilarityWeights] = None,
) -> List[DuplicateCluster]:
    """Scan the current lead population once and return its duplicate clusters."""
    if threshold is None:
        threshold = default_duplicate_threshold()
    threshold = validate_threshold(threshold)

    candidates = await store.fetch_match_candidates()
    clusters = cluster_candidates(candidates, threshold, weights)
    logger.info(
        "Duplicate scan: %d leads, %d clusters, %d duplicates at threshold %.1f",
        len(candidates),
        len(clusters),
        total_duplicates(clusters),
        threshold,
    )
    return clusters

"""Primary selection and field-level merge policy for duplicate clusters.

The policy is total and deterministic: every field combination has a
defined outcome, so merging never produces a conflict.

  - scalar fields: first non-empty value wins, primary first
  - owner_email_verified travels with whichever owner_email is kept
  - decision_makers: concatenated
  - tags, enrichment_sources, detected_technologies: concatenated, de-duplicated
  - outreach counters: summed
  - scores: the full set from the highest total, never mixed
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from pipeline.errors import InputValidationError, LeadNotFoundError
from schemas.lead import (
    COUNTER_FIELDS,
    IMMUTABLE_FIELDS,
    LIST_FIELDS,
    SCORE_FIELDS,
    Lead,
    LeadFilter,
    MergeResult,
)

logger = logging.getLogger(__name__)

_NON_SCALAR = {
    *IMMUTABLE_FIELDS,
    "updated_at",
    "owner_email_verified",
    *LIST_FIELDS,
    *COUNTER_FIELDS,
    *SCORE_FIELDS,
}
SCALAR_FIELDS = tuple(name for name in Lead.model_fields if name not in _NON_SCALAR)
_SET_LIKE_FIELDS = ("tags", "enrichment_sources", "detected_technologies")


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _unique(values: Iterable) -> list:
    seen = set()
    out = []
    for value in values:
        if value not in seen:
            seen.add(value)
            out.append(value)
    return out


def completeness_score(lead) -> float:
    """Heuristic used to pick the record that survives a merge."""
    score = 0.0
    if lead.owner_name:
        score += 20
    if lead.owner_email:
        score += 30 if lead.owner_email_verified else 15
    if lead.owner_phone:
        score += 20
    if lead.website:
        score += 10
    if lead.total_score and lead.total_score > 0:
        score += lead.total_score * 0.2
    if lead.enrichment_status == "enriched":
        score += 25
    return score


def select_primary(leads: Sequence):
    """Return the most complete lead; the first one wins on ties."""
    if not leads:
        raise InputValidationError("Cannot select a primary from an empty cluster")
    return max(leads, key=completeness_score)


def merge_leads(primary: Lead, others: Sequence[Lead], now: Optional[datetime] = None) -> Lead:
    """Fold others into primary and return the merged record. No I/O."""
    merged = primary.model_dump()

    for other in others:
        for name in SCALAR_FIELDS:
            if not _is_empty(merged[name]):
                continue
            value = getattr(other, name)
            if _is_empty(value):
                continue
            merged[name] = value
            if name == "owner_email":
                merged["owner_email_verified"] = other.owner_email_verified

        merged["decision_makers"].extend(dm.model_dump() for dm in other.decision_makers)
        for name in _SET_LIKE_FIELDS:
            merged[name].extend(getattr(other, name))

        if other.total_score > merged["total_score"]:
            merged.update(other.scores.as_patch())

        for name in COUNTER_FIELDS:
            merged[name] += getattr(other, name)

    for name in _SET_LIKE_FIELDS:
        merged[name] = _unique(merged[name])
    merged["updated_at"] = now or datetime.now(timezone.utc)
    return Lead.model_validate(merged)


def merged_patch(merged: Lead) -> dict:
    """Column values to persist for a merged record under the primary's ID."""
    return merged.model_dump(exclude=set(IMMUTABLE_FIELDS))


async def merge_cluster(
    store,
    lead_ids: Sequence[str],
    primary_id: Optional[str] = None,
) -> MergeResult:
    """Merge a cluster: persist the merged record under the primary, delete the rest."""
    ids: List[str] = _unique(str(i) for i in lead_ids)
    if len(ids) < 2:
        raise InputValidationError("At least 2 leads required for merging")

    fetched = {lead.id: lead for lead in await store.fetch_leads(LeadFilter(ids=ids))}
    missing = [i for i in ids if i not in fetched]
    if missing:
        raise LeadNotFoundError(f"Leads not found: {', '.join(missing)}")
    leads = [fetched[i] for i in ids]

    if primary_id is not None:
        primary = fetched.get(str(primary_id))
        if primary is None:
            raise InputValidationError(f"Primary lead {primary_id} is not part of the merge set")
    else:
        primary = select_primary(leads)

    others = [lead for lead in leads if lead.id != primary.id]
    merged = merge_leads(primary, others)

    saved = await store.update_lead(primary.id, merged_patch(merged))
    merged_ids = [lead.id for lead in others]
    await store.delete_leads(merged_ids)

    logger.info(
        "Leads merged: primary=%s merged=%s total=%d",
        primary.id,
        ", ".join(merged_ids),
        len(ids),
    )
    return MergeResult(
        primary=saved,
        merged_ids=merged_ids,
        message=f"Merged {len(ids)} leads into one",
    )

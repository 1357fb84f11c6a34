"""Composite lead-quality scoring.

Four sub-scores (fit, engagement, contact quality, opportunity) are each
computed on 0-100 from lead attributes; the total is their weighted mean.
All five values are produced and persisted together.
"""
import logging
import re
from typing import Optional

from pipeline.config import ScoringPolicy
from pipeline.errors import LeadNotFoundError
from pipeline.similarity import round_half_up
from schemas.lead import Lead, LeadFilter, ScoreSet

logger = logging.getLogger(__name__)

_DEFAULT_POLICY = ScoringPolicy()
_PAIN_POINT_SPLIT = re.compile(r"[;\n]+")


def _clamp(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def _within(value: Optional[int], bounds: tuple) -> bool:
    return value is not None and bounds[0] <= value <= bounds[1]


def fit_score(lead: Lead, policy: ScoringPolicy = _DEFAULT_POLICY) -> int:
    score = 0
    business_type = (lead.business_type or "").lower()
    if business_type and any(t.lower() in business_type for t in policy.target_business_types):
        score += 40
    else:
        score += 20

    if lead.employee_count is None:
        score += 15
    elif _within(lead.employee_count, policy.ideal_employee_range):
        score += 30
    elif lead.employee_count <= 50:
        score += 20
    else:
        score += 10

    if lead.estimated_revenue is None:
        score += 10
    elif _within(lead.estimated_revenue, policy.ideal_revenue_range):
        score += 20
    elif _within(lead.estimated_revenue, policy.acceptable_revenue_range):
        score += 15
    else:
        score += 5

    if lead.state:
        score += 10
    return _clamp(score)


def engagement_score(lead: Lead) -> int:
    score = 0
    rating = lead.google_rating
    if rating:
        if rating >= 4.5:
            score += 30
        elif rating >= 4.0:
            score += 25
        elif rating >= 3.5:
            score += 15
        else:
            score += 5

    reviews = lead.google_review_count
    if reviews:
        if reviews >= 100:
            score += 20
        elif reviews >= 50:
            score += 15
        elif reviews >= 20:
            score += 10
        else:
            score += 5

    if lead.website:
        score += 20
    # No booking still earns partial credit: room for improvement.
    score += 15 if lead.has_online_booking else 5
    if lead.has_live_chat:
        score += 10
    if lead.detected_technologies:
        score += 5
    return _clamp(score)


def contact_quality_score(lead: Lead) -> int:
    score = 0
    if lead.owner_name:
        score += 30
    if lead.owner_title:
        score += 10
    if lead.owner_email:
        score += 30 if lead.owner_email_verified else 20
    if lead.owner_phone:
        score += 20
    if lead.website:
        score += 10
    return _clamp(score)


def pain_point_count(lead: Lead) -> int:
    if not lead.pain_points:
        return 0
    return sum(1 for part in _PAIN_POINT_SPLIT.split(lead.pain_points) if part.strip())


def opportunity_score(lead: Lead) -> int:
    score = 40
    score += min(30, pain_point_count(lead) * 10)
    if lead.has_online_booking is False:
        score += 15
    if lead.has_live_chat is False:
        score += 10
    if not lead.website:
        score += 5
    return _clamp(score)


def score_lead(lead: Lead, policy: ScoringPolicy = _DEFAULT_POLICY) -> ScoreSet:
    """Compute all sub-scores and the weighted total for a lead."""
    weights = policy.weights
    fit = fit_score(lead, policy)
    engagement = engagement_score(lead)
    contact = contact_quality_score(lead)
    opportunity = opportunity_score(lead)
    weight_sum = weights.fit + weights.engagement + weights.contact_quality + weights.opportunity
    total = (
        fit * weights.fit
        + engagement * weights.engagement
        + contact * weights.contact_quality
        + opportunity * weights.opportunity
    ) / weight_sum
    return ScoreSet(
        fit_score=fit,
        engagement_score=engagement,
        contact_quality_score=contact,
        opportunity_score=opportunity,
        total_score=_clamp(total),
    )


async def rescore_lead(store, lead_id: str, policy: ScoringPolicy = _DEFAULT_POLICY) -> ScoreSet:
    """Recompute and persist a lead's scores as one unit."""
    leads = await store.fetch_leads(LeadFilter(ids=[lead_id]))
    if not leads:
        raise LeadNotFoundError(f"Lead {lead_id} not found")
    scores = score_lead(leads[0], policy)
    await store.update_lead(lead_id, scores.as_patch())
    logger.info("Rescored lead %s: total=%d", lead_id, scores.total_score)
    return scores

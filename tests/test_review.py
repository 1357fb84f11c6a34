"""Unit tests for duplicate review decisions."""
import pytest

from pipeline.errors import InputValidationError
from pipeline.review import apply_review_decision
from schemas.lead import ReviewDecision


class TestReviewDecision:
    @pytest.mark.asyncio
    async def test_merge_decision_merges(self, store):
        a = store.add(business_name="Acme")
        b = store.add(business_name="Acme LLC")

        outcome = await apply_review_decision(
            store, ReviewDecision(action="merge", lead_ids=[a.id, b.id], primary_id=b.id)
        )

        assert outcome.action == "merge"
        assert outcome.message == "Merged 2 leads into one"
        assert outcome.merge.primary.id == b.id
        assert list(store.leads) == [b.id]

    @pytest.mark.asyncio
    async def test_ignore_decision_leaves_leads_untouched(self, store):
        a = store.add(business_name="Acme")
        b = store.add(business_name="Acme LLC")

        outcome = await apply_review_decision(
            store, ReviewDecision(action="ignore", lead_ids=[a.id, b.id])
        )

        assert outcome.action == "ignore"
        assert outcome.message == "Marked as not duplicate"
        assert outcome.merge is None
        assert set(store.leads) == {a.id, b.id}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", ["merge", "ignore"])
    async def test_single_lead_rejected(self, store, action):
        a = store.add()
        with pytest.raises(InputValidationError):
            await apply_review_decision(store, ReviewDecision(action=action, lead_ids=[a.id]))

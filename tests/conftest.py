"""Shared fixtures: an in-memory RecordStore and lead factories."""
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from pipeline.errors import JobNotFoundError, LeadNotFoundError
from pipeline.store import draft_to_row, validate_lead_patch
from schemas.job import BulkJob, JobLogEntry
from schemas.lead import Lead, LeadDraft, LeadFilter, MatchCandidate


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRecordStore:
    """RecordStore kept in dicts; same validation as SqlRecordStore."""

    def __init__(self):
        self.leads: Dict[str, Lead] = {}
        self.jobs: Dict[str, BulkJob] = {}
        self.logs: List[JobLogEntry] = []

    def add(self, **fields) -> Lead:
        """Seed a lead directly, bypassing import normalization."""
        fields.setdefault("id", str(uuid.uuid4()))
        fields.setdefault("business_name", "Test Business")
        fields.setdefault("created_at", _now())
        fields.setdefault("updated_at", fields["created_at"])
        lead = Lead(**fields)
        self.leads[lead.id] = lead
        return lead

    async def fetch_leads(self, lead_filter: Optional[LeadFilter] = None) -> List[Lead]:
        lead_filter = lead_filter or LeadFilter()
        leads = list(self.leads.values())
        if lead_filter.ids is not None:
            wanted = set(lead_filter.ids)
            leads = [lead for lead in leads if lead.id in wanted]
        if lead_filter.business_type:
            leads = [lead for lead in leads if lead.business_type == lead_filter.business_type]
        if lead_filter.enrichment_status:
            leads = [lead for lead in leads if lead.enrichment_status == lead_filter.enrichment_status]
        if lead_filter.min_score is not None:
            leads = [lead for lead in leads if lead.total_score >= lead_filter.min_score]
        if lead_filter.order_by_score:
            leads.sort(key=lambda lead: lead.total_score, reverse=True)
        return leads

    async def fetch_match_candidates(self) -> List[MatchCandidate]:
        return [MatchCandidate.model_validate(lead.model_dump()) for lead in self.leads.values()]

    async def find_matching_lead(
        self,
        business_name: Optional[str] = None,
        phone: Optional[str] = None,
        owner_email: Optional[str] = None,
    ) -> Optional[str]:
        for lead in self.leads.values():
            if business_name and business_name.lower() in lead.business_name.lower():
                return lead.id
            if phone and lead.phone == phone:
                return lead.id
            if owner_email and (lead.owner_email or "").lower() == owner_email.lower():
                return lead.id
        return None

    async def insert_lead(self, draft: LeadDraft) -> Lead:
        row = draft_to_row(draft)
        return self.add(**row)

    async def update_lead(self, lead_id: str, patch: dict) -> Lead:
        validate_lead_patch(patch)
        current = self.leads.get(lead_id)
        if current is None:
            raise LeadNotFoundError(f"Lead {lead_id} not found")
        data = current.model_dump()
        data.update(patch)
        if "updated_at" not in patch:
            data["updated_at"] = _now()
        updated = Lead.model_validate(data)
        self.leads[lead_id] = updated
        return updated

    async def delete_leads(self, lead_ids: Sequence[str]) -> int:
        removed = 0
        for lead_id in lead_ids:
            if self.leads.pop(lead_id, None) is not None:
                removed += 1
        return removed

    async def insert_job(self, job: BulkJob) -> BulkJob:
        stored = job.model_copy(update={"created_at": _now(), "updated_at": _now()})
        self.jobs[job.id] = stored
        return stored

    async def update_job(self, job_id: str, patch: dict) -> BulkJob:
        current = self.jobs.get(job_id)
        if current is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        updated = current.model_copy(update={**patch, "updated_at": _now()})
        self.jobs[job_id] = updated
        return updated

    async def append_job_log(self, entry: JobLogEntry) -> JobLogEntry:
        stored = entry.model_copy(update={"created_at": _now()})
        self.logs.append(stored)
        return stored

    async def fetch_job(self, job_id: str) -> Optional[BulkJob]:
        return self.jobs.get(job_id)

    async def fetch_recent_job_logs(self, job_id: str, limit: int = 10) -> List[JobLogEntry]:
        entries = [entry for entry in self.logs if entry.job_id == job_id]
        return list(reversed(entries))[:limit]


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def make_lead():
    """Build a Lead (not stored) with sensible defaults."""

    def _make(**fields) -> Lead:
        fields.setdefault("id", str(uuid.uuid4()))
        fields.setdefault("business_name", "Test Business")
        return Lead(**fields)

    return _make

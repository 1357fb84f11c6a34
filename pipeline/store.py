"""Record repository interface consumed by the pipeline, and its SQL implementation.

Every operation is atomic at the single-record level. The pipeline never
needs multi-record transactions, so SqlRecordStore opens one session per call.
"""
import logging
from typing import List, Optional, Protocol, Sequence

from db.connection import get_db
from db.repositories import jobs as jobs_repo
from db.repositories import leads as leads_repo
from pipeline.errors import InputValidationError, JobNotFoundError, LeadNotFoundError
from schemas.job import BulkJob, JobLogEntry
from schemas.lead import (
    COUNTER_FIELDS,
    IMMUTABLE_FIELDS,
    SCORE_FIELDS,
    Lead,
    LeadDraft,
    LeadFilter,
    MatchCandidate,
)

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    async def fetch_leads(self, lead_filter: Optional[LeadFilter] = None) -> List[Lead]: ...

    async def fetch_match_candidates(self) -> List[MatchCandidate]: ...

    async def find_matching_lead(
        self,
        business_name: Optional[str] = None,
        phone: Optional[str] = None,
        owner_email: Optional[str] = None,
    ) -> Optional[str]: ...

    async def insert_lead(self, draft: LeadDraft) -> Lead: ...

    async def update_lead(self, lead_id: str, patch: dict) -> Lead: ...

    async def delete_leads(self, lead_ids: Sequence[str]) -> int: ...

    async def insert_job(self, job: BulkJob) -> BulkJob: ...

    async def update_job(self, job_id: str, patch: dict) -> BulkJob: ...

    async def append_job_log(self, entry: JobLogEntry) -> JobLogEntry: ...

    async def fetch_job(self, job_id: str) -> Optional[BulkJob]: ...

    async def fetch_recent_job_logs(self, job_id: str, limit: int = 10) -> List[JobLogEntry]: ...


def validate_lead_patch(patch: dict) -> None:
    """Reject patches that would break lead invariants.

    Scores may only be written as the full set of sub-scores plus total,
    and counters may never be set below zero.
    """
    frozen = [name for name in IMMUTABLE_FIELDS if name in patch]
    if frozen:
        raise InputValidationError(f"Cannot modify immutable lead fields: {', '.join(frozen)}")
    touched = [name for name in SCORE_FIELDS if name in patch]
    if touched and len(touched) != len(SCORE_FIELDS):
        raise InputValidationError(
            "Lead scores must be written together: " + ", ".join(SCORE_FIELDS)
        )
    if "business_name" in patch and not (patch["business_name"] or "").strip():
        raise InputValidationError("business_name must not be empty")
    for name in COUNTER_FIELDS:
        if name in patch and (patch[name] is None or patch[name] < 0):
            raise InputValidationError(f"{name} must be a non-negative integer")


def draft_to_row(draft: LeadDraft) -> dict:
    """Validate a draft and return the column values to insert."""
    name = (draft.business_name or "").strip()
    if not name:
        raise InputValidationError("business_name is required")
    data = draft.model_dump(exclude_none=True)
    data["business_name"] = name
    return data


class SqlRecordStore:
    """RecordStore backed by PostgreSQL through the db.repositories layer."""

    async def fetch_leads(self, lead_filter: Optional[LeadFilter] = None) -> List[Lead]:
        lead_filter = lead_filter or LeadFilter()
        async with get_db() as session:
            rows = await leads_repo.list_leads(
                session,
                ids=lead_filter.ids,
                business_type=lead_filter.business_type,
                enrichment_status=lead_filter.enrichment_status,
                min_score=lead_filter.min_score,
                order_by_score=lead_filter.order_by_score,
            )
            return [Lead.model_validate(row) for row in rows]

    async def fetch_match_candidates(self) -> List[MatchCandidate]:
        async with get_db() as session:
            rows = await leads_repo.get_match_candidates(session)
        return [MatchCandidate.model_validate(dict(row._mapping)) for row in rows]

    async def find_matching_lead(
        self,
        business_name: Optional[str] = None,
        phone: Optional[str] = None,
        owner_email: Optional[str] = None,
    ) -> Optional[str]:
        async with get_db() as session:
            found = await leads_repo.find_matching(session, business_name, phone, owner_email)
        return str(found) if found is not None else None

    async def insert_lead(self, draft: LeadDraft) -> Lead:
        data = draft_to_row(draft)
        async with get_db() as session:
            row = await leads_repo.insert(session, data)
            return Lead.model_validate(row)

    async def update_lead(self, lead_id: str, patch: dict) -> Lead:
        validate_lead_patch(patch)
        async with get_db() as session:
            row = await leads_repo.update_fields(session, lead_id, patch)
            if row is None:
                raise LeadNotFoundError(f"Lead {lead_id} not found")
            return Lead.model_validate(row)

    async def delete_leads(self, lead_ids: Sequence[str]) -> int:
        async with get_db() as session:
            return await leads_repo.delete_many(session, lead_ids)

    async def insert_job(self, job: BulkJob) -> BulkJob:
        data = job.model_dump(exclude={"created_at", "updated_at"})
        async with get_db() as session:
            row = await jobs_repo.create_job(session, data)
            return BulkJob.model_validate(row)

    async def update_job(self, job_id: str, patch: dict) -> BulkJob:
        async with get_db() as session:
            row = await jobs_repo.update_job(session, job_id, patch)
            if row is None:
                raise JobNotFoundError(f"Job {job_id} not found")
            return BulkJob.model_validate(row)

    async def append_job_log(self, entry: JobLogEntry) -> JobLogEntry:
        data = entry.model_dump(exclude={"created_at"})
        async with get_db() as session:
            row = await jobs_repo.append_log(session, data)
            return JobLogEntry.model_validate(row)

    async def fetch_job(self, job_id: str) -> Optional[BulkJob]:
        async with get_db() as session:
            row = await jobs_repo.get_job(session, job_id)
            return BulkJob.model_validate(row) if row is not None else None

    async def fetch_recent_job_logs(self, job_id: str, limit: int = 10) -> List[JobLogEntry]:
        async with get_db() as session:
            rows = await jobs_repo.get_recent_logs(session, job_id, limit)
            return [JobLogEntry.model_validate(row) for row in rows]

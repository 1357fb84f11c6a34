"""Bulk enrichment job repository — job state and append-only logs."""
import logging
from typing import Optional

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import BulkEnrichmentJob, BulkEnrichmentLog

logger = logging.getLogger(__name__)


async def create_job(session: AsyncSession, data: dict) -> BulkEnrichmentJob:
    """Insert a job row.

    data dict keys: id, lead_ids, total_leads, batch_size, status,
    processed_leads, successful_leads, failed_leads, started_at
    """
    job = BulkEnrichmentJob(**data)
    session.add(job)
    await session.flush()
    await session.refresh(job)
    return job


async def get_job(session: AsyncSession, job_id: str) -> Optional[BulkEnrichmentJob]:
    """Return the job with this ID, or None."""
    return await session.get(BulkEnrichmentJob, job_id)


async def update_job(
    session: AsyncSession, job_id: str, patch: dict
) -> Optional[BulkEnrichmentJob]:
    """Apply a patch (status, counters, timestamps) to a job."""
    values = {"updated_at": func.now(), **patch}
    result = await session.execute(
        update(BulkEnrichmentJob)
        .where(BulkEnrichmentJob.id == job_id)
        .values(**values)
        .returning(BulkEnrichmentJob),
        execution_options={"populate_existing": True},
    )
    await session.flush()
    return result.scalar_one_or_none()


async def append_log(session: AsyncSession, data: dict) -> BulkEnrichmentLog:
    """Append one per-lead outcome. Log rows are never updated."""
    entry = BulkEnrichmentLog(**data)
    session.add(entry)
    await session.flush()
    await session.refresh(entry)
    return entry


def recent_logs_query(job_id: str, limit: int = 10) -> Select:
    """Newest first; rows sharing a timestamp fall back to descending id."""
    return (
        select(BulkEnrichmentLog)
        .where(BulkEnrichmentLog.job_id == job_id)
        .order_by(BulkEnrichmentLog.created_at.desc(), BulkEnrichmentLog.id.desc())
        .limit(limit)
    )


async def get_recent_logs(
    session: AsyncSession, job_id: str, limit: int = 10
) -> list[BulkEnrichmentLog]:
    """Return the newest log entries for a job, newest first."""
    result = await session.execute(recent_logs_query(job_id, limit))
    return list(result.scalars().all())

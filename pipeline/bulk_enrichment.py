"""Bulk enrichment jobs with chunked concurrency and progress tracking.

A job moves queued -> processing -> completed | failed. The lead-ID list is
split into consecutive chunks of batch_size; each chunk fans out one
enrichment call per lead, the whole chunk is awaited before the next one
starts, and a fixed delay separates chunks to respect upstream rate limits.

Per-lead failures are logged and counted, never retried. Anything that
escapes the per-lead boundary (a store outage, for example) fails the job and
keeps whatever counters had accumulated.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterator, List, Optional, Sequence, Union

from dateutil.relativedelta import relativedelta

from pipeline.config import MAX_BATCH_SIZE, BulkJobSettings, DEFAULT_LOG_LIMIT, load_bulk_settings
from pipeline.errors import InputValidationError, InvalidJobTransition, JobNotFoundError
from pipeline.similarity import round_half_up
from schemas.job import BulkJob, EnrichmentOutcome, JobLogEntry, JobProgress

logger = logging.getLogger(__name__)

EnrichFn = Callable[[str], Awaitable[Union[EnrichmentOutcome, dict]]]

_TRANSITIONS = {
    "queued": ("processing", "failed"),
    "processing": ("completed", "failed"),
    "completed": (),
    "failed": (),
}


class _JobCancelled(Exception):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    """Time-ordered, collision-resistant job ID."""
    millis = int(_utcnow().timestamp() * 1000)
    return f"bulk_{millis}_{uuid.uuid4().hex[:9]}"


def chunked(items: Sequence[str], size: int) -> Iterator[List[str]]:
    """Yield consecutive slices of at most size items."""
    if size < 1:
        raise InputValidationError("batch_size must be at least 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def check_transition(job_id: str, current: str, target: str) -> None:
    if target not in _TRANSITIONS.get(current, ()):
        raise InvalidJobTransition(job_id, current, target)


def format_remaining(remaining_ms: float) -> str:
    """Render a duration as 'less than 1 minute', 'N minute(s)', or 'Hh Mm'."""
    if remaining_ms < 60_000:
        return "less than 1 minute"
    minutes = round_half_up(remaining_ms / 60_000)
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'}"
    delta = relativedelta(minutes=minutes).normalized()
    hours = delta.days * 24 + delta.hours
    return f"{hours}h {delta.minutes}m"


def estimate_remaining(job: BulkJob, now: Optional[datetime] = None) -> Optional[str]:
    """Estimated time left from observed per-lead throughput.

    Only defined while the job is processing and at least one lead is done.
    """
    if job.status != "processing" or job.processed_leads <= 0 or job.started_at is None:
        return None
    started = job.started_at
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    now = now or _utcnow()
    elapsed_ms = max(0.0, (now - started).total_seconds() * 1000)
    remaining = max(0, job.total_leads - job.processed_leads)
    return format_remaining(remaining * (elapsed_ms / job.processed_leads))


def progress_percentage(job: BulkJob) -> int:
    if job.total_leads <= 0:
        return 0
    return round_half_up(job.processed_leads * 100 / job.total_leads)


async def get_progress(
    store,
    job_id: str,
    log_limit: int = DEFAULT_LOG_LIMIT,
    now: Optional[datetime] = None,
) -> JobProgress:
    """Read-only progress view for polling clients."""
    job = await store.fetch_job(job_id)
    if job is None:
        raise JobNotFoundError(f"Job {job_id} not found")
    logs = await store.fetch_recent_job_logs(job_id, log_limit)
    return JobProgress(
        id=job.id,
        status=job.status,
        total_leads=job.total_leads,
        processed_leads=job.processed_leads,
        successful_leads=job.successful_leads,
        failed_leads=job.failed_leads,
        progress_percentage=progress_percentage(job),
        started_at=job.started_at,
        completed_at=job.completed_at,
        estimated_time_remaining=estimate_remaining(job, now),
        error_summary=job.error_summary,
        recent_logs=logs,
    )


class _JobCounters:
    """Per-job counters; every increment and flush happens under the lock."""

    def __init__(self):
        self.lock = asyncio.Lock()
        self.processed = 0
        self.successful = 0
        self.failed = 0

    def record(self, success: bool) -> None:
        self.processed += 1
        if success:
            self.successful += 1
        else:
            self.failed += 1

    def snapshot(self) -> dict:
        return {
            "processed_leads": self.processed,
            "successful_leads": self.successful,
            "failed_leads": self.failed,
        }


class BulkEnrichmentOrchestrator:
    """Owns the lifecycle of bulk enrichment jobs.

    Args:
        store: RecordStore used for job state and logs.
        enrich: async per-lead enrichment operation, called once per lead ID.
        settings: batch size default and inter-chunk delay.
    """

    def __init__(self, store, enrich: EnrichFn, settings: Optional[BulkJobSettings] = None):
        self.store = store
        self.enrich = enrich
        self.settings = settings or load_bulk_settings()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._cancel_requested: set[str] = set()

    async def submit(self, lead_ids: Sequence[str], batch_size: Optional[int] = None) -> str:
        """Create a queued job and start it in the background. Returns the job ID."""
        ids = [str(lead_id) for lead_id in (lead_ids or [])]
        if not ids:
            raise InputValidationError("lead_ids must be a non-empty list")
        size = batch_size if batch_size is not None else self.settings.batch_size
        if not 1 <= size <= MAX_BATCH_SIZE:
            raise InputValidationError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")

        job = BulkJob(
            id=new_job_id(),
            lead_ids=ids,
            total_leads=len(ids),
            batch_size=size,
            status="queued",
        )
        await self.store.insert_job(job)

        task = asyncio.create_task(self._run(job), name=f"bulk-enrichment-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda _t, job_id=job.id: self._forget(job_id))

        logger.info(
            "Bulk enrichment job created: job_id=%s total_leads=%d batch_size=%d",
            job.id, len(ids), size,
        )
        return job.id

    async def wait(self, job_id: str) -> None:
        """Block until a job has finished.

        Returns at once for a job this orchestrator is no longer running.
        Raises JobNotFoundError when the store has never seen the job.
        """
        task = self._tasks.get(job_id)
        if task is not None:
            await task
            return
        if await self.store.fetch_job(job_id) is None:
            raise JobNotFoundError(f"Job {job_id} not found")

    def _forget(self, job_id: str) -> None:
        self._tasks.pop(job_id, None)
        self._cancel_requested.discard(job_id)

    def cancel(self, job_id: str) -> bool:
        """Request cooperative cancellation; honoured before the next chunk starts."""
        task = self._tasks.get(job_id)
        if task is None or task.done():
            return False
        self._cancel_requested.add(job_id)
        logger.info("Cancellation requested for job %s", job_id)
        return True

    async def _run(self, job: BulkJob) -> None:
        counters = _JobCounters()
        status = job.status
        try:
            check_transition(job.id, status, "processing")
            await self.store.update_job(job.id, {"status": "processing", "started_at": _utcnow()})
            status = "processing"

            chunks = list(chunked(job.lead_ids, job.batch_size))
            for number, chunk in enumerate(chunks, start=1):
                if job.id in self._cancel_requested:
                    raise _JobCancelled(
                        f"Cancelled after {counters.processed} of {job.total_leads} leads"
                    )
                logger.debug("Job %s: chunk %d/%d (%d leads)", job.id, number, len(chunks), len(chunk))
                await self._run_chunk(job.id, chunk, counters)
                if number < len(chunks) and self.settings.batch_delay_seconds > 0:
                    await asyncio.sleep(self.settings.batch_delay_seconds)

            check_transition(job.id, status, "completed")
            async with counters.lock:
                await self.store.update_job(job.id, {
                    "status": "completed",
                    "completed_at": _utcnow(),
                    **counters.snapshot(),
                })
            logger.info(
                "Bulk enrichment job completed: job_id=%s processed=%d successful=%d failed=%d",
                job.id, counters.processed, counters.successful, counters.failed,
            )
        except _JobCancelled as exc:
            logger.info("Bulk enrichment job %s: %s", job.id, exc)
            await self._mark_failed(job.id, status, counters, str(exc))
        except Exception as exc:
            logger.exception("Bulk enrichment job failed: job_id=%s", job.id)
            await self._mark_failed(job.id, status, counters, str(exc) or type(exc).__name__)

    async def _run_chunk(self, job_id: str, chunk: List[str], counters: _JobCounters) -> None:
        results = await asyncio.gather(
            *(self._process_lead(job_id, lead_id, counters) for lead_id in chunk),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _process_lead(self, job_id: str, lead_id: str, counters: _JobCounters) -> None:
        try:
            outcome = await self.enrich(lead_id)
            if isinstance(outcome, dict):
                outcome = EnrichmentOutcome.model_validate(outcome)
        except Exception as exc:
            logger.warning("Enrichment error for lead %s in job %s: %s", lead_id, job_id, exc)
            outcome = EnrichmentOutcome(
                success=False,
                error="Processing error",
                details={"error": str(exc) or type(exc).__name__},
            )

        if outcome.success:
            entry = JobLogEntry(
                job_id=job_id,
                lead_id=lead_id,
                status="success",
                message="Lead enriched successfully",
                score=outcome.lead.total_score if outcome.lead else 0,
            )
        else:
            details = outcome.details
            if details is None and outcome.error:
                details = {"error": outcome.error}
            entry = JobLogEntry(
                job_id=job_id,
                lead_id=lead_id,
                status="failed",
                message=outcome.error or "Unknown error",
                error_details=details,
            )
        await self.store.append_job_log(entry)

        async with counters.lock:
            counters.record(outcome.success)
            await self.store.update_job(job_id, counters.snapshot())

    async def _mark_failed(
        self, job_id: str, status: str, counters: _JobCounters, summary: str
    ) -> None:
        try:
            check_transition(job_id, status, "failed")
            await self.store.update_job(job_id, {
                "status": "failed",
                "completed_at": _utcnow(),
                "error_summary": summary,
                **counters.snapshot(),
            })
        except Exception:
            logger.exception("Could not record failure for job %s", job_id)

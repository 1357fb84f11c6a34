"""Bulk enrichment job schemas."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .lead import Lead

JobStatus = Literal["queued", "processing", "completed", "failed"]
LogStatus = Literal["success", "failed"]


class BulkJob(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    lead_ids: List[str]
    total_leads: int
    batch_size: int = Field(ge=1)
    status: JobStatus = "queued"
    processed_leads: int = 0
    successful_leads: int = 0
    failed_leads: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_summary: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: str
    lead_id: str
    status: LogStatus
    message: str
    score: Optional[int] = None
    error_details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class EnrichmentOutcome(BaseModel):
    """Result of one call to the per-lead enrichment operation."""

    success: bool
    lead: Optional[Lead] = None
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class JobProgress(BaseModel):
    id: str
    status: JobStatus
    total_leads: int
    processed_leads: int
    successful_leads: int
    failed_leads: int
    progress_percentage: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    estimated_time_remaining: Optional[str] = None
    error_summary: Optional[str] = None
    recent_logs: List[JobLogEntry] = Field(default_factory=list)

"""SQLAlchemy 2.0 ORM models for the lead engine.

Covers 3 tables across 2 schemas:
  - crm: enriched_leads
  - obs: bulk_enrichment_jobs, bulk_enrichment_logs
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    UUID,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


_ENRICHMENT_STATUSES = ("pending", "enriched", "failed")
_JOB_STATUSES = ("queued", "processing", "completed", "failed")
_LOG_STATUSES = ("success", "failed")


def _in_check(column: str, values: tuple) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


# ===========================================================================
# Schema: crm
# ===========================================================================


class EnrichedLead(Base):
    """crm.enriched_leads — one business prospect."""

    __tablename__ = "enriched_leads"
    __table_args__ = (
        CheckConstraint(
            _in_check("enrichment_status", _ENRICHMENT_STATUSES),
            name="ck_lead_enrichment_status",
        ),
        CheckConstraint("length(trim(business_name)) > 0", name="ck_lead_business_name"),
        CheckConstraint(
            "contact_attempts >= 0 AND emails_sent >= 0 AND emails_opened >= 0 AND sms_sent >= 0",
            name="ck_lead_counters_non_negative",
        ),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    business_name: Mapped[str] = mapped_column(Text, nullable=False)
    business_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    state: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_email_verified: Mapped[bool] = mapped_column(
        Boolean, server_default="false", nullable=False, default=False
    )
    owner_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)

    enrichment_status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="pending", default="pending"
    )
    enrichment_sources: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    decision_makers: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    pain_points: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    google_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    google_review_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    employee_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    estimated_revenue: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    has_online_booking: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    has_live_chat: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    detected_technologies: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    fit_score: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    engagement_score: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    contact_quality_score: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", default=0
    )
    opportunity_score: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    total_score: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", default=0, index=True
    )

    contact_attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    emails_sent: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    emails_opened: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    sms_sent: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ===========================================================================
# Schema: obs
# ===========================================================================


class BulkEnrichmentJob(Base):
    """obs.bulk_enrichment_jobs — one bulk enrichment run over a fixed ID list."""

    __tablename__ = "bulk_enrichment_jobs"
    __table_args__ = (
        CheckConstraint(_in_check("status", _JOB_STATUSES), name="ck_job_status"),
        CheckConstraint("batch_size >= 1", name="ck_job_batch_size"),
        {"schema": "obs"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    lead_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    total_leads: Mapped[int] = mapped_column(Integer, nullable=False)
    batch_size: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default="queued")
    processed_leads: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    successful_leads: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    failed_leads: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    error_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    logs: Mapped[list["BulkEnrichmentLog"]] = relationship(
        "BulkEnrichmentLog", back_populates="job", cascade="all, delete-orphan"
    )


class BulkEnrichmentLog(Base):
    """obs.bulk_enrichment_logs — append-only per-lead outcome within a job."""

    __tablename__ = "bulk_enrichment_logs"
    __table_args__ = (
        CheckConstraint(_in_check("status", _LOG_STATUSES), name="ck_job_log_status"),
        {"schema": "obs"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    job_id: Mapped[str] = mapped_column(
        Text, ForeignKey("obs.bulk_enrichment_jobs.id"), nullable=False, index=True
    )
    # No FK: merged leads are deleted but their log history stays.
    lead_id: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    job: Mapped["BulkEnrichmentJob"] = relationship(
        "BulkEnrichmentJob", back_populates="logs"
    )

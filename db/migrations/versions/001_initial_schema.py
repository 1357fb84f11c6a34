"""Initial schema: crm leads, obs bulk enrichment jobs and logs.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer, nullable=False, server_default="0")


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS crm")
    op.execute("CREATE SCHEMA IF NOT EXISTS obs")

    # ─── CRM Schema ──────────────────────────────────────────────────────────

    op.create_table(
        "enriched_leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("business_name", sa.Text, nullable=False),
        sa.Column("business_type", sa.Text, nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("city", sa.Text, nullable=True),
        sa.Column("state", sa.Text, nullable=True),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column("website", sa.Text, nullable=True),
        sa.Column("owner_name", sa.Text, nullable=True),
        sa.Column("owner_title", sa.Text, nullable=True),
        sa.Column("owner_email", sa.Text, nullable=True),
        sa.Column("owner_email_verified", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("owner_phone", sa.Text, nullable=True),
        sa.Column("source_key", sa.Text, nullable=True),
        sa.Column("enrichment_status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("enrichment_sources", sa.JSON, nullable=False),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("decision_makers", sa.JSON, nullable=False),
        sa.Column("pain_points", sa.Text, nullable=True),
        sa.Column("google_rating", sa.Float, nullable=True),
        sa.Column("google_review_count", sa.Integer, nullable=True),
        sa.Column("employee_count", sa.Integer, nullable=True),
        sa.Column("estimated_revenue", sa.Integer, nullable=True),
        sa.Column("has_online_booking", sa.Boolean, nullable=True),
        sa.Column("has_live_chat", sa.Boolean, nullable=True),
        sa.Column("detected_technologies", sa.JSON, nullable=False),
        _counter("fit_score"),
        _counter("engagement_score"),
        _counter("contact_quality_score"),
        _counter("opportunity_score"),
        _counter("total_score"),
        _counter("contact_attempts"),
        _counter("emails_sent"),
        _counter("emails_opened"),
        _counter("sms_sent"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "enrichment_status IN ('pending', 'enriched', 'failed')",
            name="ck_lead_enrichment_status",
        ),
        sa.CheckConstraint("length(trim(business_name)) > 0", name="ck_lead_business_name"),
        sa.CheckConstraint(
            "contact_attempts >= 0 AND emails_sent >= 0 AND emails_opened >= 0 AND sms_sent >= 0",
            name="ck_lead_counters_non_negative",
        ),
        schema="crm",
    )
    op.create_index("ix_enriched_leads_source_key", "enriched_leads", ["source_key"], schema="crm")
    op.create_index("ix_enriched_leads_total_score", "enriched_leads", ["total_score"], schema="crm")

    # ─── OBS Schema ──────────────────────────────────────────────────────────

    op.create_table(
        "bulk_enrichment_jobs",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("lead_ids", sa.JSON, nullable=False),
        sa.Column("total_leads", sa.Integer, nullable=False),
        sa.Column("batch_size", sa.Integer, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="queued"),
        _counter("processed_leads"),
        _counter("successful_leads"),
        _counter("failed_leads"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_summary", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('queued', 'processing', 'completed', 'failed')",
            name="ck_job_status",
        ),
        sa.CheckConstraint("batch_size >= 1", name="ck_job_batch_size"),
        schema="obs",
    )

    op.create_table(
        "bulk_enrichment_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "job_id",
            sa.Text,
            sa.ForeignKey("obs.bulk_enrichment_jobs.id"),
            nullable=False,
        ),
        sa.Column("lead_id", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("score", sa.Integer, nullable=True),
        sa.Column("error_details", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('success', 'failed')", name="ck_job_log_status"),
        schema="obs",
    )
    op.create_index(
        "ix_bulk_enrichment_logs_job_id", "bulk_enrichment_logs", ["job_id"], schema="obs"
    )


def downgrade() -> None:
    op.drop_index("ix_bulk_enrichment_logs_job_id", table_name="bulk_enrichment_logs", schema="obs")
    op.drop_index("ix_enriched_leads_total_score", table_name="enriched_leads", schema="crm")
    op.drop_index("ix_enriched_leads_source_key", table_name="enriched_leads", schema="crm")
    # Drop in reverse dependency order
    op.drop_table("bulk_enrichment_logs", schema="obs")
    op.drop_table("bulk_enrichment_jobs", schema="obs")
    op.drop_table("enriched_leads", schema="crm")

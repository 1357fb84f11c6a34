"""Flatten leads into CSV rows for download."""
import csv
import io
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from schemas.lead import Lead, LeadFilter

logger = logging.getLogger(__name__)

FIELD_GROUPS = (
    "basic", "contact", "decision_makers", "scoring", "ai_analysis", "status", "tracking",
)
MAX_EXPORTED_DECISION_MAKERS = 3


def export_row(lead: Lead, groups: Sequence[str] = ("all",)) -> Dict[str, object]:
    """Return the CSV columns for one lead, limited to the requested field groups."""
    include_all = "all" in groups
    row: Dict[str, object] = {}

    def wanted(group: str) -> bool:
        return include_all or group in groups

    if wanted("basic"):
        row.update({
            "business_name": lead.business_name,
            "address": lead.address,
            "city": lead.city,
            "state": lead.state,
            "phone": lead.phone,
            "website": lead.website,
            "business_type": lead.business_type,
        })
    if wanted("contact"):
        row.update({
            "owner_name": lead.owner_name,
            "owner_title": lead.owner_title,
            "owner_email": lead.owner_email,
            "owner_email_verified": lead.owner_email_verified,
            "owner_phone": lead.owner_phone,
        })
    if wanted("decision_makers"):
        for idx, dm in enumerate(lead.decision_makers[:MAX_EXPORTED_DECISION_MAKERS], start=1):
            row[f"decision_maker_{idx}_name"] = dm.name
            row[f"decision_maker_{idx}_title"] = dm.title
            row[f"decision_maker_{idx}_email"] = dm.email
    if wanted("scoring"):
        row.update(lead.scores.as_patch())
    if wanted("ai_analysis"):
        row["pain_points"] = lead.pain_points
    if wanted("status"):
        row["enrichment_status"] = lead.enrichment_status
        row["tags"] = "; ".join(lead.tags)
    if wanted("tracking"):
        row.update({
            "contact_attempts": lead.contact_attempts,
            "emails_sent": lead.emails_sent,
            "emails_opened": lead.emails_opened,
            "sms_sent": lead.sms_sent,
        })
    return row


def rows_to_csv(rows: List[Dict[str, object]]) -> str:
    """Serialize rows with a header built from the union of their columns."""
    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, quoting=csv.QUOTE_ALL, restval="")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "" if v is None else v for k, v in row.items()})
    return buffer.getvalue()


def export_filename(lead_filter: Optional[LeadFilter] = None, today: Optional[date] = None) -> str:
    lead_filter = lead_filter or LeadFilter()
    parts = [
        f"score{lead_filter.min_score}+" if lead_filter.min_score else None,
        lead_filter.business_type,
        lead_filter.enrichment_status,
    ]
    suffix = "_".join(p for p in parts if p)
    stamp = (today or date.today()).isoformat()
    return f"leads_{stamp}{'_' + suffix if suffix else ''}.csv"


async def export_leads_csv(
    store,
    lead_filter: Optional[LeadFilter] = None,
    groups: Sequence[str] = ("all",),
) -> str:
    """Fetch leads (highest total score first) and render them as CSV text."""
    lead_filter = (lead_filter or LeadFilter()).model_copy(update={"order_by_score": True})
    leads = await store.fetch_leads(lead_filter)
    csv_text = rows_to_csv([export_row(lead, groups) for lead in leads])
    logger.info("Lead export completed: %d leads, groups=%s", len(leads), ",".join(groups))
    return csv_text

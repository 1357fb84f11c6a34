"""Client for the external per-lead enrichment service.

The enrichment pipeline (website scraping, email discovery, third-party data
APIs) runs as a separate HTTP service; this module only calls it.

  ENRICHMENT_API_URL            endpoint accepting POST {"leadId", "force"}
  ENRICHMENT_API_TOKEN          bearer token
  ENRICHMENT_TIMEOUT_SECONDS    request timeout (default 120)
"""
import asyncio
import os
from typing import Any, Dict

import requests
from pydantic import ValidationError

from schemas.job import EnrichmentOutcome
from schemas.lead import Lead


def _endpoint() -> str:
    return os.environ["ENRICHMENT_API_URL"]


def _api_token() -> str:
    return os.environ.get("ENRICHMENT_API_TOKEN", "")


def _timeout() -> float:
    return float(os.environ.get("ENRICHMENT_TIMEOUT_SECONDS", "120"))


def enrich_lead_via_api(lead_id: str, force: bool = False) -> Dict[str, Any]:
    """Ask the enrichment service to enrich one lead.

    Args:
        lead_id: ID of the lead to enrich.
        force: Re-enrich even if the lead is already enriched.

    Returns:
        Dict with 'success', 'lead' (snapshot or None), and 'error' on failure.
    """
    try:
        headers = {"Content-Type": "application/json"}
        token = _api_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        resp = requests.post(
            _endpoint(),
            json={"leadId": lead_id, "force": force},
            headers=headers,
            timeout=_timeout(),
        )
        data = resp.json() if resp.content else {}
        if resp.status_code >= 400 or not data.get("success"):
            return {
                "success": False,
                "lead": None,
                "error": data.get("error") or f"HTTP {resp.status_code}",
                "details": data,
            }
        return {"success": True, "lead": data.get("lead"), "error": None}
    except Exception as exc:
        return {"success": False, "lead": None, "error": str(exc)}


async def http_enricher(lead_id: str) -> EnrichmentOutcome:
    """Async enrichment operation for BulkEnrichmentOrchestrator."""
    result = await asyncio.to_thread(enrich_lead_via_api, lead_id)
    lead = None
    if result["success"] and isinstance(result.get("lead"), dict):
        try:
            lead = Lead.model_validate(result["lead"])
        except ValidationError:
            lead = None
    return EnrichmentOutcome(
        success=result["success"],
        lead=lead,
        error=result.get("error"),
        details=result.get("details"),
    )

from .enrichment_tools import enrich_lead_via_api, http_enricher

__all__ = ["enrich_lead_via_api", "http_enricher"]

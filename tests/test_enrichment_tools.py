"""Unit tests for the enrichment service client."""
from unittest.mock import MagicMock, patch

import pytest

ENRICH_MODULE = "tools.enrichment_tools"


def _response(status_code, payload):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = b"{}"
    resp.json.return_value = payload
    return resp


class TestEnrichLeadViaApi:
    @patch(f"{ENRICH_MODULE}.requests.post")
    @patch(f"{ENRICH_MODULE}._api_token", return_value="test-token")
    @patch(f"{ENRICH_MODULE}._endpoint", return_value="http://enrich.test/api")
    def test_enriches_successfully(self, mock_endpoint, mock_token, mock_post):
        mock_post.return_value = _response(200, {
            "success": True,
            "lead": {"id": "lead-1", "business_name": "Acme", "total_score": 81},
        })

        from tools.enrichment_tools import enrich_lead_via_api
        result = enrich_lead_via_api("lead-1")

        assert result["success"] is True
        assert result["lead"]["total_score"] == 81
        assert result["error"] is None
        call_kwargs = mock_post.call_args
        assert call_kwargs.args[0] == "http://enrich.test/api"
        assert call_kwargs.kwargs["json"] == {"leadId": "lead-1", "force": False}
        assert call_kwargs.kwargs["headers"]["Authorization"] == "Bearer test-token"

    @patch(f"{ENRICH_MODULE}.requests.post")
    @patch(f"{ENRICH_MODULE}._api_token", return_value="")
    @patch(f"{ENRICH_MODULE}._endpoint", return_value="http://enrich.test/api")
    def test_no_auth_header_without_token(self, mock_endpoint, mock_token, mock_post):
        mock_post.return_value = _response(200, {"success": True, "lead": None})

        from tools.enrichment_tools import enrich_lead_via_api
        enrich_lead_via_api("lead-1", force=True)

        assert "Authorization" not in mock_post.call_args.kwargs["headers"]
        assert mock_post.call_args.kwargs["json"]["force"] is True

    @patch(f"{ENRICH_MODULE}.requests.post")
    @patch(f"{ENRICH_MODULE}._endpoint", return_value="http://enrich.test/api")
    def test_service_error_reported(self, mock_endpoint, mock_post):
        mock_post.return_value = _response(500, {"success": False, "error": "Scraper crashed"})

        from tools.enrichment_tools import enrich_lead_via_api
        result = enrich_lead_via_api("lead-1")

        assert result["success"] is False
        assert result["lead"] is None
        assert result["error"] == "Scraper crashed"

    @patch(f"{ENRICH_MODULE}.requests.post")
    @patch(f"{ENRICH_MODULE}._endpoint", return_value="http://enrich.test/api")
    def test_status_code_used_when_no_error_message(self, mock_endpoint, mock_post):
        mock_post.return_value = _response(404, {})

        from tools.enrichment_tools import enrich_lead_via_api
        result = enrich_lead_via_api("lead-1")

        assert result["error"] == "HTTP 404"

    @patch(f"{ENRICH_MODULE}.requests.post")
    @patch(f"{ENRICH_MODULE}._endpoint", return_value="http://enrich.test/api")
    def test_handles_error_gracefully(self, mock_endpoint, mock_post):
        mock_post.side_effect = RuntimeError("network error")

        from tools.enrichment_tools import enrich_lead_via_api
        result = enrich_lead_via_api("lead-1")

        assert result["success"] is False
        assert result["error"] == "network error"


class TestHttpEnricher:
    @pytest.mark.asyncio
    @patch(f"{ENRICH_MODULE}.enrich_lead_via_api")
    async def test_wraps_snapshot_in_outcome(self, mock_enrich):
        mock_enrich.return_value = {
            "success": True,
            "lead": {"id": "lead-1", "business_name": "Acme", "total_score": 64},
            "error": None,
        }

        from tools.enrichment_tools import http_enricher
        outcome = await http_enricher("lead-1")

        assert outcome.success is True
        assert outcome.lead.total_score == 64
        mock_enrich.assert_called_once_with("lead-1")

    @pytest.mark.asyncio
    @patch(f"{ENRICH_MODULE}.enrich_lead_via_api")
    async def test_unusable_snapshot_still_counts_as_success(self, mock_enrich):
        mock_enrich.return_value = {"success": True, "lead": {"id": "lead-1"}, "error": None}

        from tools.enrichment_tools import http_enricher
        outcome = await http_enricher("lead-1")

        assert outcome.success is True
        assert outcome.lead is None

    @pytest.mark.asyncio
    @patch(f"{ENRICH_MODULE}.enrich_lead_via_api")
    async def test_failure_carries_error_and_details(self, mock_enrich):
        mock_enrich.return_value = {
            "success": False,
            "lead": None,
            "error": "Rate limited",
            "details": {"retry_after": 30},
        }

        from tools.enrichment_tools import http_enricher
        outcome = await http_enricher("lead-1")

        assert outcome.success is False
        assert outcome.error == "Rate limited"
        assert outcome.details == {"retry_after": 30}

"""Unit tests for CSV lead export."""
import csv
import io
from datetime import date

import pytest

from pipeline.export import export_filename, export_leads_csv, export_row, rows_to_csv
from schemas.lead import DecisionMaker, LeadFilter


class TestExportRow:
    def test_basic_group_only(self, make_lead):
        row = export_row(make_lead(business_name="Acme", owner_name="Jane"), ["basic"])
        assert list(row) == [
            "business_name", "address", "city", "state", "phone", "website", "business_type",
        ]
        assert row["business_name"] == "Acme"

    def test_decision_makers_capped_at_three(self, make_lead):
        lead = make_lead(decision_makers=[DecisionMaker(name=f"DM {i}") for i in range(5)])
        row = export_row(lead, ["decision_makers"])
        assert row["decision_maker_3_name"] == "DM 2"
        assert "decision_maker_4_name" not in row

    def test_status_and_scoring(self, make_lead):
        lead = make_lead(tags=["hot", "hvac"], total_score=77, enrichment_status="enriched")
        row = export_row(lead, ["status", "scoring"])
        assert row["tags"] == "hot; hvac"
        assert row["enrichment_status"] == "enriched"
        assert row["total_score"] == 77

    def test_all_groups(self, make_lead):
        row = export_row(make_lead(pain_points="slow replies"))
        assert row["pain_points"] == "slow replies"
        assert row["sms_sent"] == 0
        assert "owner_email_verified" in row


class TestRowsToCsv:
    def test_header_is_union_and_none_is_blank(self):
        text = rows_to_csv([{"a": 1, "b": None}, {"a": 2, "c": "x"}])
        lines = text.splitlines()
        assert lines[0] == '"a","b","c"'
        assert lines[1] == '"1","",""'
        assert lines[2] == '"2","","x"'

    def test_empty(self):
        assert rows_to_csv([]).strip() == ""


class TestExportFilename:
    def test_unfiltered(self):
        assert export_filename(today=date(2024, 5, 1)) == "leads_2024-05-01.csv"

    def test_filters_in_name(self):
        lead_filter = LeadFilter(min_score=70, business_type="HVAC", enrichment_status="enriched")
        assert export_filename(lead_filter, date(2024, 5, 1)) == "leads_2024-05-01_score70+_HVAC_enriched.csv"


class TestExportLeadsCsv:
    @pytest.mark.asyncio
    async def test_highest_score_first_and_filtered(self, store):
        store.add(business_name="Low", total_score=20, business_type="HVAC")
        store.add(business_name="High", total_score=90, business_type="HVAC")
        store.add(business_name="Mid", total_score=55, business_type="HVAC")
        store.add(business_name="Other", total_score=99, business_type="Roofing")

        text = await export_leads_csv(store, LeadFilter(business_type="HVAC", min_score=50), ["basic"])

        rows = list(csv.DictReader(io.StringIO(text)))
        assert [row["business_name"] for row in rows] == ["High", "Mid"]

"""Unit tests for CSV lead import."""
import pytest

from pipeline.csv_import import (
    detect_format,
    import_csv,
    is_valid_email,
    make_source_key,
    map_record,
    normalize_phone,
    normalize_website,
    parse_csv,
)
from pipeline.errors import InputValidationError


class TestDetectFormat:
    def test_matches_synonyms_case_insensitively(self):
        mapping = detect_format(["Company", " Phone ", "Owner Email", "Website URL", "ST"])
        assert mapping == {
            "business_name": "Company",
            "phone": " Phone ",
            "owner_email": "Owner Email",
            "state": "ST",
        }

    def test_first_matching_header_wins(self):
        mapping = detect_format(["name", "business_name"])
        assert mapping["business_name"] == "name"

    def test_unknown_headers_are_ignored(self):
        assert detect_format(["foo", "bar"]) == {}


class TestNormalization:
    @pytest.mark.parametrize("raw, expected", [
        ("555-123-4567", "(555) 123-4567"),
        ("1 (555) 123-4567", "(555) 123-4567"),
        ("+1 555.123.4567", "(555) 123-4567"),
        (" 555-1234 ", "555-1234"),
    ])
    def test_phone(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("WWW.Acme.com ", "https://www.acme.com"),
        ("http://acme.com", "http://acme.com"),
        ("https://Acme.com/Contact", "https://acme.com/contact"),
    ])
    def test_website(self, raw, expected):
        assert normalize_website(raw) == expected

    def test_email_validation(self):
        assert is_valid_email("owner@acme.com")
        assert not is_valid_email("bad-email")
        assert not is_valid_email("owner@acme")

    def test_source_key_uses_first_available_contact_field(self):
        by_address = make_source_key("Acme", address="1 Main St", phone="555")
        assert by_address == make_source_key("Acme", address="1 Main St")
        assert by_address != make_source_key("Acme", phone="555")
        assert by_address.startswith("csv_")
        assert len(by_address) == len("csv_") + 20

    def test_map_record(self):
        mapping = {"business_name": "Company", "owner_email": "Email", "state": "State"}
        draft = map_record(
            {"Company": " Acme ", "Email": "OWNER@ACME.COM", "State": "tx"}, mapping, "Roofing"
        )
        assert draft.business_name == "Acme"
        assert draft.owner_email == "owner@acme.com"
        assert draft.state == "TX"
        assert draft.business_type == "Roofing"
        assert draft.enrichment_status == "pending"
        assert draft.enrichment_sources == ["csv_import"]
        assert draft.source_key == make_source_key("Acme")


class TestParseCsv:
    def test_empty_input(self):
        with pytest.raises(InputValidationError, match="empty"):
            parse_csv("   \n")

    def test_header_only(self):
        with pytest.raises(InputValidationError, match="no data rows"):
            parse_csv("business_name,phone\n")

    def test_byte_order_mark_is_stripped(self):
        headers, rows = parse_csv(b"\xef\xbb\xbfbusiness_name\nAcme\n")
        assert headers == ["business_name"]
        assert rows == [{"business_name": "Acme"}]

    def test_malformed_quoting(self):
        with pytest.raises(InputValidationError, match="Invalid CSV format"):
            parse_csv('business_name\n"Acme\n')


class TestImportCsv:
    @pytest.mark.asyncio
    async def test_imports_rows_and_reports_missing_names(self, store):
        data = (
            "Company,Phone,Owner Email\n"
            "Acme HVAC,555-123-4567,JOHN@ACME.COM\n"
            ",555-000-0000,x@y.com\n"
            "Beta Roofing,1 (555) 987-6543,bad-email\n"
        )

        result = await import_csv(store, data)

        assert (result.total, result.imported, result.skipped, result.errors) == (3, 2, 0, 1)
        assert result.error_details == ["Row 3: Missing business name"]
        assert result.message == "Imported 2 leads, skipped 0 duplicates, 1 errors."

        leads = {lead.business_name: lead for lead in await store.fetch_leads()}
        assert leads["Acme HVAC"].phone == "(555) 123-4567"
        assert leads["Acme HVAC"].owner_email == "john@acme.com"
        assert leads["Beta Roofing"].phone == "(555) 987-6543"
        assert leads["Beta Roofing"].owner_email is None
        assert all(lead.business_type == "HVAC" for lead in leads.values())
        assert all(lead.enrichment_sources == ["csv_import"] for lead in leads.values())

    @pytest.mark.asyncio
    async def test_skip_duplicates(self, store):
        store.add(business_name="Acme HVAC Services")
        data = "business_name,phone\nAcme HVAC,5551234567\nNew Co,5559999999\n"

        result = await import_csv(store, data, skip_duplicates=True)

        assert (result.imported, result.duplicates, result.skipped) == (1, 1, 1)
        assert len(store.leads) == 2

    @pytest.mark.asyncio
    async def test_duplicates_imported_when_not_skipping(self, store):
        store.add(business_name="Acme HVAC Services")
        result = await import_csv(store, "business_name\nAcme HVAC\n")
        assert result.imported == 1
        assert result.duplicates == 0

    @pytest.mark.asyncio
    async def test_error_details_are_capped(self, store):
        data = "business_name,phone\n" + ",5551234567\n" * 600

        result = await import_csv(store, data)

        assert result.errors == 600
        assert len(result.error_details) == 501
        assert result.error_details[0] == "Row 2: Missing business name"
        assert result.error_details[-1] == "... 100 more errors not shown"

    @pytest.mark.asyncio
    async def test_missing_name_column_rejected(self, store):
        with pytest.raises(InputValidationError, match="business name"):
            await import_csv(store, "Phone,Email\n555,a@b.com\n")
        assert store.leads == {}

    @pytest.mark.asyncio
    async def test_row_failure_does_not_stop_the_batch(self, store, monkeypatch):
        original_insert = store.insert_lead

        async def flaky_insert(draft):
            if draft.business_name == "Broken":
                raise RuntimeError("constraint violated")
            return await original_insert(draft)

        monkeypatch.setattr(store, "insert_lead", flaky_insert)

        result = await import_csv(store, "business_name\nGood\nBroken\nAlso Good\n")

        assert result.imported == 2
        assert result.errors == 1
        assert result.error_details == ["Row 3: constraint violated"]

"""Bulk CSV lead import with heuristic column detection.

Header names are matched case-insensitively against a synonym table per
canonical field. Rows are normalized (phone, website, email, state) and
inserted as pending leads sourced from "csv_import".
"""
import csv
import hashlib
import io
import logging
import re
from typing import Dict, Iterable, Mapping, Optional, Union

from pipeline.config import IMPORT_ERROR_DETAIL_CAP
from pipeline.errors import InputValidationError
from schemas.lead import ImportResult, LeadDraft

logger = logging.getLogger(__name__)

FIELD_SYNONYMS: Dict[str, tuple] = {
    "business_name": (
        "business_name", "company", "name", "business", "company_name",
        "business name", "company name",
    ),
    "address": (
        "address", "street_address", "location", "street address",
        "full_address", "address1",
    ),
    "phone": (
        "phone", "phone_number", "telephone", "tel", "phone number",
        "contact_phone", "business_phone",
    ),
    "website": (
        "website", "url", "web", "site", "domain", "website_url", "web_address",
    ),
    "owner_name": (
        "owner", "owner_name", "contact_name", "primary_contact", "manager",
        "owner name", "contact name",
    ),
    "owner_email": (
        "email", "owner_email", "contact_email", "primary_email",
        "email_address", "owner email", "contact email",
    ),
    "city": ("city", "town", "locality"),
    "state": ("state", "province", "region", "st"),
}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NON_DIGITS = re.compile(r"\D")


def detect_format(headers: Iterable[str]) -> Dict[str, str]:
    """Map canonical field names to the file's header names.

    Fields with no matching header are left out of the mapping.
    """
    headers = [h for h in headers if h is not None]
    mapping: Dict[str, str] = {}
    for field, synonyms in FIELD_SYNONYMS.items():
        for header in headers:
            if header.strip().lower() in synonyms:
                mapping[field] = header
                break
    return mapping


def normalize_phone(phone: str) -> str:
    """Format 10-digit (or 1 + 10-digit) numbers as (XXX) XXX-XXXX; leave others as-is."""
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return phone.strip()


def normalize_website(website: str) -> str:
    url = website.strip().lower()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def make_source_key(
    business_name: str,
    address: Optional[str] = None,
    phone: Optional[str] = None,
    website: Optional[str] = None,
) -> str:
    """Synthetic uniqueness hint from the name and the first available contact field."""
    basis = business_name + (address or phone or website or "")
    return "csv_" + hashlib.sha1(basis.encode("utf-8")).hexdigest()[:20]


def _cell(row: Mapping, mapping: Mapping[str, str], field: str) -> Optional[str]:
    header = mapping.get(field)
    if header is None:
        return None
    value = row.get(header)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def map_record(row: Mapping, mapping: Mapping[str, str], business_type: str) -> LeadDraft:
    """Apply a column mapping to one row and normalize the values."""
    name = _cell(row, mapping, "business_name")
    phone = _cell(row, mapping, "phone")
    website = _cell(row, mapping, "website")
    email = _cell(row, mapping, "owner_email")
    state = _cell(row, mapping, "state")

    if phone:
        phone = normalize_phone(phone)
    if website:
        website = normalize_website(website)
    if email:
        email = email.lower()
        if not is_valid_email(email):
            email = None

    draft = LeadDraft(
        business_name=name,
        business_type=business_type,
        address=_cell(row, mapping, "address"),
        city=_cell(row, mapping, "city"),
        state=state.upper() if state else None,
        phone=phone,
        website=website,
        owner_name=_cell(row, mapping, "owner_name"),
        owner_email=email,
        enrichment_status="pending",
        enrichment_sources=["csv_import"],
    )
    if name:
        draft.source_key = make_source_key(name, draft.address, draft.phone, draft.website)
    return draft


def _decode(data: Union[bytes, str]) -> str:
    if isinstance(data, bytes):
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise InputValidationError(f"CSV file is not valid UTF-8: {exc}") from exc
    return data.lstrip("\ufeff")


def parse_csv(data: Union[bytes, str]) -> tuple[list, list]:
    """Return (headers, rows) from raw CSV input, raising on unusable input."""
    text = _decode(data)
    if not text.strip():
        raise InputValidationError("CSV file is empty")
    try:
        reader = csv.DictReader(io.StringIO(text), strict=True)
        rows = list(reader)
        headers = list(reader.fieldnames or [])
    except csv.Error as exc:
        raise InputValidationError(f"Invalid CSV format: {exc}") from exc
    if not rows:
        raise InputValidationError("CSV contains no data rows")
    return headers, rows


class _ErrorLog:
    """Bounded list of per-row error messages."""

    def __init__(self, result: ImportResult, cap: int = IMPORT_ERROR_DETAIL_CAP):
        self.result = result
        self.cap = cap
        self.dropped = 0

    def add(self, message: str) -> None:
        self.result.errors += 1
        if len(self.result.error_details) < self.cap:
            self.result.error_details.append(message)
        else:
            self.dropped += 1

    def close(self) -> None:
        if self.dropped:
            self.result.error_details.append(
                f"... {self.dropped} more errors not shown"
            )


async def import_csv(
    store,
    data: Union[bytes, str],
    business_type: str = "HVAC",
    skip_duplicates: bool = False,
) -> ImportResult:
    """Import leads from raw CSV input and return aggregate counts."""
    headers, rows = parse_csv(data)
    mapping = detect_format(headers)
    if "business_name" not in mapping:
        raise InputValidationError(
            "Could not detect business name field. Ensure CSV has columns like: "
            "business_name, company, name, or business."
        )

    logger.info(
        "CSV import started: %d rows, business_type=%s, skip_duplicates=%s, mapping=%s",
        len(rows), business_type, skip_duplicates, mapping,
    )

    result = ImportResult(total=len(rows))
    errors = _ErrorLog(result)

    for index, row in enumerate(rows):
        line = index + 2
        draft = map_record(row, mapping, business_type)
        if not draft.business_name:
            errors.add(f"Row {line}: Missing business name")
            continue

        try:
            if skip_duplicates:
                existing = await store.find_matching_lead(
                    draft.business_name, draft.phone, draft.owner_email
                )
                if existing:
                    result.duplicates += 1
                    result.skipped += 1
                    continue

            await store.insert_lead(draft)
            result.imported += 1
        except Exception as exc:
            logger.warning("CSV import row %d failed: %s", line, exc)
            errors.add(f"Row {line}: {exc}")

    errors.close()
    logger.info(
        "CSV import completed: total=%d imported=%d skipped=%d errors=%d",
        result.total, result.imported, result.skipped, result.errors,
    )
    return result

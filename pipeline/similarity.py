"""Pairwise lead similarity.

Pure functions, no I/O. A lead is anything exposing business_name, phone,
owner_email, address and website attributes (Lead or MatchCandidate).

Signals that are missing on either side are omitted from the sum rather
than renormalized, so sparse records are compared against the full 0-100
scale.
"""
import math
import re
from typing import Optional
from urllib.parse import urlparse

from pipeline.config import SimilarityWeights

_NON_DIGITS = re.compile(r"\D")
_DEFAULT_WEIGHTS = SimilarityWeights()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _present(value: Optional[str]) -> bool:
    return value is not None and bool(str(value).strip())


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance with unit insert/delete/substitute costs."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                current[j - 1] + 1,
                previous[j] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[len(b)]


def string_similarity(a: Optional[str], b: Optional[str]) -> int:
    """Return 0-100 similarity from normalized edit distance."""
    s1 = (a or "").lower().strip()
    s2 = (b or "").lower().strip()
    if s1 == s2:
        return 100
    if not s1 or not s2:
        return 0
    distance = levenshtein(s1, s2)
    max_len = max(len(s1), len(s2))
    return round_half_up((max_len - distance) / max_len * 100)


def normalize_phone_digits(phone: Optional[str]) -> str:
    return _NON_DIGITS.sub("", phone or "")


def extract_domain(url: Optional[str]) -> str:
    """Hostname of a URL with any www. prefix removed. Tolerates missing schemes."""
    raw = (url or "").strip().lower()
    if not raw:
        return ""
    if "://" not in raw:
        raw = f"http://{raw}"
    try:
        host = urlparse(raw).hostname or ""
    except ValueError:
        host = raw.split("://", 1)[1].split("/", 1)[0]
    return host.removeprefix("www.")


def similarity(lead_a, lead_b, weights: SimilarityWeights = _DEFAULT_WEIGHTS) -> float:
    """Weighted similarity between two leads, clamped to [0, 100]."""
    score = 0.0

    if _present(lead_a.business_name) and _present(lead_b.business_name):
        score += string_similarity(lead_a.business_name, lead_b.business_name) * weights.business_name

    if _present(lead_a.phone) and _present(lead_b.phone):
        phone_a = normalize_phone_digits(lead_a.phone)
        if phone_a and phone_a == normalize_phone_digits(lead_b.phone):
            score += 100 * weights.phone

    if _present(lead_a.owner_email) and _present(lead_b.owner_email):
        if lead_a.owner_email.strip().lower() == lead_b.owner_email.strip().lower():
            score += 100 * weights.owner_email

    if _present(lead_a.address) and _present(lead_b.address):
        score += string_similarity(lead_a.address, lead_b.address) * weights.address

    if _present(lead_a.website) and _present(lead_b.website):
        domain_a = extract_domain(lead_a.website)
        if domain_a and domain_a == extract_domain(lead_b.website):
            score += 100 * weights.website

    return max(0.0, min(100.0, score))

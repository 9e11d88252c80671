"""
Field normalization helpers for captured lead documents.

Widget answers arrive as free-form JSON whose keys have changed spelling
over time (``contact-name`` vs ``fullName``, ``fromZip`` vs
``origin-zip``...). These helpers look values up across those spellings
and normalize them into the shapes the lead-intake APIs accept. Both
forwarding adapters share them.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)


ZIP_PATTERN = re.compile(r"\b(\d{5})(-\d{4})?\b")

DEFAULT_LAST_NAME = "Customer"


# =============================================================================
# Lookups
# =============================================================================

def is_blank(value: Any) -> bool:
    """True for None and the empty string (0 and False are real values)."""
    return value is None or value == ""


def first_present(document: Any, keys: Iterable[str]) -> Any:
    """
    Return the value of the first key that is present and not blank.

    Args:
        document: Captured answers (anything that is not a dict yields None)
        keys: Ordered candidate key spellings

    Returns:
        The first non-blank value, or None
    """
    if not isinstance(document, dict):
        return None
    for key in keys:
        value = document.get(key)
        if not is_blank(value):
            return value
    return None


def extract_form_data(form_data: Any) -> Dict[str, Any]:
    """Return the nested ``data`` answers of a submission, or the submission itself."""
    if isinstance(form_data, dict):
        nested = form_data.get("data")
        if isinstance(nested, dict):
            return nested
        return form_data
    return {}


# =============================================================================
# Zip Codes
# =============================================================================

def extract_zip(text: Any) -> Optional[str]:
    """Extract the 5-digit ZIP from free text (``30301-1234`` -> ``30301``)."""
    if not text or not isinstance(text, str):
        return None
    match = ZIP_PATTERN.search(text)
    return match.group(1) if match else None


def extract_zip_from_keys(document: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    """
    Find a ZIP under any of ``keys``.

    String values are searched directly; list values are searched
    element by element (string elements only).
    """
    for key in keys:
        value = first_present(document, [key])
        if isinstance(value, str):
            zip_code = extract_zip(value)
            if zip_code:
                return zip_code
        if isinstance(value, list):
            for item in value:
                zip_code = extract_zip(item) if isinstance(item, str) else None
                if zip_code:
                    return zip_code
    return None


def search_zip_by_keywords(document: Dict[str, Any], keywords: Iterable[str]) -> Optional[str]:
    """Return the first ZIP found in a string value whose key contains a keyword."""
    needles = [needle.lower() for needle in keywords]
    for key, value in document.items():
        if not isinstance(value, str):
            continue
        key_lower = str(key).lower()
        if any(needle in key_lower for needle in needles):
            zip_code = extract_zip(value)
            if zip_code:
                return zip_code
    return None


def collect_all_zips(document: Any) -> List[str]:
    """Walk nested lists/dicts and collect unique ZIPs in first-seen order."""
    found: List[str] = []

    def walk(value: Any) -> None:
        if isinstance(value, dict):
            for item in value.values():
                walk(item)
        elif isinstance(value, (list, tuple)):
            for item in value:
                walk(item)
        elif isinstance(value, str):
            zip_code = extract_zip(value)
            if zip_code and zip_code not in found:
                found.append(zip_code)

    walk(document)
    return found


# =============================================================================
# Dates, Phones, Names
# =============================================================================

def normalize_date(value: Any, output_format: str) -> Optional[str]:
    """
    Best-effort parse of a free-form date string.

    Missing components default to today (``"March 5"`` lands in the
    current year).

    Args:
        value: Raw date answer
        output_format: strftime format, e.g. ``%m/%d/%Y``

    Returns:
        Formatted date, or None when the value is not a parseable string
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        logger.debug("Unparseable date value %r", value)
        return None
    return parsed.strftime(output_format)


def normalize_phone(value: Any) -> Any:
    """
    Reduce a phone number to its last 10 digits.

    Values with fewer than 10 digits are returned unchanged.
    """
    if is_blank(value):
        return value
    digits = re.sub(r"\D+", "", str(value))
    if len(digits) >= 10:
        return digits[-10:]
    return value


def split_name(full_name: Any) -> Tuple[str, str]:
    """
    Split a full name into (first, last).

    ``"  Jane   Q Public "`` -> ``("Jane", "Q Public")``;
    a single token gets the last name ``"Customer"``.
    """
    raw = "" if full_name is None else str(full_name)
    parts = [part for part in raw.strip().split() if part]
    first_name = parts[0] if parts else raw
    last_name = " ".join(parts[1:]) if len(parts) > 1 else DEFAULT_LAST_NAME
    return first_name, last_name


# =============================================================================
# Numeric Coercion
# =============================================================================

def coerce_float(value: Any, default: float = 0.0) -> float:
    """Coerce to float; absent values give ``default``, junk, NaN and infinities give 0.0."""
    if value is None:
        return float(default)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def coerce_int(value: Any, default: int = 0) -> int:
    """Coerce to int (``"2.7"`` -> 2); absent values give ``default``, junk gives 0."""
    if value is None:
        return int(default)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        pass
    return int(coerce_float(value))


def coerce_bool(value: Any, default: bool = False) -> bool:
    """Coerce settings flags; only the strings ``""`` and ``"0"`` count as False."""
    if value is None:
        return default
    if isinstance(value, str):
        return value not in ("", "0")
    return bool(value)

"""
Field extractors - one pure function per field.

Each extractor takes free text (a table cell, a card line, an API value)
and returns the parsed value or None. Nothing here does I/O or raises on
bad input, so every heuristic can be tested and replaced on its own as the
portal's formatting drifts.

These are best-effort: the portal publishes no schema.
"""
import re
from datetime import date
from typing import Optional, Tuple

from dateutil import parser as date_parser

from constants import canonical_city
from .records import ProjectStatus, ProjectType

# PR/GJ/<DISTRICT>/<LOCALITY>/.../<CODE><SEQ>/<DDMMYY>/<DDMMYY>
# Multi-word segments are allowed only when another segment follows.
_SEGMENT = r"[A-Za-z0-9][\w.\-]*"
REGISTRATION_ID_PATTERN = re.compile(
    rf"PR/GJ(?:/(?:{_SEGMENT}(?: {_SEGMENT})+(?=/)|{_SEGMENT})){{2,}}"
)

_DATE_DMY = re.compile(r"\b(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})\b")
_DATE_YMD = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
_PINCODE = re.compile(r"(?<!\d)(3[6-9]\d{4})(?!\d)")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_INTEGER_CELL = re.compile(r"\s*\d[\d,]*\s*(?:units?|nos?\.?|flats?)?\s*", re.IGNORECASE)
_CURRENCY_MARK = re.compile(r"(₹|\brs\.?|\binr\b)", re.IGNORECASE)
_UNIT_MULTIPLIERS = [
    (re.compile(r"(?<![A-Za-z])(crores?|cr)\b\.?", re.IGNORECASE), 10_000_000),
    (re.compile(r"(?<![A-Za-z])(lakhs?|lacs?|l)\b\.?", re.IGNORECASE), 100_000),
]

# Priority-ordered keyword tables: first match wins
PROJECT_TYPE_KEYWORDS = [
    (ProjectType.PLOTTED, ("plot",)),
    (ProjectType.TOWNSHIP, ("township",)),
    (ProjectType.MIXED, ("mixed", "residential + commercial", "residential & commercial", "residential cum commercial")),
    (ProjectType.RESIDENTIAL, ("residential", "housing", "apartment", "flat", "villa", "bungalow", "tenement", "row house")),
    (ProjectType.COMMERCIAL, ("commercial", "office", "shop", "retail", "business", "showroom")),
]

STATUS_KEYWORDS = [
    (ProjectStatus.STALLED, ("stalled", "abandon", "stopped", "revoked")),
    (ProjectStatus.DELAYED, ("delay", "lapsed", "overdue", "extension")),
    (ProjectStatus.COMPLETED, ("complet", "ready to move", "possession", "occupancy")),
    (ProjectStatus.ONGOING, ("under construction", "ongoing", "in progress", "registered", "under review", "approved")),
    (ProjectStatus.NEW, ("new", "launch", "upcoming")),
]


def clean_text(text) -> str:
    """Collapse whitespace; None becomes ''."""
    if text is None:
        return ""
    return " ".join(str(text).split())


def extract_registration_id(text) -> Optional[str]:
    """Find the first RERA registration id (PR/GJ/...) in text."""
    if not text:
        return None
    match = REGISTRATION_ID_PATTERN.search(clean_text(text))
    return match.group(0) if match else None


def extract_district_from_id(registration_id: str) -> Optional[str]:
    """District is the third slash-delimited segment (PR/GJ/<DISTRICT>/...)."""
    if not registration_id:
        return None
    parts = [p.strip() for p in str(registration_id).split("/")]
    if len(parts) < 3 or not parts[2]:
        return None
    return canonical_city(parts[2])


def placeholder_name(registration_id: str) -> str:
    """Name used when none could be extracted: 'Project <last id segment>'."""
    parts = [p for p in str(registration_id or "").split("/") if p.strip()]
    tail = parts[-1].strip() if parts else "Unknown"
    return f"Project {tail}"


def extract_date(text) -> Optional[str]:
    """
    Find a date and return it as DD-MM-YYYY.

    Accepts DD-MM-YYYY, DD/MM/YYYY, DD.MM.YYYY and ISO YYYY-MM-DD.
    """
    if not text:
        return None
    text = clean_text(text)
    match = _DATE_YMD.search(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
    else:
        match = _DATE_DMY.search(text)
        if not match:
            return None
        day, month, year = (int(g) for g in match.groups())
    if not (1 <= day <= 31 and 1 <= month <= 12):
        return None
    return f"{day:02d}-{month:02d}-{year:04d}"


def parse_date(text) -> Optional[date]:
    """Parse a source-local (day-first) date string. Unparsable -> None."""
    if isinstance(text, date):
        return text
    text = clean_text(text)
    if not text:
        return None
    try:
        return date_parser.parse(text, dayfirst=True, fuzzy=False).date()
    except (ValueError, OverflowError, TypeError):
        return None


def is_money(text) -> bool:
    """Text carries a currency mark or a lakh/crore unit next to a number."""
    text = clean_text(text)
    if not text or not _NUMBER.search(text):
        return False
    if _CURRENCY_MARK.search(text):
        return True
    return bool(re.search(r"\d\s*(crores?|cr|lakhs?|lacs?)\b", text, re.IGNORECASE))


def extract_money(text) -> Optional[float]:
    """
    Parse an INR amount.

    "₹ 45 Lakh" -> 4500000.0, "Rs. 1.2 Cr" -> 12000000.0,
    "45,00,000" -> 4500000.0
    """
    text = clean_text(text)
    if not text:
        return None
    multiplier = _unit_multiplier(text) or 1
    cleaned = _CURRENCY_MARK.sub("", text).replace(",", "")
    match = _NUMBER.search(cleaned)
    if not match:
        return None
    return round(float(match.group(0)) * multiplier, 2)


def _unit_multiplier(text: str) -> Optional[int]:
    for pattern, value in _UNIT_MULTIPLIERS:
        if pattern.search(text):
            return value
    return None


def extract_price_range(text) -> Tuple[Optional[float], Optional[float]]:
    """
    Split "₹45 L - ₹1.2 Cr" into (min, max). A single amount fills both.

    A unit written once ("45 - 60 Lakh") applies to both ends.
    """
    text = clean_text(text)
    if not text:
        return None, None
    parts = [p for p in re.split(r"\s*(?:-|–|\bto\b)\s*", text) if _NUMBER.search(p)]
    if not parts:
        return None, None
    shared_unit = None
    for part in parts:
        shared_unit = _unit_multiplier(part) or shared_unit
    values = []
    for part in parts:
        amount = extract_money(part)
        if amount is None:
            continue
        if shared_unit and _unit_multiplier(part) is None:
            amount = round(amount * shared_unit, 2)
        values.append(amount)
    if not values:
        return None, None
    return min(values), max(values)


def extract_pincode(text) -> Optional[str]:
    """Gujarat pincodes are six digits starting 36-39."""
    if not text:
        return None
    match = _PINCODE.search(clean_text(text))
    return match.group(1) if match else None


def is_integer_cell(text) -> bool:
    """Cell holds a bare count ("240", "1,200 units")."""
    text = clean_text(text)
    return bool(text) and bool(_INTEGER_CELL.fullmatch(text))


def extract_integer(text) -> Optional[int]:
    """First integer in text, ignoring thousands separators."""
    if text is None:
        return None
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return int(text)
    cleaned = re.sub(r"(?<=\d),(?=\d)", "", clean_text(text))
    match = _NUMBER.search(cleaned)
    if not match:
        return None
    return int(float(match.group(0)))


def extract_float(text) -> Optional[float]:
    """First decimal number in text."""
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return float(text)
    cleaned = re.sub(r"(?<=\d),(?=\d)", "", clean_text(text))
    match = _NUMBER.search(cleaned)
    return float(match.group(0)) if match else None


def _classify(text, table) -> Optional[str]:
    lowered = clean_text(text).lower()
    if not lowered:
        return None
    for value, keywords in table:
        if any(k in lowered for k in keywords):
            return value.value
    return None


def match_project_type(text) -> Optional[str]:
    """Keyword match only; None when nothing matched."""
    return _classify(text, PROJECT_TYPE_KEYWORDS)


def match_status(text) -> Optional[str]:
    """Keyword match only; None when nothing matched."""
    return _classify(text, STATUS_KEYWORDS)


def classify_project_type(text) -> str:
    """
    Classify free text into the closed project-type set.

    Empty -> Residential, unmatched -> Other.
    """
    if not clean_text(text):
        return ProjectType.RESIDENTIAL.value
    return match_project_type(text) or ProjectType.OTHER.value


def classify_status(text) -> str:
    """
    Classify free text into the closed status set.

    Empty -> Ongoing, unmatched -> Other.
    """
    if not clean_text(text):
        return ProjectStatus.ONGOING.value
    return match_status(text) or ProjectStatus.OTHER.value


def looks_like_name(text) -> bool:
    """Mostly alphabetic text that is not an id, date, amount or count."""
    text = clean_text(text)
    if len(text) < 2 or not re.search(r"[A-Za-z]", text):
        return False
    if extract_registration_id(text) or extract_date(text) or is_money(text) or is_integer_cell(text):
        return False
    letters = sum(1 for c in text if c.isalpha())
    return letters / len(text) >= 0.5

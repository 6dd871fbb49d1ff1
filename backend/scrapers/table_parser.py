"""
Listing page parser.

Turns a RERA listing page (HTML table or card grid) into raw records.
A row becomes a candidate record only if one of its cells carries a
registration id. Other columns are assigned by header keyword first, then
by content pattern (date, money, count, enum keyword, free text).

Best-effort by nature: mapping is heuristic, not authoritative.
"""
import logging
import re
from typing import Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .field_extractors import (
    clean_text,
    extract_date,
    extract_integer,
    extract_pincode,
    extract_price_range,
    extract_registration_id,
    is_integer_cell,
    is_money,
    looks_like_name,
    match_project_type,
    match_status,
)

logger = logging.getLogger(__name__)

TABLE_HEADER_KEYWORDS = ("project", "rera", "promoter", "registration")
CARD_CLASS_PATTERN = re.compile(r"card|project|listing", re.IGNORECASE)
NEXT_LINK_MARKERS = ("next", ">>", "»", "›", "→")
MIN_ROW_CELLS = 3
SERIAL_HEADER = re.compile(r"^(#|sr\b|sr\.|s\.\s?no|sl\.|sl\b|no\.?$)")


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def map_table_columns(headers: List[str]) -> Dict[str, int]:
    """
    Map table headers to record fields using keyword matching.
    Returns dict of field_name -> column_index.
    """
    col_map = {}

    for idx, header in enumerate(headers):
        h = header.lower().strip()

        if not h or SERIAL_HEADER.match(h):
            col_map.setdefault("serial", idx)
            continue

        # Dates before ids: "Registration Date" is a date column
        if "date" in h or "approv" in h or "completion" in h or "valid" in h:
            if "completion" in h or "end" in h or "valid" in h:
                col_map.setdefault("completion_date", idx)
            else:
                col_map.setdefault("approved_on", idx)
            continue

        if any(k in h for k in ["rera", "registration", "reg. no", "reg no", "certificate"]):
            col_map.setdefault("registration_id", idx)
        elif "type" in h or "category" in h:
            col_map.setdefault("project_type", idx)
        elif "project" in h and "area" not in h:
            col_map.setdefault("name", idx)
        elif any(k in h for k in ["promoter", "developer", "builder"]):
            col_map.setdefault("promoter_name", idx)
        elif "status" in h:
            col_map.setdefault("status", idx)
        elif any(k in h for k in ["district", "city"]):
            col_map.setdefault("district", idx)
        elif any(k in h for k in ["locality", "taluka", "village"]):
            col_map.setdefault("locality", idx)
        elif "pin" in h:
            col_map.setdefault("pincode", idx)
        elif any(k in h for k in ["address", "location"]):
            col_map.setdefault("address", idx)
        elif "available" in h or "unsold" in h:
            col_map.setdefault("available_units", idx)
        elif "unit" in h or "flats" in h:
            col_map.setdefault("total_units", idx)
        elif "building" in h or "tower" in h:
            col_map.setdefault("total_buildings", idx)
        elif "area" in h:
            col_map.setdefault("project_area", idx)
        elif "price" in h or "cost" in h:
            col_map.setdefault("price", idx)

    return col_map


def _assign_by_content(record: Dict, text: str) -> None:
    """Fill the first free field whose content pattern matches the cell."""
    if extract_date(text):
        for key in ("approved_on", "completion_date"):
            if key not in record:
                record[key] = extract_date(text)
                return
        return
    if is_money(text):
        if "min_price" not in record:
            record["min_price"], record["max_price"] = extract_price_range(text)
        return
    if extract_pincode(text) and len(text) <= 8:
        record.setdefault("pincode", extract_pincode(text))
        return
    if is_integer_cell(text):
        for key in ("total_units", "available_units"):
            if key not in record:
                record[key] = extract_integer(text)
                return
        return
    project_type = match_project_type(text)
    if project_type and "project_type" not in record:
        record["project_type"] = text
        return
    status = match_status(text)
    if status and "status" not in record:
        record["status"] = text
        return
    if looks_like_name(text):
        for key in ("name", "promoter_name", "address"):
            if key not in record:
                record[key] = text
                return


def parse_row(cells: List[str], col_map: Dict[str, int], source_url: str = "") -> Optional[Dict]:
    """
    Build a raw record from one table row.

    Returns None when no cell carries a registration id.
    """
    registration_id = None
    id_index = col_map.get("registration_id")
    if id_index is not None and id_index < len(cells):
        registration_id = extract_registration_id(cells[id_index])
    if not registration_id:
        for idx, text in enumerate(cells):
            registration_id = extract_registration_id(text)
            if registration_id:
                id_index = idx
                break
    if not registration_id:
        return None

    record = {"registration_id": registration_id}
    used = {id_index}

    for field_name, idx in col_map.items():
        # The id cell may sit under a generic "Project" header
        if idx >= len(cells) or idx == id_index:
            continue
        used.add(idx)
        if field_name in ("registration_id", "serial"):
            continue
        text = cells[idx]
        if not text:
            continue
        if field_name == "price":
            record["min_price"], record["max_price"] = extract_price_range(text)
        else:
            record[field_name] = text

    for idx, text in enumerate(cells):
        if idx in used or not text:
            continue
        _assign_by_content(record, text)

    if source_url:
        record["source_url"] = source_url
    return record


def find_project_tables(soup: BeautifulSoup) -> List:
    """Tables whose header row mentions project/RERA/promoter."""
    tables = []
    for table in soup.find_all("table"):
        header_cells = table.find_all("th")
        if not header_cells:
            first_row = table.find("tr")
            header_cells = first_row.find_all("td") if first_row else []
        header_text = " ".join(clean_text(c.get_text(" ")) for c in header_cells).lower()
        if any(k in header_text for k in TABLE_HEADER_KEYWORDS):
            tables.append(table)
    return tables


def _table_headers(table) -> List[str]:
    header_row = None
    for row in table.find_all("tr"):
        if row.find("th"):
            header_row = row
            break
    if header_row is None:
        header_row = table.find("tr")
    if header_row is None:
        return []
    return [clean_text(c.get_text(" ")) for c in header_row.find_all(["th", "td"])]


def extract_table_records(soup: BeautifulSoup, source_url: str = "") -> List[Dict]:
    """Rows from every project table, in document order."""
    records = []
    for table in find_project_tables(soup):
        col_map = map_table_columns(_table_headers(table))
        for row in table.find_all("tr"):
            cells = row.find_all("td")
            if len(cells) < MIN_ROW_CELLS:
                continue
            texts = [clean_text(c.get_text(" ")) for c in cells]
            record = parse_row(texts, col_map, source_url)
            if record:
                records.append(record)
    return records


def extract_card_records(soup: BeautifulSoup, source_url: str = "") -> List[Dict]:
    """
    Card-style listings: any element whose class mentions card/project/listing
    and whose text carries a registration id.
    """
    records = []
    seen = set()
    for card in soup.find_all(class_=CARD_CLASS_PATTERN):
        # Innermost matching element only
        inner = card.find(class_=CARD_CLASS_PATTERN)
        if inner is not None and extract_registration_id(inner.get_text(" ")):
            continue
        lines = [clean_text(s) for s in card.stripped_strings]
        registration_id = extract_registration_id(" ".join(lines))
        if not registration_id or registration_id in seen:
            continue
        seen.add(registration_id)

        record = {"registration_id": registration_id}
        heading = card.find(["h1", "h2", "h3", "h4", "h5", "strong"])
        if heading and looks_like_name(heading.get_text(" ")):
            record["name"] = clean_text(heading.get_text(" "))
        for line in lines:
            if extract_registration_id(line) or line == record.get("name"):
                continue
            label, _, value = line.partition(":")
            if value.strip():
                mapped = map_table_columns([label])
                if mapped:
                    field_name = next(iter(mapped))
                    if field_name == "price":
                        record["min_price"], record["max_price"] = extract_price_range(value)
                    elif field_name not in ("registration_id", "serial"):
                        record.setdefault(field_name, value.strip())
                    continue
            _assign_by_content(record, line)
        if source_url:
            record["source_url"] = source_url
        records.append(record)
    return records


def extract_records(html: str, source_url: str = "") -> List[Dict]:
    """Table rows first; card scan only when no table row matched."""
    soup = make_soup(html)
    records = extract_table_records(soup, source_url)
    if not records:
        records = extract_card_records(soup, source_url)
    logger.debug(f"Extracted {len(records)} rows from {source_url or 'page'}")
    return records


def has_listing_structure(html: str) -> bool:
    """Page has a project table or card container at all (even if empty)."""
    soup = make_soup(html)
    if find_project_tables(soup):
        return True
    return bool(soup.find(class_=CARD_CLASS_PATTERN))


def find_next_link(html: str, base_url: str) -> Optional[str]:
    """Absolute URL of the pagination "next" control, if it has one."""
    soup = make_soup(html)
    for element in soup.find_all(["a", "button"]):
        text = clean_text(element.get_text(" ")).lower()
        label = (element.get("aria-label") or "").lower()
        if not any(marker in text or marker in label for marker in NEXT_LINK_MARKERS):
            continue
        if element.has_attr("disabled") or "disabled" in " ".join(element.get("class", [])):
            continue
        href = element.get("href") or element.get("data-href")
        if href and not href.startswith(("javascript:", "#")):
            return urljoin(base_url, href)
    return None

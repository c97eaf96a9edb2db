"""
Earthquake rows from the PHIVOLCS HTML listings.

The listing is a plain table with one event per row:

    Date - Time | Latitude | Longitude | Depth (km) | Mag | Location

Columns are mapped by position. Rows with fewer than six cells (headers,
spacers) are skipped, and rows whose latitude, longitude or magnitude are
not numbers are dropped. Depth and time are kept even when unparseable.

Usage:
    from ingest.extract import extract_events

    events = extract_events(html)
"""

import logging
import math
import os
import re
from typing import Iterator, List, Optional

import pandas as pd
import pytz
from bs4 import BeautifulSoup

from schemas.models import Earthquake

logger = logging.getLogger(__name__)

SOURCE_TZ = pytz.timezone(os.getenv("SOURCE_TZ", "Asia/Manila"))

MIN_CELLS = 6
EXPECTED_HEADERS = ("date", "lat", "lon", "depth", "mag", "loc")

_LEADING_FLOAT = re.compile(
    r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)
_WS = re.compile(r"\s+")


def parse_float(text: str) -> float:
    """Leading-number parse: '14.5 km' -> 14.5, 'x' -> nan."""
    m = _LEADING_FLOAT.match(text.strip())
    if not m:
        return math.nan
    return float(m.group(0).replace("Infinity", "inf"))


def parse_event_time(text: str) -> Optional[int]:
    """Epoch millis for a published timestamp, or None if it can't be read."""
    # "19 October 2026 - 10:23 AM"
    cleaned = text.replace(" - ", " ").strip()
    if not cleaned:
        return None
    try:
        ts = pd.to_datetime(cleaned, errors="coerce")
    except (ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        # DST gaps move forward; repeated hours are left untimed
        ts = ts.tz_localize(SOURCE_TZ, nonexistent="shift_forward", ambiguous="NaT")
        if pd.isna(ts):
            return None
    return int(ts.value // 1_000_000)


def _cell_text(cell) -> str:
    return _WS.sub(" ", cell.get_text()).strip()


def _row_to_event(cells: List[str]) -> Optional[Earthquake]:
    date_text = cells[0]
    lat = parse_float(cells[1])
    lon = parse_float(cells[2])
    depth = parse_float(cells[3])
    mag = parse_float(cells[4])
    place = cells[5]

    if not (math.isfinite(lat) and math.isfinite(lon) and math.isfinite(mag)):
        return None

    return Earthquake(
        date=date_text,
        time=parse_event_time(date_text),
        lat=lat,
        lon=lon,
        depth=depth,
        mag=mag,
        place=place,
    )


def _table_rows(html: str) -> list:
    try:
        soup = BeautifulSoup(html, "lxml")
        return soup.select("table tr")
    except Exception as e:
        logger.warning(f"Could not parse listing markup: {e}")
        return []


def _iter_rows(rows) -> Iterator[Earthquake]:
    for i, row in enumerate(rows):
        try:
            cells = [_cell_text(td) for td in row.find_all("td")]
            if len(cells) < MIN_CELLS:
                continue
            event = _row_to_event(cells)
        except Exception as e:
            logger.debug(f"Skipping row {i}: {e}")
            continue
        if event is not None:
            yield event


def _header_mismatch(rows) -> List[int]:
    for row in rows:
        cells = [_cell_text(c).lower() for c in row.find_all(["th", "td"])]
        if not cells or "date" not in cells[0]:
            continue
        return [
            pos for pos, key in enumerate(EXPECTED_HEADERS)
            if pos >= len(cells) or key not in cells[pos]
        ]
    return []


def iter_events(html: str) -> Iterator[Earthquake]:
    return _iter_rows(_table_rows(html))


def find_header_mismatch(html: str) -> List[int]:
    """
    Column positions whose header text doesn't look like the expected layout.

    Only the first row whose leading cell mentions "date" is inspected. An
    empty list means no header was found or the header matched.
    """
    return _header_mismatch(_table_rows(html))


def extract_events(html: str) -> List[Earthquake]:
    rows = _table_rows(html)
    mismatched = _header_mismatch(rows)
    if mismatched:
        logger.warning(f"Listing header differs from expected layout at columns {mismatched}")
    return list(_iter_rows(rows))

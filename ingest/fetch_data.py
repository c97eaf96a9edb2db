import logging
import os
from typing import List

import requests
import urllib3
from prometheus_client import Counter
from urllib3.exceptions import InsecureRequestWarning

from ingest.extract import extract_events
from schemas.models import Earthquake

logger = logging.getLogger(__name__)

PHIVOLCS_BASE = "https://earthquake.phivolcs.dost.gov.ph"
LATEST_URL = f"{PHIVOLCS_BASE}/"
USER_AGENT = "Mozilla/5.0 (Earthquake Monitor)"

FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "30"))
# PHIVOLCS serves an incomplete certificate chain
VERIFY_TLS = os.getenv("VERIFY_TLS", "0") == "1"

if not VERIFY_TLS:
    urllib3.disable_warnings(InsecureRequestWarning)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

FETCH_FAILURES = Counter(
    "quake_fetch_failures_total",
    "Upstream page fetches that returned no data because of an error",
    ["source"],
)


def monthly_url(year: int, month_name: str) -> str:
    return f"{PHIVOLCS_BASE}/EQLatest-Monthly/{year}/{year}_{month_name}.html"


def fetch_page(url: str, source: str = "page", session=None) -> List[Earthquake]:
    """
    Download one listing page and extract its events.

    Never raises: transport errors, non-2xx answers and parse failures are
    logged and turned into an empty list.
    """
    http = session or requests
    try:
        r = http.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=FETCH_TIMEOUT,
            verify=VERIFY_TLS,
        )
        r.raise_for_status()
        return extract_events(r.text)
    except Exception as e:
        logger.warning(f"Error fetching PHIVOLCS data from {url}: {e}")
        FETCH_FAILURES.labels(source=source).inc()
        return []


def fetch_latest(session=None) -> List[Earthquake]:
    return fetch_page(LATEST_URL, source="latest", session=session)


def fetch_month(year: int, month_index: int, session=None) -> List[Earthquake]:
    url = monthly_url(year, MONTH_NAMES[month_index])
    return fetch_page(url, source="monthly", session=session)

import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, List, Tuple

from prometheus_client import Counter, Gauge, Histogram

from ingest.extract import SOURCE_TZ
from ingest.fetch_data import MONTH_NAMES, fetch_latest, fetch_month
from schemas.models import Earthquake

logger = logging.getLogger(__name__)

REFRESH_COUNT = Counter(
    "quake_refresh_total",
    "Refresh cycles by outcome",
    ["outcome"],
)
REFRESH_LATENCY = Histogram(
    "quake_refresh_duration_seconds",
    "Time spent fetching and merging both listings",
)
SNAPSHOT_EVENTS = Gauge(
    "quake_snapshot_events",
    "Number of events in the last installed snapshot",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def previous_month(now: datetime) -> Tuple[int, int]:
    """(year, month index 0-11) of the calendar month before `now`."""
    year = now.year
    month_index = now.month - 2  # month is 1-based
    if month_index < 0:
        month_index = 11
        year -= 1
    return year, month_index


def _time_key(event: Earthquake):
    # untimed events go last, keeping their relative order
    if event.time is None or not math.isfinite(event.time):
        return (0, 0)
    return (1, event.time)


def combine(latest: List[Earthquake], previous: List[Earthquake]) -> List[Earthquake]:
    """Latest + previous month, newest first. No de-duplication."""
    return sorted([*latest, *previous], key=_time_key, reverse=True)


class Aggregator:
    """Builds the combined two-month snapshot and installs it in a store.

    `store` only needs a `replace(earthquakes, last_updated)` method that
    swaps the snapshot in one step and returns the new entry.
    """

    def __init__(
        self,
        store,
        fetch_latest: Callable[[], List[Earthquake]] = fetch_latest,
        fetch_month: Callable[[int, int], List[Earthquake]] = fetch_month,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self._fetch_latest = fetch_latest
        self._fetch_month = fetch_month
        self._clock = clock

    def build_snapshot(self) -> List[Earthquake]:
        now = self._clock().astimezone(SOURCE_TZ)
        year, month_index = previous_month(now)

        latest_events = self._fetch_latest()
        prev_events = self._fetch_month(year, month_index)
        logger.debug(
            f"Fetched {len(latest_events)} latest and {len(prev_events)} "
            f"from {MONTH_NAMES[month_index]} {year}"
        )
        return combine(latest_events, prev_events)

    def refresh(self):
        """
        Fetch both listings and replace the store's snapshot.

        Returns the installed entry, or None when the cycle failed; in that
        case the store keeps its previous contents.
        """
        start = time.time()
        try:
            earthquakes = self.build_snapshot()
            entry = self.store.replace(earthquakes, self._clock())
        except Exception:
            logger.exception("Refresh failed, keeping previous snapshot")
            REFRESH_COUNT.labels(outcome="error").inc()
            return None
        finally:
            REFRESH_LATENCY.observe(time.time() - start)

        REFRESH_COUNT.labels(outcome="ok").inc()
        SNAPSHOT_EVENTS.set(len(earthquakes))
        logger.info(f"Combined {len(earthquakes)} events (latest + previous month)")
        return entry

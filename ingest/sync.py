# sync.py
import sys
from datetime import datetime, timezone

from dotenv import load_dotenv

load_dotenv()

from api.cache import build_store  # noqa: E402
from ingest.aggregate import Aggregator  # noqa: E402
from ingest.logger import setup_logger  # noqa: E402


def run_once() -> int:
    """Refresh once; seeds the durable tier when REDIS_URL is set."""
    start_time = datetime.now(timezone.utc)
    print(f"Sync started at {start_time.isoformat()}")

    store = build_store()
    entry = Aggregator(store).refresh()

    end_time = datetime.now(timezone.utc)
    if entry is None:
        print("Refresh failed, check logs.")
        code = 1
    else:
        target = "in-process + durable cache" if store.durable is not None else "in-process cache"
        print(f"Sync complete: {len(entry.earthquakes)} events written to {target}.")
        code = 0
    print(f"Total duration: {(end_time - start_time).total_seconds():.1f} seconds")
    return code


if __name__ == "__main__":
    setup_logger("ingest")
    sys.exit(run_once())

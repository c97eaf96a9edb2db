import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Request, Response

from api.cache import CacheEntry, SnapshotStore
from api.scheduler import trigger_background
from schemas.models import EarthquakesResponse

router = APIRouter(prefix="/api", tags=["earthquakes"])

REVALIDATE_AFTER_SECONDS = float(os.getenv("REVALIDATE_AFTER_SECONDS", "0"))

EMPTY_BODY = EarthquakesResponse().model_dump_json(by_alias=True, exclude={"last_updated"})


def _is_stale(entry: CacheEntry) -> bool:
    if entry.last_updated is None:
        return True
    age = (datetime.now(timezone.utc) - entry.last_updated).total_seconds()
    return age >= REVALIDATE_AFTER_SECONDS


def current_entry(store: SnapshotStore, aggregator, background_tasks: BackgroundTasks) -> Optional[CacheEntry]:
    """
    Pick the snapshot to serve.

    Without a durable tier only the scheduler refreshes, so whatever it last
    produced is served. With one: fast tier, then durable tier (both
    revalidated in the background), then a synchronous refresh.
    """
    entry = store.read()
    if store.durable is None:
        return entry

    if entry is not None:
        if _is_stale(entry):
            trigger_background(aggregator, background_tasks)
        return entry

    entry = store.read_durable()
    if entry is not None:
        trigger_background(aggregator, background_tasks)
        return entry

    return aggregator.refresh()


@router.get("/earthquakes", response_model=EarthquakesResponse)
def earthquakes(request: Request, background_tasks: BackgroundTasks):
    state = request.app.state
    entry = current_entry(state.store, state.aggregator, background_tasks)
    body = entry.body if entry is not None else EMPTY_BODY
    return Response(content=body, media_type="application/json")

# api/cache.py
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import redis
from pydantic import ValidationError

from schemas.models import Earthquake, EarthquakesResponse

logger = logging.getLogger(__name__)

CACHE_KEY = os.getenv("CACHE_KEY", "phivolcs:earthquakes")


@dataclass(frozen=True)
class CacheEntry:
    """A combined snapshot plus its ready-to-send JSON body."""

    response: EarthquakesResponse
    body: str

    @classmethod
    def build(cls, earthquakes: List[Earthquake], last_updated: datetime) -> "CacheEntry":
        response = EarthquakesResponse(earthquakes=earthquakes, last_updated=last_updated)
        return cls(response=response, body=response.model_dump_json(by_alias=True))

    @classmethod
    def from_body(cls, body: str) -> "CacheEntry":
        return cls(response=EarthquakesResponse.model_validate_json(body), body=body)

    @property
    def earthquakes(self) -> List[Earthquake]:
        return self.response.earthquakes

    @property
    def last_updated(self) -> Optional[datetime]:
        return self.response.last_updated


class RedisTier:
    """Durable tier: the serialized entry under one Redis key.

    Redis errors are logged and treated as a miss (get) or a skipped write (put).
    """

    def __init__(self, client, key: str = CACHE_KEY):
        self.client = client
        self.key = key

    def get(self) -> Optional[str]:
        try:
            raw = self.client.get(self.key)
        except redis.RedisError as e:
            logger.warning(f"Durable cache read failed: {e}")
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return raw

    def put(self, value: str) -> None:
        try:
            self.client.set(self.key, value)
        except redis.RedisError as e:
            logger.warning(f"Durable cache write failed: {e}")


class SnapshotStore:
    """
    Holds the latest CacheEntry in process, optionally mirrored to a durable tier.

    The entry is replaced wholesale: readers see either the old reference or
    the new one, never a partly built snapshot.
    """

    def __init__(self, durable: Optional[RedisTier] = None):
        self.durable = durable
        self._entry: Optional[CacheEntry] = None

    @property
    def populated(self) -> bool:
        return self._entry is not None

    def read(self) -> Optional[CacheEntry]:
        return self._entry

    def read_durable(self) -> Optional[CacheEntry]:
        """Load the durable entry into the fast tier. None on miss or error."""
        if self.durable is None:
            return None
        raw = self.durable.get()
        if not raw:
            return None
        try:
            entry = CacheEntry.from_body(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable durable cache entry: {e}")
            return None
        # a refresh may have landed while we were reading
        if self._entry is None:
            self._entry = entry
        return self._entry

    def replace(self, earthquakes: List[Earthquake], last_updated: datetime) -> CacheEntry:
        entry = CacheEntry.build(earthquakes, last_updated)
        self._entry = entry
        if self.durable is not None:
            self.durable.put(entry.body)
        return entry


def build_store() -> SnapshotStore:
    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        return SnapshotStore()
    client = redis.Redis.from_url(redis_url, decode_responses=True, socket_timeout=5)
    logger.info(f"Durable cache enabled (key={CACHE_KEY})")
    return SnapshotStore(durable=RedisTier(client, CACHE_KEY))

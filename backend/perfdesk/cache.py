from __future__ import annotations

import datetime
import logging
from typing import Callable, Protocol

from pydantic import ValidationError
from redis import Redis

from perfdesk.config.settings import Settings, settings
from perfdesk.schemas.snapshot import Snapshot

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _get_client() -> Redis:
    return Redis.from_url(settings.redis_url)


class SnapshotStore(Protocol):
    def load(self) -> Snapshot | None: ...

    def save(self, snapshot: Snapshot) -> None: ...


class MemorySnapshotStore:
    """Process-wide slot; replacing the reference is the only write."""

    def __init__(self) -> None:
        self._snapshot: Snapshot | None = None

    def load(self) -> Snapshot | None:
        return self._snapshot

    def save(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot


class RedisSnapshotStore:
    """Single fixed Redis key shared by every worker process."""

    def __init__(self, key: str | None = None) -> None:
        self.key = key or settings.snapshot_cache_key

    def load(self) -> Snapshot | None:
        try:
            client = _get_client()
            raw = client.get(self.key)
        except Exception as exc:
            logger.warning(f"Snapshot cache read failed for {self.key}: {exc}")
            return None

        if not raw:
            return None

        try:
            return Snapshot.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(f"Discarding unreadable cached snapshot: {exc}")
            return None

    def save(self, snapshot: Snapshot) -> None:
        # no expiry: an old snapshot must survive for stale fallback
        try:
            client = _get_client()
            client.set(self.key, snapshot.model_dump_json(by_alias=True))
        except Exception as exc:
            logger.warning(f"Snapshot cache write failed for {self.key}: {exc}")


def build_store(config: Settings | None = None) -> SnapshotStore:
    config = config or settings
    if config.snapshot_backend == "redis":
        return RedisSnapshotStore(config.snapshot_cache_key)
    return MemorySnapshotStore()


class SnapshotCache:
    """One snapshot slot plus the freshness rule applied to it."""

    def __init__(
        self,
        store: SnapshotStore | None = None,
        ttl_seconds: int | None = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self.store = store if store is not None else build_store()
        self.ttl = datetime.timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        )
        self.clock = clock

    def now(self) -> datetime.datetime:
        return self.clock()

    def get(self) -> Snapshot | None:
        return self.store.load()

    def put(self, snapshot: Snapshot) -> None:
        self.store.save(snapshot)

    def is_fresh(self, snapshot: Snapshot) -> bool:
        return self.now() - snapshot.fetched_at < self.ttl

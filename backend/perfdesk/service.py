from __future__ import annotations

import datetime
import logging
import threading
from typing import Callable

from perfdesk.cache import SnapshotCache
from perfdesk.config.settings import Settings, settings as default_settings
from perfdesk.errors import FetchError, SnapshotUnavailableError
from perfdesk.parsing.dashboard import parse_snapshot
from perfdesk.providers.socialtrader import fetch_dashboard_html
from perfdesk.schemas.snapshot import Snapshot, SnapshotResult

logger = logging.getLogger(__name__)

Fetcher = Callable[[], str]
Parser = Callable[[str, datetime.datetime, Settings], Snapshot]


class SnapshotService:
    """
    Serves the dashboard snapshot from a single cache slot.

    A fresh slot is returned as-is (``cached``). Past the TTL the dashboard is
    refetched; if that fails the previous snapshot is returned as ``stale``,
    and with nothing cached the failure surfaces as SnapshotUnavailableError.
    The whole check/fetch/store sequence holds one lock, so concurrent callers
    share a single refetch.
    """

    def __init__(
        self,
        cache: SnapshotCache | None = None,
        fetcher: Fetcher | None = None,
        parser: Parser = parse_snapshot,
        settings: Settings | None = None,
    ):
        self.settings = settings or default_settings
        self.cache = cache if cache is not None else SnapshotCache(
            ttl_seconds=self.settings.cache_ttl_seconds
        )
        self.fetcher = fetcher or self._fetch
        self.parser = parser
        self._lock = threading.Lock()

    def _fetch(self) -> str:
        return fetch_dashboard_html(
            self.settings.source_url, timeout=self.settings.fetch_timeout_seconds
        )

    def refresh(self) -> Snapshot:
        markup = self.fetcher()
        snapshot = self.parser(markup, self.cache.now(), self.settings)
        self.cache.put(snapshot)
        growth_points = len(snapshot.chart.growth)
        logger.info(f"Stored new snapshot with {growth_points} growth points")
        return snapshot

    def get_snapshot(self) -> SnapshotResult:
        with self._lock:
            current = self.cache.get()
            if current is not None and self.cache.is_fresh(current):
                return SnapshotResult(snapshot=current, cached=True)

            try:
                return SnapshotResult(snapshot=self.refresh())
            except FetchError as exc:
                failure: Exception = exc
                logger.warning(f"Dashboard fetch failed: {exc.message}")
            except Exception as exc:
                failure = exc
                logger.exception("Dashboard refresh failed unexpectedly")

            if current is not None:
                logger.warning(
                    f"Serving stale snapshot fetched at {current.fetched_at.isoformat()}"
                )
                return SnapshotResult(snapshot=current, stale=True)

            raise SnapshotUnavailableError(
                "Unable to fetch trading stats", {"source": self.settings.source_url}
            ) from failure

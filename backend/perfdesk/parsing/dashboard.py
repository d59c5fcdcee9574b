from __future__ import annotations

import datetime
import logging
import re
from typing import Optional

from perfdesk.config.settings import Settings, settings as default_settings
from perfdesk.parsing.metrics import (
    DashboardDocument,
    MetricExtractor,
    clean_text,
    tabular_strategies,
)
from perfdesk.parsing.series import extract_growth_series
from perfdesk.schemas.snapshot import Snapshot, SnapshotChart, SnapshotMeta

logger = logging.getLogger(__name__)

UPDATED_RE = re.compile(r"Updated:\s*([0-9\-:\s]+)", re.IGNORECASE)


def extract_updated_at(extractor: MetricExtractor, markup: str, label: str = "Updated") -> Optional[str]:
    value = extractor.extract(label)
    if value:
        return value
    match = UPDATED_RE.search(markup or "")
    return clean_text(match.group(1)) if match else None


def _count_missing(group: dict[str, Optional[str]]) -> int:
    return sum(1 for value in group.values() if value is None)


def parse_snapshot(
    markup: str,
    fetched_at: datetime.datetime,
    settings: Settings | None = None,
) -> Snapshot:
    settings = settings or default_settings
    labels = settings.labels

    document = DashboardDocument(markup)
    extractor = MetricExtractor(document)
    tabular = tabular_strategies(document)
    account_details = extractor.extract_group(labels.account_details)
    trading_stats = extractor.extract_group(labels.trading_stats, tabular)
    account_info = extractor.extract_group(labels.account_info, tabular)

    missing = sum(
        _count_missing(group) for group in (account_details, trading_stats, account_info)
    )
    if missing:
        logger.warning(f"{missing} dashboard metrics could not be resolved")

    growth = extract_growth_series(
        markup,
        variable=settings.series_variable,
        timeout_ms=settings.series_timeout_ms,
    )

    return Snapshot(
        source=settings.source_url,
        fetched_at=fetched_at,
        account_details=account_details,
        trading_stats=trading_stats,
        account_info=account_info,
        chart=SnapshotChart(growth=tuple(growth)),
        meta=SnapshotMeta(updated_at=extract_updated_at(extractor, markup, labels.updated)),
    )

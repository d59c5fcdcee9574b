from __future__ import annotations

import datetime
import logging
import math
import re
from typing import Any, Iterable, Optional

from perfdesk.config.settings import settings
from perfdesk.errors import SandboxError
from perfdesk.parsing.literal import LiteralParser
from perfdesk.schemas.snapshot import GrowthPoint

logger = logging.getLogger(__name__)

_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%b %d, %Y",
    "%d %b %Y",
    "%Y-%m-%d %H:%M",
    "%Y.%m.%d %H:%M",
    "%m/%d/%Y %H:%M",
)


def _assignment_re(variable: str) -> re.Pattern:
    return re.compile(rf"(?<![\w$]){re.escape(variable)}\s*=\s*(?=\[)")


def parse_date(text: str) -> Optional[datetime.datetime]:
    """Parse a date-like label into a naive UTC datetime, or None."""
    cleaned = text.strip()
    if not cleaned:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.datetime.strptime(cleaned, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.UTC).replace(tzinfo=None)
    return parsed


def _coerce_value(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError:
            return None
    elif isinstance(raw, str):
        try:
            value = float(raw.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def _normalize_date(raw: Any) -> Optional[str]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        return raw if parse_date(raw) is not None else None
    if isinstance(raw, (int, float)):
        # numeric dates are epoch milliseconds
        try:
            if not math.isfinite(raw):
                return None
            moment = datetime.datetime.fromtimestamp(raw / 1000.0, tz=datetime.UTC)
        except (OverflowError, OSError, ValueError):
            return None
        return moment.date().isoformat()
    return None


def _iter_pairs(raw: Any) -> Iterable[tuple[Any, Any]]:
    if not isinstance(raw, list):
        return
    for series in raw:
        if not isinstance(series, dict):
            continue
        data = series.get("data")
        if not isinstance(data, list):
            continue
        for entry in data:
            if isinstance(entry, (list, tuple)) and len(entry) >= 2:
                yield entry[0], entry[1]


def normalize_growth_series(raw: Any) -> list[GrowthPoint]:
    """Flatten evaluated chart series into unique, chronologically sorted points."""
    latest: dict[str, float] = {}
    dropped = 0
    for raw_date, raw_value in _iter_pairs(raw):
        value = _coerce_value(raw_value)
        date = _normalize_date(raw_date) if value is not None else None
        if value is None or date is None:
            dropped += 1
            continue
        # last occurrence wins
        latest[date] = value

    if dropped:
        logger.debug(f"Dropped {dropped} malformed growth points")

    keyed = [(parse_date(date), date, value) for date, value in latest.items()]
    keyed.sort(key=lambda item: (item[0], item[1]))
    return [GrowthPoint(date=date, value=value) for _, date, value in keyed]


def extract_growth_series(
    markup: str,
    variable: str | None = None,
    timeout_ms: float | None = None,
) -> list[GrowthPoint]:
    variable = variable or settings.series_variable
    timeout_ms = timeout_ms if timeout_ms is not None else settings.series_timeout_ms

    match = _assignment_re(variable).search(markup or "")
    if not match:
        logger.info(f"No {variable} assignment found; growth series left empty")
        return []

    try:
        raw = LiteralParser(markup, pos=match.end(), timeout_ms=timeout_ms).parse_value()
    except SandboxError as exc:
        logger.warning(f"Failed to evaluate {variable}: {exc.message}")
        return []

    if not isinstance(raw, list):
        logger.warning(f"{variable} is not an array; growth series left empty")
        return []

    return normalize_growth_series(raw)

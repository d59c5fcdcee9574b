from __future__ import annotations

import logging
import socket
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from perfdesk.config.settings import settings
from perfdesk.errors import TransportError, UpstreamStatusError

logger = logging.getLogger(__name__)


def _build_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.user_agent,
        "Accept": "text/html,application/xhtml+xml",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


def fetch_dashboard_html(url: str | None = None, timeout: float | None = None) -> str:
    """Fetch the dashboard markup with a single GET; no retries."""
    target = url or settings.source_url
    request = Request(target, headers=_build_headers(), method="GET")
    timeout = timeout if timeout is not None else settings.fetch_timeout_seconds

    logger.info(f"Fetching dashboard {target}")
    try:
        with urlopen(request, timeout=timeout) as response:
            status = response.status
            if not 200 <= status < 300:
                raise UpstreamStatusError(status, details={"url": target})
            charset = response.headers.get_content_charset() or "utf-8"
            body = response.read()
    except HTTPError as exc:
        raise UpstreamStatusError(exc.code, details={"url": target}) from exc
    except (URLError, TimeoutError, socket.timeout, ConnectionError, HTTPException) as exc:
        reason = getattr(exc, "reason", exc)
        raise TransportError(
            f"Upstream request failed: {reason}", {"url": target}
        ) from exc

    try:
        return body.decode(charset, errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")

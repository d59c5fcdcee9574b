from __future__ import annotations


class PerfDeskError(Exception):
    """Base exception for perfdesk"""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class FetchError(PerfDeskError):
    """The upstream dashboard could not be retrieved"""


class TransportError(FetchError):
    """Network-level failure: DNS, refused or reset connection, timeout"""


class UpstreamStatusError(FetchError):
    """Upstream answered with a non-2xx status"""

    def __init__(self, status: int, message: str | None = None, details: dict | None = None):
        super().__init__(
            message or f"Upstream responded with status {status}",
            {"status": status, **(details or {})},
        )
        self.status = status


class SandboxError(PerfDeskError):
    """The embedded series literal could not be evaluated within its limits"""


class SnapshotUnavailableError(PerfDeskError):
    """No snapshot could be produced and none is cached"""


def error_payload(e: Exception, message: str = "Unable to fetch trading stats") -> dict:
    """Render an exception as the public JSON error document."""
    cause = e.__cause__ if isinstance(e, SnapshotUnavailableError) and e.__cause__ else e

    if isinstance(cause, PerfDeskError):
        error_type = cause.__class__.__name__
        details = dict(cause.details)
    else:
        error_type = "UnknownError"
        details = {"reason": str(cause)}

    return {
        "error": message,
        "type": error_type,
        "details": details,
    }

# deploy_tracker/errors.py
"""Error taxonomy shared by the tracker components.

Each error carries the HTTP status and the public message it maps to; the
underlying cause is only ever logged server-side.
"""
from typing import Optional


class TrackerError(Exception):
    status_code = 500
    public_message = "Internal Server Error"

    def __init__(self, message: str = "", public_message: Optional[str] = None):
        super().__init__(message or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class BadRequest(TrackerError):
    """The ingest body is missing or malformed."""

    status_code = 400
    public_message = "Bad Request"


class Forbidden(TrackerError):
    status_code = 403
    public_message = "Forbidden"


class Unconfigured(TrackerError):
    """No event database is bound to the application."""

    status_code = 500
    public_message = "No database server configured"


class StoreError(TrackerError):
    """The event store failed to read or write."""

    status_code = 500
    public_message = "Internal Server Error"


class UpstreamError(TrackerError):
    """The reputation upstream failed, timed out or returned garbage."""

    status_code = 502
    public_message = "Bad Gateway"


class CacheError(TrackerError):
    """The reputation cache could not be read or written."""

# deploy_tracker/ingest.py
"""Turns an inbound deployment submission into an :class:`Event`.

Only the recognized fields are copied, and only when they carry a value;
everything else the client sends is dropped.
"""
import datetime
import hashlib
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from deploy_tracker.errors import BadRequest
from deploy_tracker.models import Event

PASSTHROUGH_FIELDS = (
    "date_sent",
    "code_version",
    "repository_url",
    "application_name",
    "space_id",
    "application_version",
)


def url_hash(url: str) -> str:
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def timestamp(now: Optional[datetime.datetime] = None) -> str:
    """Format ``now`` (default: current time) as UTC ISO8601 with milliseconds and a Z suffix."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    now = now.astimezone(datetime.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _application_uris(value: Any):
    if isinstance(value, (list, tuple)):
        return [str(uri) for uri in value]
    return str(value)


def build_event(payload: Optional[Mapping[str, Any]], now: Optional[datetime.datetime] = None) -> Event:
    if payload is None:
        raise BadRequest("no request body")
    if not isinstance(payload, Mapping):
        raise BadRequest("request body must be an object")

    fields = {"date_received": timestamp(now)}
    for name in PASSTHROUGH_FIELDS:
        value = payload.get(name)
        if value:
            fields[name] = str(value)
    if payload.get("application_uris"):
        fields["application_uris"] = _application_uris(payload["application_uris"])
    if "repository_url" in fields:
        fields["repository_url_hash"] = url_hash(fields["repository_url"])

    try:
        return Event(**fields)
    except ValidationError as e:
        raise BadRequest(f"invalid event: {e}") from e

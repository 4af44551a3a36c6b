"""Timestamp helpers shared by formatters and writers."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def iso_timestamp(ts: datetime | None = None) -> str:
    """Render ``ts`` (default: now) as ISO-8601 UTC with milliseconds and a Z suffix.

    Naive datetimes are assumed to be UTC.
    """
    if ts is None:
        ts = utc_now()
    elif ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    ts = ts.astimezone(UTC)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def rotation_suffix(ts: datetime | None = None) -> str:
    """Timestamp usable inside a blob name (``:`` and ``.`` become ``-``)."""
    return iso_timestamp(ts).replace(":", "-").replace(".", "-")

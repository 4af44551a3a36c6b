"""CSV formatter (``.csv``) with static and dynamic column modes."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from ..clock import iso_timestamp
from ..models import BulkLogEntry, LogEntry
from .base import (
    STATIC,
    DynamicHeaders,
    HeaderState,
    bulk_timestamp,
    is_valid_entry,
    level_name,
    next_header_state,
    to_json,
)

DEFAULT_CSV_HEADERS: tuple[str, ...] = (
    "timestamp",
    "level",
    "requestId",
    "userId",
    "sessionId",
    "message",
    "metadata",
)

_NEEDS_QUOTING = (",", '"', "\n", "\r")


def escape_csv_field(value: str) -> str:
    """Quote a field (doubling inner quotes) iff it contains a delimiter, quote or line break."""
    if any(ch in value for ch in _NEEDS_QUOTING):
        return '"' + value.replace('"', '""') + '"'
    return value


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return to_json(value)
    return str(value)


class DelimitedLogFormatter:
    """Format entries as CSV rows.

    Static mode writes the seven system columns. Dynamic mode freezes the
    metadata keys of the first sampled entry as the header and afterwards
    writes only those metadata values, in header order. An entry without
    metadata while in dynamic mode is written as a full static row.
    """

    def __init__(self) -> None:
        self._state: HeaderState = STATIC

    @property
    def is_dynamic(self) -> bool:
        return isinstance(self._state, DynamicHeaders)

    def format_header(self, is_dynamic: bool = False, sample_entry: LogEntry | None = None) -> str:
        if not is_dynamic:
            return self._header_line(DEFAULT_CSV_HEADERS)
        self._state = next_header_state(self._state, is_dynamic, sample_entry)
        return self._header_line(self.get_current_headers())

    def format_entry(self, entry: LogEntry, timestamp: datetime | None = None) -> str:
        state = self._state
        if isinstance(state, DynamicHeaders) and entry.metadata:
            values = [_cell(entry.metadata.get(key)) for key in state.keys]
            return ",".join(escape_csv_field(v) for v in values) + "\n"

        fields = [
            iso_timestamp(timestamp),
            level_name(entry),
            entry.request_id or "",
            entry.user_id or "",
            entry.session_id or "",
            entry.message or "",
            to_json(dict(entry.metadata)) if entry.metadata else "",
        ]
        return ",".join(escape_csv_field(f) for f in fields) + "\n"

    def format_bulk_entries(self, entries: Sequence[BulkLogEntry]) -> str:
        return "".join(self.format_entry(e, bulk_timestamp(e)) for e in entries)

    def supports_append(self) -> bool:
        return True

    def validate_entry(self, entry: LogEntry) -> bool:
        return is_valid_entry(entry)

    def get_current_headers(self) -> list[str]:
        if isinstance(self._state, DynamicHeaders):
            return list(self._state.keys)
        return list(DEFAULT_CSV_HEADERS)

    def reset_dynamic_mode(self) -> None:
        self._state = STATIC

    @staticmethod
    def _header_line(headers: Sequence[str]) -> str:
        return ",".join(escape_csv_field(h) for h in headers) + "\n"

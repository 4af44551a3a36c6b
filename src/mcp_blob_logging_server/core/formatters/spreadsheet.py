"""Spreadsheet row formatter (``.xlsx``).

This formatter never produces the workbook itself. Each entry becomes one
JSON object per line, keyed by column title; the regenerate-on-write writer
turns the accumulated rows into the binary file.
"""

from __future__ import annotations

import re
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

EXCEL_HEADERS: tuple[str, ...] = (
    "Timestamp",
    "Level",
    "Request ID",
    "User ID",
    "Session ID",
    "Message",
    "Metadata",
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[_\-\s]+")


def title_case(key: str) -> str:
    """``user_id`` -> ``User Id``, ``requestCount`` -> ``Request Count``."""
    spaced = _CAMEL_BOUNDARY.sub(" ", key)
    words = [w for w in _SEPARATORS.split(spaced) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return to_json(value)
    return value


class SpreadsheetLogFormatter:
    def __init__(self) -> None:
        self._state: HeaderState = STATIC

    @property
    def is_dynamic(self) -> bool:
        return isinstance(self._state, DynamicHeaders)

    def format_header(self, is_dynamic: bool = False, sample_entry: LogEntry | None = None) -> str:
        # The header row is structural; the writer derives it from the row keys.
        if is_dynamic:
            self._state = next_header_state(self._state, is_dynamic, sample_entry)
        return ""

    def format_entry(self, entry: LogEntry, timestamp: datetime | None = None) -> str:
        state = self._state
        if isinstance(state, DynamicHeaders):
            metadata = entry.metadata or {}
            row = {title_case(key): _cell(metadata.get(key)) for key in state.keys}
        else:
            row = {
                "Timestamp": iso_timestamp(timestamp),
                "Level": level_name(entry),
                "Request ID": entry.request_id or "",
                "User ID": entry.user_id or "",
                "Session ID": entry.session_id or "",
                "Message": entry.message or "",
                "Metadata": to_json(dict(entry.metadata)) if entry.metadata else "",
            }
        return to_json(row) + "\n"

    def format_bulk_entries(self, entries: Sequence[BulkLogEntry]) -> str:
        return "".join(self.format_entry(e, bulk_timestamp(e)) for e in entries)

    def supports_append(self) -> bool:
        return False

    def validate_entry(self, entry: LogEntry) -> bool:
        return is_valid_entry(entry)

    def get_current_headers(self) -> list[str]:
        if isinstance(self._state, DynamicHeaders):
            return list(self._state.keys)
        return list(EXCEL_HEADERS)

    def reset_dynamic_mode(self) -> None:
        self._state = STATIC

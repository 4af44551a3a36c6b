"""Plain-text line formatter (``.log``)."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from ..clock import iso_timestamp
from ..models import BulkLogEntry, LogEntry
from .base import bulk_timestamp, is_valid_entry, level_name, to_json


class TraditionalLogFormatter:
    """Format entries as

    ``[ts] [LEVEL] [requestId] [User:userId] [Session:sessionId] message | Metadata: {...}``

    Optional bracket fields are left out when absent, as is the metadata
    suffix when metadata is empty. There is no header.
    """

    def format_entry(self, entry: LogEntry, timestamp: datetime | None = None) -> str:
        parts = [f"[{iso_timestamp(timestamp)}]", f"[{level_name(entry)}]"]
        if entry.request_id:
            parts.append(f"[{entry.request_id}]")
        if entry.user_id:
            parts.append(f"[User:{entry.user_id}]")
        if entry.session_id:
            parts.append(f"[Session:{entry.session_id}]")
        parts.append(entry.message or "")

        line = " ".join(parts)
        if entry.metadata:
            line += f" | Metadata: {to_json(dict(entry.metadata))}"
        return line + "\n"

    def format_header(self, is_dynamic: bool = False, sample_entry: LogEntry | None = None) -> str:
        return ""

    def format_bulk_entries(self, entries: Sequence[BulkLogEntry]) -> str:
        return "".join(self.format_entry(e, bulk_timestamp(e)) for e in entries)

    def supports_append(self) -> bool:
        return True

    def validate_entry(self, entry: LogEntry) -> bool:
        return is_valid_entry(entry)

    def get_current_headers(self) -> list[str]:
        return []

    def reset_dynamic_mode(self) -> None:
        return None

"""Formatter interface and shared helpers."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from ..models import BulkLogEntry, LogEntry, LogLevel


class LogFormatter(Protocol):
    """Turns entries into the serialized unit its paired writer persists."""

    def format_entry(self, entry: LogEntry, timestamp: datetime | None = None) -> str:
        """Format one entry; ``timestamp`` defaults to now. Must not mutate ``entry``."""
        ...

    def format_header(self, is_dynamic: bool = False, sample_entry: LogEntry | None = None) -> str:
        """Return the header text and, for dynamic mode, freeze the column set."""
        ...

    def format_bulk_entries(self, entries: Sequence[BulkLogEntry]) -> str:
        """Concatenate ``format_entry`` output in input order."""
        ...

    def supports_append(self) -> bool: ...

    def validate_entry(self, entry: LogEntry) -> bool: ...

    def get_current_headers(self) -> list[str]: ...

    def reset_dynamic_mode(self) -> None: ...


@dataclass(frozen=True, slots=True)
class StaticHeaders:
    """Format-defined header."""


@dataclass(frozen=True, slots=True)
class DynamicHeaders:
    """Header frozen from the first sampled entry's metadata keys."""

    keys: tuple[str, ...]


HeaderState = StaticHeaders | DynamicHeaders

STATIC = StaticHeaders()


def next_header_state(
    state: HeaderState, is_dynamic: bool, sample_entry: LogEntry | None
) -> HeaderState:
    """Transition function shared by the tabular formatters.

    Static becomes dynamic only when asked for dynamic mode with a sample
    that carries at least one metadata key; dynamic stays put until reset.
    """
    if isinstance(state, DynamicHeaders) or not is_dynamic:
        return state
    if sample_entry is None or not sample_entry.metadata:
        return state
    return DynamicHeaders(keys=tuple(sample_entry.metadata.keys()))


def is_valid_entry(entry: LogEntry) -> bool:
    """An entry needs a level and a non-empty string message."""
    return (
        isinstance(entry.level, LogLevel)
        and isinstance(entry.message, str)
        and entry.message != ""
    )


def level_name(entry: LogEntry) -> str:
    level = entry.level
    return level.value if isinstance(level, LogLevel) else str(level)


def to_json(value: Any) -> str:
    """Compact JSON, keeping non-ASCII text and stringifying unknown types."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def bulk_timestamp(entry: LogEntry) -> datetime | None:
    return entry.timestamp if isinstance(entry, BulkLogEntry) else None

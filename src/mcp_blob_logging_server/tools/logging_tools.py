"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures. Inputs use the camelCase field
names of the HTTP API this server replaces; snake_case is accepted too.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

from mcp_blob_logging_server.core.models import BulkLogEntry, LogEntry, LogFileConfig, LogLevel
from mcp_blob_logging_server.core.service import BlobLoggingService, validate_logging_config
from mcp_blob_logging_server.core.settings import build_service

ALL_LEVELS = [lvl.value for lvl in LogLevel]


@lru_cache(maxsize=1)
def default_service() -> BlobLoggingService:
    """Process-wide facade built from environment settings."""
    return build_service()


def _field(raw: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake)


def _parse_level(value: Any) -> LogLevel | None:
    if value is None or isinstance(value, LogLevel):
        return value
    name = str(value).strip().upper()
    if name == "WARNING":
        name = "WARN"
    try:
        return LogLevel(name)
    except ValueError as e:
        valid = ", ".join(ALL_LEVELS)
        raise ValueError(f"Unknown log level '{value}'. Valid values: {valid}.") from e


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid timestamp '{value}'. Use ISO-8601, e.g. 2024-07-11T16:30:00.000Z") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def _entry_kwargs(raw: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValueError("Log entry must be an object")
    metadata = raw.get("metadata")
    if metadata is not None and not isinstance(metadata, Mapping):
        raise ValueError("metadata must be an object")
    return {
        "level": _parse_level(raw.get("level")),
        "message": raw.get("message"),
        "metadata": dict(metadata) if metadata else None,
        "user_id": _field(raw, "userId", "user_id"),
        "session_id": _field(raw, "sessionId", "session_id"),
        "request_id": _field(raw, "requestId", "request_id"),
    }


def parse_entry(raw: Mapping[str, Any]) -> LogEntry:
    return LogEntry(**_entry_kwargs(raw))


def parse_bulk_entry(raw: Mapping[str, Any]) -> BulkLogEntry:
    return BulkLogEntry(**_entry_kwargs(raw), timestamp=_parse_timestamp(raw.get("timestamp")))


def parse_config(raw: Mapping[str, Any] | None) -> LogFileConfig | None:
    """Validate with the facade's rules first so callers get its messages."""
    if not raw:
        return None
    result = validate_logging_config(raw)
    if not result.is_valid:
        raise ValueError(f"Invalid logging configuration: {', '.join(result.errors)}")
    return LogFileConfig.model_validate(dict(raw))


def _require_file_name(file_name: str) -> str:
    if not file_name or not file_name.strip():
        raise ValueError("file_name must be a non-empty string")
    return file_name.strip()


async def append_log_impl(
    *,
    file_name: str,
    entry: Mapping[str, Any],
    config: Mapping[str, Any] | None = None,
    service: BlobLoggingService | None = None,
) -> dict[str, Any]:
    """Implementation for the `append_log` MCP tool."""
    svc = service or default_service()
    name = _require_file_name(file_name)
    await svc.append_log(name, parse_entry(entry), parse_config(config))
    return {
        "message": "Log entry added successfully",
        "fileName": name,
        "requestId": str(uuid.uuid4()),
    }


async def append_bulk_logs_impl(
    *,
    file_name: str,
    entries: Sequence[Mapping[str, Any]],
    config: Mapping[str, Any] | None = None,
    service: BlobLoggingService | None = None,
) -> dict[str, Any]:
    """Implementation for the `append_bulk_logs` MCP tool."""
    svc = service or default_service()
    name = _require_file_name(file_name)
    parsed = [parse_bulk_entry(e) for e in entries]
    await svc.append_bulk_logs(name, parsed, parse_config(config))
    return {
        "message": "Bulk log entries added successfully",
        "fileName": name,
        "entriesCount": len(parsed),
        "requestId": str(uuid.uuid4()),
    }


async def read_logs_impl(
    *,
    file_name: str,
    config: Mapping[str, Any] | None = None,
    service: BlobLoggingService | None = None,
) -> dict[str, Any]:
    """Implementation for the `read_logs` MCP tool."""
    svc = service or default_service()
    name = _require_file_name(file_name)
    content = await svc.read_logs(name, parse_config(config))
    return {"content": content, "fileName": name, "requestId": str(uuid.uuid4())}


async def get_log_file_stats_impl(
    *,
    file_name: str,
    config: Mapping[str, Any] | None = None,
    service: BlobLoggingService | None = None,
) -> dict[str, Any]:
    """Implementation for the `get_log_file_stats` MCP tool."""
    svc = service or default_service()
    name = _require_file_name(file_name)
    stats = await svc.get_log_file_stats(name, parse_config(config))
    return {**stats.to_dict(), "fileName": name, "requestId": str(uuid.uuid4())}


def get_supported_formats_impl(*, service: BlobLoggingService | None = None) -> list[dict[str, Any]]:
    svc = service or default_service()
    return [fmt.to_dict() for fmt in svc.get_supported_formats()]


def validate_logging_config_impl(*, config: Mapping[str, Any]) -> dict[str, Any]:
    result = validate_logging_config(config)
    return {"isValid": result.is_valid, "errors": list(result.errors)}

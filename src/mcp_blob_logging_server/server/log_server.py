"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: append, read and inspect logical log files
- Resources: addressable reference data (help, formats, config schema)

Run locally (stdio):
    python -m mcp_blob_logging_server.server.log_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_blob_logging_server.core.settings import LOG_LEVEL_ENV
from mcp_blob_logging_server.resources.registry import register_resources
from mcp_blob_logging_server.tools.logging_tools import (
    append_bulk_logs_impl,
    append_log_impl,
    get_log_file_stats_impl,
    get_supported_formats_impl,
    read_logs_impl,
    validate_logging_config_impl,
)

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure logging on stderr; stdout carries the MCP stdio transport."""
    level_name = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


mcp = FastMCP("blob-logging", json_response=True)

register_resources(mcp)


@mcp.tool()
async def append_log(
    file_name: str,
    entry: dict[str, Any],
    config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Append one entry to a logical log file.

    Parameters
    ----------
    file_name:
        Base name of the log file (e.g. "api-operations"). A ".log", ".csv"
        or ".xlsx" suffix selects the format when config.fileType is unset.
    entry:
        {"level": "INFO", "message": "...", "metadata": {...},
         "userId": "...", "sessionId": "...", "requestId": "..."}
    config:
        Optional {"containerName", "directory", "maxFileSize", "rotateDaily",
        "fileType", "dynamicColumns"}.

    Returns
    -------
    dict:
        {"message": str, "fileName": str, "requestId": str}
    """
    return await append_log_impl(file_name=file_name, entry=entry, config=config)


@mcp.tool()
async def append_bulk_logs(
    file_name: str,
    entries: list[dict[str, Any]],
    config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Append a batch of entries in one write.

    Each entry may carry an ISO-8601 "timestamp"; otherwise the write time
    is used. The batch is validated as a whole before anything is written.
    """
    return await append_bulk_logs_impl(file_name=file_name, entries=entries, config=config)


@mcp.tool()
async def read_logs(file_name: str, config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the full content of the current log file.

    Spreadsheet files are returned as one JSON object per row.
    """
    return await read_logs_impl(file_name=file_name, config=config)


@mcp.tool()
async def get_log_file_stats(
    file_name: str, config: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Return existence, size and timestamps of the current log file."""
    return await get_log_file_stats_impl(file_name=file_name, config=config)


@mcp.tool()
def get_supported_formats() -> list[dict[str, Any]]:
    """List the supported log file formats."""
    return get_supported_formats_impl()


@mcp.tool()
def validate_logging_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate a logging configuration without touching storage."""
    return validate_logging_config_impl(config=config)


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

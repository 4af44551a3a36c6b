"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_blob_logging_server.core.factory import SUPPORTED_FORMATS
from mcp_blob_logging_server.core.models import LogFileConfig
from mcp_blob_logging_server.core.settings import STORAGE_ROOT_ENV


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://blob-logging/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs and tools."""
        return (
            "Resources:\n"
            "- app://blob-logging/help\n"
            "- app://blob-logging/formats\n"
            "- app://blob-logging/schemas/log-file-config\n"
            "\nTools: append_log, append_bulk_logs, read_logs, get_log_file_stats,\n"
            "get_supported_formats, validate_logging_config\n"
            f"\nStorage: {STORAGE_ROOT_ENV} selects a local directory; unset keeps logs in memory.\n"
        )

    @mcp.resource("app://blob-logging/formats")
    def formats() -> list[dict[str, Any]]:
        """Return the supported file formats."""
        return [fmt.to_dict() for fmt in SUPPORTED_FORMATS]

    @mcp.resource("app://blob-logging/schemas/log-file-config")
    def log_file_config_schema() -> dict[str, Any]:
        """Return the JSON schema for the log file configuration."""
        return LogFileConfig.model_json_schema(by_alias=True)

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from mcp_blob_logging_server.core.errors import BlobLoggingError
from mcp_blob_logging_server.core.models import LogFileType, LogLevel
from mcp_blob_logging_server.core.settings import BlobLoggingSettings, build_service
from mcp_blob_logging_server.tools.logging_tools import (
    append_bulk_logs_impl,
    append_log_impl,
    get_log_file_stats_impl,
    get_supported_formats_impl,
    read_logs_impl,
    validate_logging_config_impl,
)


def _json_object(s: str) -> dict[str, Any]:
    try:
        value = json.loads(s)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"Invalid JSON: {e.msg}") from e
    if not isinstance(value, dict):
        raise argparse.ArgumentTypeError("Expected a JSON object")
    return value


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--container", dest="container_name", default=None, help="Container name (default: logs)")
    p.add_argument("--directory", default=None, help="Directory inside the container (default: application)")
    p.add_argument("--max-file-size", type=float, default=None, help="Rotation threshold in MB (default: 100)")
    p.add_argument("--file-type", choices=[t.value for t in LogFileType], default=None)
    p.add_argument("--dynamic-columns", action="store_true", help="Use metadata keys as CSV/XLSX columns")


def _config_from_args(args: argparse.Namespace) -> dict[str, Any] | None:
    cfg: dict[str, Any] = {}
    if args.container_name is not None:
        cfg["containerName"] = args.container_name
    if args.directory is not None:
        cfg["directory"] = args.directory
    if args.max_file_size is not None:
        cfg["maxFileSize"] = args.max_file_size
    if args.file_type is not None:
        cfg["fileType"] = args.file_type
    if args.dynamic_columns:
        cfg["dynamicColumns"] = True
    return cfg or None


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="blob-logging",
        description="Append to and read structured log files kept in blob storage.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")
    sub = p.add_subparsers(dest="command", required=True)

    ap = sub.add_parser("append", help="Append one entry")
    ap.add_argument("file_name")
    ap.add_argument("message")
    ap.add_argument("--level", choices=[lvl.value for lvl in LogLevel], default=LogLevel.INFO.value)
    ap.add_argument("--metadata", type=_json_object, default=None, help="JSON object")
    ap.add_argument("--user-id", default=None)
    ap.add_argument("--session-id", default=None)
    ap.add_argument("--request-id", default=None)
    _add_config_args(ap)

    bp = sub.add_parser("append-bulk", help="Append JSON lines from stdin as one batch")
    bp.add_argument("file_name")
    _add_config_args(bp)

    rp = sub.add_parser("read", help="Print the current log file")
    rp.add_argument("file_name")
    _add_config_args(rp)

    sp = sub.add_parser("stats", help="Print log file stats as JSON")
    sp.add_argument("file_name")
    _add_config_args(sp)

    sub.add_parser("formats", help="List supported formats")

    vp = sub.add_parser("validate", help="Validate a JSON logging configuration")
    vp.add_argument("config", type=_json_object)

    return p


def _read_bulk_entries(stream: Any) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for line_no, line in enumerate(stream, start=1):
        if not line.strip():
            continue
        try:
            value = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"stdin line {line_no}: invalid JSON ({e.msg})") from e
        if not isinstance(value, dict):
            raise ValueError(f"stdin line {line_no}: expected a JSON object")
        entries.append(value)
    return entries


async def _run(args: argparse.Namespace) -> Any:
    if args.command == "validate":
        return validate_logging_config_impl(config=args.config)

    service = build_service(BlobLoggingSettings.from_env())
    if args.command == "formats":
        return get_supported_formats_impl(service=service)

    config = _config_from_args(args)
    if args.command == "append":
        entry = {
            "level": args.level,
            "message": args.message,
            "metadata": args.metadata,
            "userId": args.user_id,
            "sessionId": args.session_id,
            "requestId": args.request_id,
        }
        return await append_log_impl(file_name=args.file_name, entry=entry, config=config, service=service)
    if args.command == "append-bulk":
        entries = _read_bulk_entries(sys.stdin)
        return await append_bulk_logs_impl(
            file_name=args.file_name, entries=entries, config=config, service=service
        )
    if args.command == "read":
        out = await read_logs_impl(file_name=args.file_name, config=config, service=service)
        return out["content"]
    return await get_log_file_stats_impl(file_name=args.file_name, config=config, service=service)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        result = asyncio.run(_run(args))
    except (BlobLoggingError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if isinstance(result, str):
        sys.stdout.write(result if result.endswith("\n") else result + "\n")
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

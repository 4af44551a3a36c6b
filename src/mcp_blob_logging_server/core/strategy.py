"""Formatter + writer composition for one logical log file."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence

from .errors import StrategyNotInitializedError, ValidationError
from .formatters.base import LogFormatter
from .models import BulkLogEntry, LogEntry, LogFileConfig, LogFileStats, LogFileType
from .writers.base import LogWriter

logger = logging.getLogger(__name__)

_KNOWN_EXTENSION = re.compile(r"\.(log|csv|xlsx)$")


def blob_file_name(file_name: str, file_type: LogFileType) -> str:
    """Replace a known extension on ``file_name`` with the one for ``file_type``."""
    return _KNOWN_EXTENSION.sub("", file_name) + file_type.extension


class LogStrategy:
    """Drive a formatter and a writer for one logical log file.

    A fresh (zero-byte) blob is owed a header. In static mode the header is
    written as soon as the blob is opened; in dynamic-column mode it waits
    for the first append so that entry's metadata keys can become the
    columns. Rotation resets the formatter and makes the header owed again.

    Appends are serialized per strategy: the regenerating writer rebuilds
    the whole blob from its row buffer, and the pending header must be
    written once.
    """

    def __init__(self, file_type: LogFileType, formatter: LogFormatter, writer: LogWriter) -> None:
        self._file_type = file_type
        self._formatter = formatter
        self._writer = writer
        self._config: LogFileConfig | None = None
        self._header_pending = False
        self._write_lock = asyncio.Lock()

    @property
    def file_type(self) -> LogFileType:
        return self._file_type

    @property
    def formatter(self) -> LogFormatter:
        return self._formatter

    @property
    def writer(self) -> LogWriter:
        return self._writer

    @property
    def file_name(self) -> str:
        return self._writer.file_name

    @property
    def initialized(self) -> bool:
        return self._config is not None

    async def initialize(self, file_name: str, config: LogFileConfig) -> None:
        await self._writer.initialize(blob_file_name(file_name, self._file_type), config)
        self._config = config

        stats = await self._writer.get_stats()
        self._header_pending = stats.exists and not stats.size_bytes
        if not config.dynamic_columns:
            await self._write_pending_header(None)

    async def append_log(self, entry: LogEntry) -> None:
        self._ensure_initialized()
        self._validate(entry)

        async with self._write_lock:
            await self._rotate_if_needed()
            await self._write_pending_header(entry)

            content = self._formatter.format_entry(entry)
            await self._writer.write_entry(content)

    async def append_bulk_logs(self, entries: Sequence[BulkLogEntry]) -> None:
        self._ensure_initialized()
        for entry in entries:
            self._validate(entry)
        if not entries:
            return

        async with self._write_lock:
            await self._rotate_if_needed()
            await self._write_pending_header(entries[0])

            content = self._formatter.format_bulk_entries(entries)
            await self._writer.write_bulk(content)

    async def read_logs(self) -> str:
        self._ensure_initialized()
        return await self._writer.read_content()

    async def get_log_file_stats(self) -> LogFileStats:
        self._ensure_initialized()
        stats = await self._writer.get_stats()
        return LogFileStats.from_blob_stats(stats, self._file_type)

    def _ensure_initialized(self) -> LogFileConfig:
        if self._config is None:
            raise StrategyNotInitializedError("Strategy not initialized. Call initialize() first.")
        return self._config

    def _validate(self, entry: LogEntry) -> None:
        if not self._formatter.validate_entry(entry):
            raise ValidationError(f"Invalid log entry for {self._file_type.value.upper()} format")

    async def _rotate_if_needed(self) -> None:
        if not await self._writer.needs_rotation():
            return

        previous = self._writer.file_name
        new_name = await self._writer.rotate()
        logger.info("Log file rotated from %s to %s", previous, new_name)

        self._formatter.reset_dynamic_mode()
        self._header_pending = True
        if not self._ensure_initialized().dynamic_columns:
            await self._write_pending_header(None)

    async def _write_pending_header(self, sample: LogEntry | None) -> None:
        if not self._header_pending:
            return
        config = self._ensure_initialized()
        header = self._formatter.format_header(config.dynamic_columns, sample)
        if header:
            await self._writer.write_entry(header)
        self._header_pending = False

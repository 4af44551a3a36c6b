"""Logging facade: cached strategies, config validation, error normalization.

This is the entry point callers (MCP tools, CLI) talk to.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from numbers import Real
from typing import Any

from pydantic.alias_generators import to_camel

from .errors import LoggingOperationError, ValidationError
from .factory import LogStrategyFactory
from .models import (
    BulkLogEntry,
    ConfigValidationResult,
    LogEntry,
    LogFileConfig,
    LogFileStats,
    LogFileType,
    SupportedFormat,
)
from .strategy import LogStrategy

logger = logging.getLogger(__name__)

_CONTAINER_NAME = re.compile(r"^[a-z0-9]([a-z0-9\-]*[a-z0-9])?$")

MAX_FILE_SIZE_MB: dict[LogFileType, int] = {
    LogFileType.LOG: 50_000,
    LogFileType.CSV: 50_000,
    LogFileType.XLSX: 2_048,
}

CacheKey = tuple[str, LogFileConfig]


class StrategyCache:
    """Initialized strategies keyed by ``(file_name, config)``.

    Concurrent first requests for the same key share one construction.
    """

    def __init__(self) -> None:
        self._strategies: dict[CacheKey, LogStrategy] = {}
        self._locks: dict[CacheKey, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._strategies)

    def __contains__(self, key: object) -> bool:
        return key in self._strategies

    async def get_or_create(
        self, key: CacheKey, build: Callable[[], Awaitable[LogStrategy]]
    ) -> LogStrategy:
        strategy = self._strategies.get(key)
        if strategy is not None:
            return strategy

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            strategy = self._strategies.get(key)
            if strategy is None:
                strategy = await build()
                self._strategies[key] = strategy
        return strategy

    def clear(self) -> None:
        self._strategies.clear()
        self._locks.clear()


def _config_value(config: LogFileConfig | Mapping[str, Any], name: str) -> Any:
    if isinstance(config, LogFileConfig):
        return getattr(config, name)
    camel = to_camel(name)
    if camel in config:
        return config[camel]
    return config.get(name)


def validate_logging_config(config: LogFileConfig | Mapping[str, Any]) -> ConfigValidationResult:
    """Check a configuration without touching storage.

    Accepts a ``LogFileConfig`` or a raw mapping with camelCase or
    snake_case keys, so invalid input can be reported before parsing.
    """
    errors: list[str] = []

    container_name = _config_value(config, "container_name")
    if container_name and not (
        isinstance(container_name, str) and _CONTAINER_NAME.fullmatch(container_name)
    ):
        errors.append("Container name must be lowercase alphanumeric with hyphens")

    directory = _config_value(config, "directory")
    if directory and ".." in str(directory):
        errors.append('Directory path cannot contain ".." for security reasons')

    raw_file_type = _config_value(config, "file_type")
    file_type: LogFileType | None = None
    if raw_file_type:
        try:
            file_type = LogFileType(raw_file_type)
        except ValueError:
            errors.append(f"File type {raw_file_type} is not supported")

    max_file_size = _config_value(config, "max_file_size")
    if max_file_size is not None:
        effective_type = file_type or LogFileType.LOG
        limit = MAX_FILE_SIZE_MB[effective_type]
        numeric = isinstance(max_file_size, Real) and not isinstance(max_file_size, bool)
        if not numeric or not 0 < max_file_size <= limit:
            errors.append(
                f"Max file size for {effective_type.value} files "
                f"must be greater than 0 and at most {limit}MB"
            )

    return ConfigValidationResult(is_valid=not errors, errors=errors)


class BlobLoggingService:
    """Append and read logical log files through cached strategies.

    Every public operation fails with ``LoggingOperationError`` whose
    message starts with an operation prefix and whose ``__cause__`` is the
    original error. Nothing is retried or suppressed.
    """

    def __init__(self, factory: LogStrategyFactory, cache: StrategyCache | None = None) -> None:
        self._factory = factory
        self._cache = cache if cache is not None else StrategyCache()

    @property
    def cache(self) -> StrategyCache:
        return self._cache

    async def append_log(
        self, file_name: str, entry: LogEntry, config: LogFileConfig | None = None
    ) -> None:
        try:
            strategy = await self._get_strategy(file_name, config)
            await strategy.append_log(entry)
        except Exception as exc:
            raise self._failure("append log", file_name, exc) from exc

    async def append_bulk_logs(
        self,
        file_name: str,
        entries: Sequence[BulkLogEntry],
        config: LogFileConfig | None = None,
    ) -> None:
        try:
            strategy = await self._get_strategy(file_name, config)
            await strategy.append_bulk_logs(entries)
        except Exception as exc:
            raise self._failure("append bulk logs", file_name, exc) from exc

    async def read_logs(self, file_name: str, config: LogFileConfig | None = None) -> str:
        try:
            strategy = await self._get_strategy(file_name, config)
            return await strategy.read_logs()
        except Exception as exc:
            raise self._failure("read logs", file_name, exc) from exc

    async def get_log_file_stats(
        self, file_name: str, config: LogFileConfig | None = None
    ) -> LogFileStats:
        try:
            strategy = await self._get_strategy(file_name, config)
            return await strategy.get_log_file_stats()
        except Exception as exc:
            raise self._failure("get log file stats", file_name, exc) from exc

    def clear_strategy_cache(self) -> None:
        logger.info("Clearing %d cached strategies", len(self._cache))
        self._cache.clear()

    def get_supported_formats(self) -> list[SupportedFormat]:
        return self._factory.get_supported_formats()

    def validate_logging_config(
        self, config: LogFileConfig | Mapping[str, Any]
    ) -> ConfigValidationResult:
        return validate_logging_config(config)

    async def _get_strategy(self, file_name: str, config: LogFileConfig | None) -> LogStrategy:
        cfg = config if config is not None else LogFileConfig()

        async def build() -> LogStrategy:
            validation = validate_logging_config(cfg)
            if not validation.is_valid:
                raise ValidationError(
                    f"Invalid logging configuration: {', '.join(validation.errors)}"
                )
            strategy = self._factory.create_strategy(file_name, cfg)
            await strategy.initialize(file_name, cfg)
            logger.info(
                "Initialized %s strategy for %s/%s",
                strategy.file_type.value,
                cfg.container_name,
                cfg.blob_path(strategy.file_name),
            )
            return strategy

        return await self._cache.get_or_create((file_name, cfg), build)

    @staticmethod
    def _failure(operation: str, file_name: str, exc: Exception) -> LoggingOperationError:
        logger.exception("Failed to %s for %s", operation, file_name)
        return LoggingOperationError(operation, exc)

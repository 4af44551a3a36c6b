"""Strategy selection by file type."""

from __future__ import annotations

from collections.abc import Callable

from ..storage.base import ObjectStore
from ..storage.grants import CredentialService
from .errors import ValidationError
from .formatters import DelimitedLogFormatter, SpreadsheetLogFormatter, TraditionalLogFormatter
from .formatters.base import LogFormatter
from .models import LogFileConfig, LogFileType, SupportedFormat
from .strategy import LogStrategy
from .writers import AppendBlobWriter, RegeneratingBlobWriter
from .writers.base import DEFAULT_GRANT_TTL_MINUTES

SUPPORTED_FORMATS: tuple[SupportedFormat, ...] = (
    SupportedFormat(
        file_type=LogFileType.LOG,
        extension=".log",
        supports_append=True,
        description="Traditional log format with structured text entries",
    ),
    SupportedFormat(
        file_type=LogFileType.CSV,
        extension=".csv",
        supports_append=True,
        description="Comma-separated values format for data analysis",
    ),
    SupportedFormat(
        file_type=LogFileType.XLSX,
        extension=".xlsx",
        supports_append=False,
        description="Excel spreadsheet format for rich data presentation",
    ),
)

_FORMATTERS: dict[LogFileType, Callable[[], LogFormatter]] = {
    LogFileType.LOG: TraditionalLogFormatter,
    LogFileType.CSV: DelimitedLogFormatter,
    LogFileType.XLSX: SpreadsheetLogFormatter,
}

_REGENERATING_TYPES = frozenset({LogFileType.XLSX})


def determine_file_type(file_name: str, config: LogFileConfig | None = None) -> LogFileType:
    """Explicit ``config.file_type`` wins, then the extension, then LOG."""
    if config is not None and config.file_type is not None:
        return config.file_type
    if file_name.endswith(".csv"):
        return LogFileType.CSV
    if file_name.endswith(".xlsx"):
        return LogFileType.XLSX
    return LogFileType.LOG


class LogStrategyFactory:
    def __init__(
        self,
        store: ObjectStore,
        credentials: CredentialService,
        *,
        grant_ttl_minutes: int = DEFAULT_GRANT_TTL_MINUTES,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._grant_ttl_minutes = grant_ttl_minutes

    def create_strategy(self, file_name: str, config: LogFileConfig | None = None) -> LogStrategy:
        """Build an uninitialized strategy for ``file_name``."""
        file_type = determine_file_type(file_name, config)
        if not self.is_file_type_supported(file_type):
            raise ValidationError(f"File type {file_type.value} is not supported")

        formatter = _FORMATTERS[file_type]()
        writer_cls = (
            RegeneratingBlobWriter if file_type in _REGENERATING_TYPES else AppendBlobWriter
        )
        writer = writer_cls(
            self._store,
            self._credentials,
            file_type,
            grant_ttl_minutes=self._grant_ttl_minutes,
        )
        return LogStrategy(file_type, formatter, writer)

    def get_supported_file_types(self) -> list[LogFileType]:
        return [fmt.file_type for fmt in SUPPORTED_FORMATS]

    def is_file_type_supported(self, file_type: LogFileType | str) -> bool:
        try:
            return LogFileType(file_type) in _FORMATTERS
        except ValueError:
            return False

    def get_supported_formats(self) -> list[SupportedFormat]:
        return list(SUPPORTED_FORMATS)

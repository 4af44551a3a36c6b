"""Core data models for blob logging."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LogLevel(str, Enum):
    """Severity levels accepted by the writer."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"


class LogFileType(str, Enum):
    """Persisted log representations."""

    LOG = "log"
    CSV = "csv"
    XLSX = "xlsx"

    @property
    def extension(self) -> str:
        return f".{self.value}"


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A single log record submitted by a caller.

    Construction does not validate; formatters decide validity through
    ``validate_entry`` so invalid input can be reported before any I/O.
    """

    level: LogLevel | None
    message: str | None
    metadata: Mapping[str, Any] | None = None
    user_id: str | None = None
    session_id: str | None = None
    request_id: str | None = None


@dataclass(frozen=True, slots=True)
class BulkLogEntry(LogEntry):
    """LogEntry with an optional client-supplied timestamp."""

    timestamp: datetime | None = None


class LogFileConfig(BaseModel):
    """Where and how a logical log file is written.

    Instances are frozen and hashable so they can take part in cache keys.
    ``file_type`` left unset means "infer from the file name".
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    container_name: str = "logs"
    directory: str = "application"
    max_file_size: float = Field(default=100, description="Rotation threshold in MB.")
    rotate_daily: bool = Field(default=True, description="Informational; rotation is size based.")
    file_type: LogFileType | None = None
    dynamic_columns: bool = False

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size * 1024 * 1024)

    def blob_path(self, blob_name: str) -> str:
        """Return the blob path of ``blob_name`` inside the configured directory."""
        directory = self.directory.strip("/")
        return f"{directory}/{blob_name}" if directory else blob_name


@dataclass(frozen=True, slots=True)
class BlobStats:
    """Writer-level view of the current blob."""

    exists: bool
    size_bytes: int | None = None
    size_mb: float | None = None
    last_modified: datetime | None = None
    created_at: str | None = None


@dataclass(frozen=True, slots=True)
class LogFileStats:
    """Stats returned by the facade for a logical log file."""

    exists: bool
    file_type: LogFileType
    size_bytes: int | None = None
    size_mb: float | None = None
    last_modified: datetime | None = None
    created_at: str | None = None

    @classmethod
    def from_blob_stats(cls, stats: BlobStats, file_type: LogFileType) -> LogFileStats:
        return cls(file_type=file_type, **asdict(stats))

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form; absent fields are omitted."""
        out: dict[str, Any] = {"exists": self.exists, "fileType": self.file_type.value}
        if self.size_bytes is not None:
            out["sizeBytes"] = self.size_bytes
        if self.size_mb is not None:
            out["sizeMB"] = self.size_mb
        if self.last_modified is not None:
            out["lastModified"] = self.last_modified.isoformat()
        if self.created_at is not None:
            out["createdAt"] = self.created_at
        return out


@dataclass(frozen=True, slots=True)
class SupportedFormat:
    file_type: LogFileType
    extension: str
    supports_append: bool
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileType": self.file_type.value,
            "extension": self.extension,
            "supportsAppend": self.supports_append,
            "description": self.description,
        }


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)

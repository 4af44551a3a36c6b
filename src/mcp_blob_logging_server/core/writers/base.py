"""Writer interface and helpers shared by both writers."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Protocol

from ...storage.base import (
    AccessDeniedError,
    BlobClient,
    BlobNotFoundError,
    BlobProperties,
    ContainerNotFoundError,
    ObjectStore,
)
from ...storage.grants import CredentialService, Permission
from ..clock import iso_timestamp, rotation_suffix
from ..errors import AccessError, ContainerMissingError, NotFoundError, StrategyNotInitializedError
from ..models import BlobStats, LogFileConfig, LogFileType

logger = logging.getLogger(__name__)

DEFAULT_GRANT_TTL_MINUTES = 60
SERVICE_NAME = "LoggingService"
SERVICE_VERSION = "2.0"
EMPTY_FILE_MESSAGE = "Log file exists but is empty"

CONTENT_TYPES: dict[LogFileType, str] = {
    LogFileType.LOG: "text/plain; charset=utf-8",
    LogFileType.CSV: "text/csv; charset=utf-8",
    LogFileType.XLSX: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

_ROTATED_SUFFIX = re.compile(r"-rotated-[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9-]+Z$")


class LogWriter(Protocol):
    """Owns the physical blob behind a logical log file."""

    @property
    def file_name(self) -> str:
        """Current blob name (changes on rotation)."""
        ...

    async def initialize(self, file_name: str, config: LogFileConfig) -> None: ...

    async def write_entry(self, content: str) -> None: ...

    async def write_bulk(self, content: str) -> None: ...

    async def needs_rotation(self) -> bool: ...

    async def rotate(self) -> str: ...

    async def get_stats(self) -> BlobStats: ...

    async def read_content(self) -> str: ...


def creation_metadata(file_type: LogFileType) -> dict[str, str]:
    return {
        "createdBy": SERVICE_NAME,
        "createdAt": iso_timestamp(),
        "logType": "application-log",
        "fileType": file_type.value,
        "serviceVersion": SERVICE_VERSION,
    }


def rotated_file_name(file_name: str) -> str:
    """``audit.csv`` -> ``audit-rotated-2025-01-02T03-04-05-678Z.csv``.

    A previous rotation suffix is replaced rather than stacked.
    """
    stem, dot, ext = file_name.rpartition(".")
    if not dot:
        stem, ext = file_name, ""
    stem = _ROTATED_SUFFIX.sub("", stem)
    suffix = f".{ext}" if ext else ""
    return f"{stem}-rotated-{rotation_suffix()}{suffix}"


def stats_from_properties(props: BlobProperties) -> BlobStats:
    return BlobStats(
        exists=True,
        size_bytes=props.size,
        size_mb=props.size / (1024 * 1024),
        last_modified=props.last_modified,
        created_at=props.metadata.get("createdAt"),
    )


@contextmanager
def storage_errors(container_name: str, blob_name: str | None = None) -> Iterator[None]:
    """Translate backend errors into the engine's error taxonomy."""
    try:
        yield
    except ContainerNotFoundError as exc:
        raise ContainerMissingError(container_name) from exc
    except AccessDeniedError as exc:
        raise AccessError(f"Error accessing log file: {exc}") from exc
    except BlobNotFoundError as exc:
        raise NotFoundError(f"Log file '{blob_name or exc.path}' does not exist") from exc


async def open_blob(
    store: ObjectStore,
    credentials: CredentialService,
    config: LogFileConfig,
    file_name: str,
    permissions: Iterable[Permission],
    ttl_minutes: int,
) -> BlobClient:
    """Request a scoped grant for ``file_name`` and open a client with it."""
    blob_path = config.blob_path(file_name)
    with storage_errors(config.container_name, file_name):
        grant = await credentials.grant_access(
            config.container_name, blob_path, permissions, ttl_minutes
        )
    logger.debug(
        "Granted %s on %s/%s until %s",
        "".join(sorted(p.value for p in grant.permissions)),
        config.container_name,
        blob_path,
        grant.expires_at.isoformat(),
    )
    return store.blob_client(grant)


async def probe_size_exceeds(blob: BlobClient, config: LogFileConfig) -> bool:
    """Size-based rotation check; a failing probe means "no rotation"."""
    try:
        props = await blob.get_properties()
    except Exception as exc:
        logger.warning("Size probe failed for %s: %s", blob.path, exc)
        return False
    return props.size >= config.max_file_size_bytes


async def probe_stats(blob: BlobClient) -> BlobStats:
    try:
        if not await blob.exists():
            return BlobStats(exists=False)
        return stats_from_properties(await blob.get_properties())
    except Exception as exc:
        logger.warning("Could not read stats for %s: %s", blob.path, exc)
        return BlobStats(exists=False)


def require_initialized(blob: BlobClient | None, config: LogFileConfig | None) -> tuple[BlobClient, LogFileConfig]:
    if blob is None or config is None:
        raise StrategyNotInitializedError("Writer not initialized. Call initialize() first.")
    return blob, config

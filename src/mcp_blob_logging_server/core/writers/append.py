"""Append-optimized writer for line-oriented formats (``.log``, ``.csv``)."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ...storage.base import MAX_APPEND_BLOCK_BYTES, BlobClient, ObjectStore
from ...storage.grants import CredentialService, Permission
from ..errors import EntryTooLargeError, NotFoundError
from ..models import BlobStats, LogFileConfig, LogFileType
from .base import (
    CONTENT_TYPES,
    DEFAULT_GRANT_TTL_MINUTES,
    EMPTY_FILE_MESSAGE,
    creation_metadata,
    open_blob,
    probe_size_exceeds,
    probe_stats,
    require_initialized,
    rotated_file_name,
    storage_errors,
)

logger = logging.getLogger(__name__)

APPEND_PERMISSIONS = (Permission.READ, Permission.WRITE, Permission.CREATE, Permission.ADD)


def iter_chunks(data: bytes, chunk_size: int) -> Iterator[bytes]:
    """Split ``data`` into ordered byte slices of at most ``chunk_size``."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    for offset in range(0, len(data), chunk_size):
        yield data[offset : offset + chunk_size]


class AppendBlobWriter:
    """Writes through the backend's atomic append primitive.

    Single entries larger than the per-call ceiling are rejected; bulk
    payloads are cut into sequential chunks. Chunks are byte cuts, not
    record aligned.
    """

    def __init__(
        self,
        store: ObjectStore,
        credentials: CredentialService,
        file_type: LogFileType,
        *,
        grant_ttl_minutes: int = DEFAULT_GRANT_TTL_MINUTES,
        max_block_bytes: int = MAX_APPEND_BLOCK_BYTES,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._file_type = file_type
        self._grant_ttl_minutes = grant_ttl_minutes
        self._max_block_bytes = max_block_bytes
        self._file_name = ""
        self._config: LogFileConfig | None = None
        self._blob: BlobClient | None = None
        self.exists = False
        self.last_known_size = 0

    @property
    def file_name(self) -> str:
        return self._file_name

    async def initialize(self, file_name: str, config: LogFileConfig) -> None:
        blob = await open_blob(
            self._store,
            self._credentials,
            config,
            file_name,
            APPEND_PERMISSIONS,
            self._grant_ttl_minutes,
        )
        with storage_errors(config.container_name, file_name):
            if await blob.exists():
                self.last_known_size = (await blob.get_properties()).size
            else:
                await blob.create_append_blob(
                    content_type=CONTENT_TYPES[self._file_type],
                    metadata=creation_metadata(self._file_type),
                )
                logger.info("Created append blob %s", blob.path)
                self.last_known_size = 0

        self._file_name = file_name
        self._config = config
        self._blob = blob
        self.exists = True

    async def write_entry(self, content: str) -> None:
        blob, config = require_initialized(self._blob, self._config)
        data = content.encode("utf-8")
        if len(data) > self._max_block_bytes:
            raise EntryTooLargeError(len(data), self._max_block_bytes)
        with storage_errors(config.container_name, self._file_name):
            await blob.append_block(data)
        self.last_known_size += len(data)

    async def write_bulk(self, content: str) -> None:
        blob, config = require_initialized(self._blob, self._config)
        data = content.encode("utf-8")
        if not data:
            return

        chunks = list(iter_chunks(data, self._max_block_bytes))
        if len(chunks) > 1:
            logger.debug(
                "Writing %d bytes to %s in %d chunks", len(data), blob.path, len(chunks)
            )
        with storage_errors(config.container_name, self._file_name):
            for chunk in chunks:
                await blob.append_block(chunk)
                self.last_known_size += len(chunk)

    async def needs_rotation(self) -> bool:
        blob, config = require_initialized(self._blob, self._config)
        return await probe_size_exceeds(blob, config)

    async def rotate(self) -> str:
        _, config = require_initialized(self._blob, self._config)
        new_name = rotated_file_name(self._file_name)
        await self.initialize(new_name, config)
        return new_name

    async def get_stats(self) -> BlobStats:
        blob, _ = require_initialized(self._blob, self._config)
        stats = await probe_stats(blob)
        self.exists = stats.exists
        if stats.size_bytes is not None:
            self.last_known_size = stats.size_bytes
        return stats

    async def read_content(self) -> str:
        blob, config = require_initialized(self._blob, self._config)
        with storage_errors(config.container_name, self._file_name):
            if not await blob.exists():
                raise NotFoundError(f"Log file '{self._file_name}' does not exist")
            content = (await blob.download()).decode("utf-8", errors="replace")

        if not content.strip():
            return EMPTY_FILE_MESSAGE
        return content

"""Regenerate-on-write writer for binary spreadsheets (``.xlsx``).

The backend cannot append to a zip container, so every write re-renders the
whole workbook from the rows accumulated in memory and replaces the blob.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from zipfile import BadZipFile

from ...storage.base import BlobClient, ObjectStore
from ...storage.grants import CredentialService, Permission
from ..clock import iso_timestamp
from ..errors import BlobLoggingError, NotFoundError, ValidationError
from ..formatters.base import to_json
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
from .workbook import build_workbook, read_workbook_rows

logger = logging.getLogger(__name__)

REGENERATE_PERMISSIONS = (Permission.READ, Permission.WRITE, Permission.CREATE)


def parse_rows(content: str) -> list[str]:
    """Split formatter output into canonical JSON row strings."""
    rows: list[str] = []
    for line in content.splitlines():
        if not line.strip():
            continue
        try:
            row = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Spreadsheet row is not valid JSON: {exc.msg}") from exc
        if not isinstance(row, dict):
            raise ValidationError("Spreadsheet row must be a JSON object")
        rows.append(to_json(row))
    return rows


async def _load_rows(data: bytes, blob_path: str) -> list[dict[str, Any]]:
    try:
        return await asyncio.to_thread(read_workbook_rows, data)
    except (BadZipFile, KeyError, OSError, ValueError) as exc:
        raise BlobLoggingError(f"Existing workbook '{blob_path}' could not be read: {exc}") from exc


class RegeneratingBlobWriter:
    def __init__(
        self,
        store: ObjectStore,
        credentials: CredentialService,
        file_type: LogFileType = LogFileType.XLSX,
        *,
        grant_ttl_minutes: int = DEFAULT_GRANT_TTL_MINUTES,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._file_type = file_type
        self._grant_ttl_minutes = grant_ttl_minutes
        self._file_name = ""
        self._config: LogFileConfig | None = None
        self._blob: BlobClient | None = None
        self._rows: list[str] = []
        self._created_at: str | None = None
        self.exists = False

    @property
    def file_name(self) -> str:
        return self._file_name

    @property
    def rows(self) -> list[str]:
        return list(self._rows)

    async def initialize(self, file_name: str, config: LogFileConfig) -> None:
        blob = await open_blob(
            self._store,
            self._credentials,
            config,
            file_name,
            REGENERATE_PERMISSIONS,
            self._grant_ttl_minutes,
        )
        rows: list[str] = []
        with storage_errors(config.container_name, file_name):
            if await blob.exists():
                props = await blob.get_properties()
                created_at = props.metadata.get("createdAt")
                data = await blob.download()
                rows = [to_json(r) for r in await _load_rows(data, blob.path)]
                logger.info("Loaded %d existing rows from %s", len(rows), blob.path)
            else:
                metadata = creation_metadata(self._file_type)
                created_at = metadata["createdAt"]
                await blob.upload(
                    b"", content_type=CONTENT_TYPES[self._file_type], metadata=metadata
                )
                logger.info("Created workbook blob %s", blob.path)

        self._file_name = file_name
        self._config = config
        self._blob = blob
        self._rows = rows
        self._created_at = created_at
        self.exists = True

    async def write_entry(self, content: str) -> None:
        await self._write(content)

    async def write_bulk(self, content: str) -> None:
        await self._write(content)

    async def _write(self, content: str) -> None:
        blob, config = require_initialized(self._blob, self._config)
        new_rows = parse_rows(content)
        if not new_rows:
            return

        rows = self._rows + new_rows
        data = await asyncio.to_thread(build_workbook, [json.loads(r) for r in rows])
        metadata = {
            **creation_metadata(self._file_type),
            "createdAt": self._created_at or iso_timestamp(),
            "lastUpdated": iso_timestamp(),
            "entriesCount": str(len(rows)),
        }
        with storage_errors(config.container_name, self._file_name):
            await blob.upload(data, content_type=CONTENT_TYPES[self._file_type], metadata=metadata)

        self._rows = rows
        logger.debug("Regenerated %s with %d rows (%d bytes)", blob.path, len(rows), len(data))

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
        return stats

    async def read_content(self) -> str:
        blob, config = require_initialized(self._blob, self._config)
        with storage_errors(config.container_name, self._file_name):
            if not await blob.exists():
                raise NotFoundError(f"Log file '{self._file_name}' does not exist")
            data = await blob.download()

        rows = await _load_rows(data, blob.path)
        if not rows:
            return EMPTY_FILE_MESSAGE
        return "\n".join(to_json(r) for r in rows)

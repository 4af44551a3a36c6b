"""Filesystem-backed object store.

Layout under ``root``:

- ``<container>/<blob path>``: blob content
- ``.blobmeta/<container>/<blob path>.json``: blob type, content type, metadata

A container is a top-level directory; it must exist unless the store was
created with ``auto_create_containers=True``.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path

import aiofiles
import aiofiles.os

from .base import (
    MAX_APPEND_BLOCK_BYTES,
    AccessDeniedError,
    BlobNotFoundError,
    BlobProperties,
    BlobType,
    ContainerNotFoundError,
    PayloadTooLargeError,
    authorize,
)
from .grants import AccessGrant, Permission

META_DIR = ".blobmeta"


class LocalObjectStore:
    def __init__(self, root: str | Path, *, auto_create_containers: bool = False) -> None:
        self.root = Path(root).expanduser().resolve()
        self.auto_create_containers = auto_create_containers

    def blob_client(self, grant: AccessGrant) -> LocalBlobClient:
        return LocalBlobClient(self, grant)

    def _safe_resolve(self, base: Path, relative: str) -> Path:
        """Resolve ``relative`` under ``base`` and refuse anything that escapes it."""
        p = (base / relative).resolve()
        if base not in p.parents:
            raise AccessDeniedError(f"Path escapes container: {relative}")
        return p


class LocalBlobClient:
    def __init__(self, store: LocalObjectStore, grant: AccessGrant) -> None:
        self._store = store
        self._grant = grant
        container_dir = store._safe_resolve(store.root, grant.container)
        self._container_dir = container_dir
        self._data_path = store._safe_resolve(container_dir, grant.blob_path)
        meta_root = store.root / META_DIR / grant.container
        self._meta_path = store._safe_resolve(meta_root, f"{grant.blob_path}.json")

    @property
    def path(self) -> str:
        return f"{self._grant.container}/{self._grant.blob_path}"

    async def _check_container(self) -> None:
        if await aiofiles.os.path.isdir(self._container_dir):
            return
        if not self._store.auto_create_containers:
            raise ContainerNotFoundError(self._grant.container)
        await aiofiles.os.makedirs(self._container_dir, exist_ok=True)

    async def _read_meta(self) -> dict:
        try:
            async with aiofiles.open(self._meta_path, encoding="utf-8") as f:
                return json.loads(await f.read())
        except FileNotFoundError:
            return {"blobType": BlobType.BLOCK.value, "metadata": {}}

    async def _write_meta(self, blob_type: BlobType, content_type: str, metadata: Mapping[str, str]) -> None:
        await aiofiles.os.makedirs(self._meta_path.parent, exist_ok=True)
        payload = {
            "blobType": blob_type.value,
            "contentType": content_type,
            "metadata": dict(metadata),
        }
        async with aiofiles.open(self._meta_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(payload))

    async def _require_blob(self) -> None:
        await self._check_container()
        if not await aiofiles.os.path.isfile(self._data_path):
            raise BlobNotFoundError(self.path)

    async def exists(self) -> bool:
        authorize(self._grant, Permission.READ)
        await self._check_container()
        return await aiofiles.os.path.isfile(self._data_path)

    async def create_append_blob(
        self, *, content_type: str, metadata: Mapping[str, str]
    ) -> None:
        authorize(self._grant, Permission.CREATE)
        await self._check_container()
        if await aiofiles.os.path.isfile(self._data_path):
            return
        await aiofiles.os.makedirs(self._data_path.parent, exist_ok=True)
        # "xb" keeps a concurrent creator from truncating an existing blob.
        try:
            async with aiofiles.open(self._data_path, "xb"):
                pass
        except FileExistsError:
            return
        await self._write_meta(BlobType.APPEND, content_type, metadata)

    async def append_block(self, data: bytes) -> None:
        authorize(self._grant, Permission.ADD)
        if len(data) > MAX_APPEND_BLOCK_BYTES:
            raise PayloadTooLargeError(len(data))
        await self._require_blob()
        meta = await self._read_meta()
        if meta.get("blobType") != BlobType.APPEND.value:
            raise AccessDeniedError(f"{self.path} is not an append blob")
        async with aiofiles.open(self._data_path, "ab") as f:
            await f.write(data)

    async def upload(
        self, data: bytes, *, content_type: str, metadata: Mapping[str, str]
    ) -> None:
        authorize(self._grant, Permission.WRITE)
        await self._check_container()
        await aiofiles.os.makedirs(self._data_path.parent, exist_ok=True)
        tmp_path = self._data_path.with_name(f".{self._data_path.name}.{os.getpid()}.tmp")
        async with aiofiles.open(tmp_path, "wb") as f:
            await f.write(data)
        await aiofiles.os.replace(tmp_path, self._data_path)
        await self._write_meta(BlobType.BLOCK, content_type, metadata)

    async def get_properties(self) -> BlobProperties:
        authorize(self._grant, Permission.READ)
        await self._require_blob()
        st = await aiofiles.os.stat(self._data_path)
        meta = await self._read_meta()
        return BlobProperties(
            size=st.st_size,
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=UTC),
            blob_type=BlobType(meta.get("blobType", BlobType.BLOCK.value)),
            content_type=meta.get("contentType", "application/octet-stream"),
            metadata=meta.get("metadata", {}),
        )

    async def download(self) -> bytes:
        authorize(self._grant, Permission.READ)
        await self._require_blob()
        async with aiofiles.open(self._data_path, "rb") as f:
            return await f.read()

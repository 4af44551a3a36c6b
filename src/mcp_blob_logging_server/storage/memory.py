"""In-process object store.

Used when no storage root is configured and throughout the test suite. It
enforces the same contract as a real backend: grant checks, container
existence, the append block ceiling and append-vs-block blob types.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

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


@dataclass(slots=True)
class _StoredBlob:
    blob_type: BlobType
    content_type: str
    metadata: dict[str, str]
    data: bytearray = field(default_factory=bytearray)
    last_modified: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemoryObjectStore:
    """Dict-backed store keyed by (container, blob path)."""

    def __init__(self, containers: Iterable[str] = ("logs",)) -> None:
        self._containers: set[str] = set(containers)
        self._blobs: dict[tuple[str, str], _StoredBlob] = {}

    def create_container(self, name: str) -> None:
        self._containers.add(name)

    def list_blobs(self, container: str, prefix: str = "") -> list[str]:
        return sorted(p for c, p in self._blobs if c == container and p.startswith(prefix))

    def blob_client(self, grant: AccessGrant) -> InMemoryBlobClient:
        return InMemoryBlobClient(self, grant)


class InMemoryBlobClient:
    def __init__(self, store: InMemoryObjectStore, grant: AccessGrant) -> None:
        self._store = store
        self._grant = grant
        self._key = (grant.container, grant.blob_path)

    @property
    def path(self) -> str:
        return f"{self._grant.container}/{self._grant.blob_path}"

    def _check_container(self) -> None:
        if self._grant.container not in self._store._containers:
            raise ContainerNotFoundError(self._grant.container)

    def _get(self) -> _StoredBlob:
        self._check_container()
        blob = self._store._blobs.get(self._key)
        if blob is None:
            raise BlobNotFoundError(self.path)
        return blob

    async def exists(self) -> bool:
        authorize(self._grant, Permission.READ)
        self._check_container()
        return self._key in self._store._blobs

    async def create_append_blob(
        self, *, content_type: str, metadata: Mapping[str, str]
    ) -> None:
        authorize(self._grant, Permission.CREATE)
        self._check_container()
        if self._key in self._store._blobs:
            return
        self._store._blobs[self._key] = _StoredBlob(
            blob_type=BlobType.APPEND,
            content_type=content_type,
            metadata=dict(metadata),
        )

    async def append_block(self, data: bytes) -> None:
        authorize(self._grant, Permission.ADD)
        if len(data) > MAX_APPEND_BLOCK_BYTES:
            raise PayloadTooLargeError(len(data))
        blob = self._get()
        if blob.blob_type is not BlobType.APPEND:
            raise AccessDeniedError(f"{self.path} is not an append blob")
        blob.data.extend(data)
        blob.last_modified = datetime.now(UTC)

    async def upload(
        self, data: bytes, *, content_type: str, metadata: Mapping[str, str]
    ) -> None:
        authorize(self._grant, Permission.WRITE)
        self._check_container()
        self._store._blobs[self._key] = _StoredBlob(
            blob_type=BlobType.BLOCK,
            content_type=content_type,
            metadata=dict(metadata),
            data=bytearray(data),
        )

    async def get_properties(self) -> BlobProperties:
        authorize(self._grant, Permission.READ)
        blob = self._get()
        return BlobProperties(
            size=len(blob.data),
            last_modified=blob.last_modified,
            blob_type=blob.blob_type,
            content_type=blob.content_type,
            metadata=dict(blob.metadata),
        )

    async def download(self) -> bytes:
        authorize(self._grant, Permission.READ)
        return bytes(self._get().data)

"""Object store interfaces.

The logging engine never talks to a backend directly: it asks the credential
service for a scoped grant and opens a ``BlobClient`` bound to that grant.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from .grants import AccessGrant, Permission

# Hard per-call ceiling of the append primitive.
MAX_APPEND_BLOCK_BYTES = 4 * 1024 * 1024


class StorageError(Exception):
    """Base class for backend failures."""


class ContainerNotFoundError(StorageError):
    def __init__(self, container: str) -> None:
        super().__init__(f"Container not found: {container}")
        self.container = container


class BlobNotFoundError(StorageError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Blob not found: {path}")
        self.path = path


class AccessDeniedError(StorageError):
    """The grant does not cover the requested operation."""


class PayloadTooLargeError(StorageError):
    def __init__(self, size: int, limit: int = MAX_APPEND_BLOCK_BYTES) -> None:
        super().__init__(f"Append block of {size} bytes exceeds the {limit} byte limit")
        self.size = size
        self.limit = limit


def authorize(grant: AccessGrant, permission: Permission) -> None:
    """Raise AccessDeniedError unless ``grant`` currently allows ``permission``."""
    if not grant.allows(permission):
        raise AccessDeniedError(
            f"Grant for {grant.container}/{grant.blob_path} does not allow "
            f"'{permission.name.lower()}' (or has expired)"
        )


class BlobType(str, Enum):
    APPEND = "append"
    BLOCK = "block"


@dataclass(frozen=True, slots=True)
class BlobProperties:
    size: int
    last_modified: datetime
    blob_type: BlobType
    content_type: str = "application/octet-stream"
    metadata: Mapping[str, str] = field(default_factory=dict)


class BlobClient(Protocol):
    """Operations on a single blob, authorized by one grant."""

    @property
    def path(self) -> str:
        """``{container}/{blob_path}`` of the target blob."""
        ...

    async def exists(self) -> bool: ...

    async def create_append_blob(
        self, *, content_type: str, metadata: Mapping[str, str]
    ) -> None:
        """Create an empty append blob (no-op if one already exists)."""
        ...

    async def append_block(self, data: bytes) -> None:
        """Atomically append ``data`` at the tail (at most MAX_APPEND_BLOCK_BYTES)."""
        ...

    async def upload(
        self, data: bytes, *, content_type: str, metadata: Mapping[str, str]
    ) -> None:
        """Replace the whole object."""
        ...

    async def get_properties(self) -> BlobProperties: ...

    async def download(self) -> bytes: ...


class ObjectStore(Protocol):
    """Backend that hands out grant-bound blob clients."""

    def blob_client(self, grant: AccessGrant) -> BlobClient: ...

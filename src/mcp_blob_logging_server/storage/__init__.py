"""Object storage backends and the access-grant service."""

from __future__ import annotations

from .base import (
    MAX_APPEND_BLOCK_BYTES,
    AccessDeniedError,
    BlobClient,
    BlobNotFoundError,
    BlobProperties,
    BlobType,
    ContainerNotFoundError,
    ObjectStore,
    PayloadTooLargeError,
    StorageError,
)
from .grants import AccessGrant, CredentialService, Permission, SignedAccessGrantService
from .local import LocalObjectStore
from .memory import InMemoryObjectStore

__all__ = [
    "MAX_APPEND_BLOCK_BYTES",
    "AccessDeniedError",
    "AccessGrant",
    "BlobClient",
    "BlobNotFoundError",
    "BlobProperties",
    "BlobType",
    "ContainerNotFoundError",
    "CredentialService",
    "InMemoryObjectStore",
    "LocalObjectStore",
    "ObjectStore",
    "PayloadTooLargeError",
    "Permission",
    "SignedAccessGrantService",
    "StorageError",
]

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from mcp_blob_logging_server.core.factory import LogStrategyFactory
from mcp_blob_logging_server.core.models import LogEntry, LogFileConfig, LogLevel
from mcp_blob_logging_server.core.service import BlobLoggingService
from mcp_blob_logging_server.storage import (
    InMemoryObjectStore,
    LocalObjectStore,
    Permission,
    SignedAccessGrantService,
)
from mcp_blob_logging_server.storage.memory import InMemoryBlobClient


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore(containers=("logs", "audit"))


@pytest.fixture
def local_store(tmp_path: Path) -> LocalObjectStore:
    (tmp_path / "logs").mkdir()
    return LocalObjectStore(tmp_path)


@pytest.fixture
def credentials() -> SignedAccessGrantService:
    return SignedAccessGrantService(
        account_name="testaccount",
        account_key="test-key",
        base_url="https://testaccount.blob.local",
    )


@pytest.fixture
def factory(store: InMemoryObjectStore, credentials: SignedAccessGrantService) -> LogStrategyFactory:
    return LogStrategyFactory(store, credentials)


@pytest.fixture
def service(factory: LogStrategyFactory) -> BlobLoggingService:
    return BlobLoggingService(factory)


@pytest.fixture
def config() -> LogFileConfig:
    return LogFileConfig(container_name="logs", directory="app")


@pytest.fixture
def entry() -> LogEntry:
    return LogEntry(
        level=LogLevel.INFO,
        message="user signed in",
        metadata={"operation": "login", "durationMs": 12},
        user_id="u-1",
        session_id="s-1",
        request_id="r-1",
    )


@pytest.fixture
def append_calls(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    """Record the payload size of every append call made to the in-memory store."""
    sizes: list[int] = []
    original = InMemoryBlobClient.append_block

    async def _counting(self: InMemoryBlobClient, data: bytes) -> None:
        sizes.append(len(data))
        await original(self, data)

    monkeypatch.setattr(InMemoryBlobClient, "append_block", _counting)
    return sizes


@pytest.fixture
def read_blob(store: InMemoryObjectStore, credentials: SignedAccessGrantService) -> Callable:
    """Download a blob directly, bypassing the logging engine."""

    async def _read(container: str, blob_path: str) -> bytes:
        grant = await credentials.grant_access(container, blob_path, [Permission.READ], 5)
        return await store.blob_client(grant).download()

    return _read

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from io import BytesIO

import pytest
from openpyxl import load_workbook

from mcp_blob_logging_server.core.errors import (
    AccessError,
    ContainerMissingError,
    EntryTooLargeError,
    NotFoundError,
    StrategyNotInitializedError,
    ValidationError,
)
from mcp_blob_logging_server.core.models import BlobStats, LogFileConfig, LogFileType
from mcp_blob_logging_server.core.writers import (
    EMPTY_FILE_MESSAGE,
    AppendBlobWriter,
    RegeneratingBlobWriter,
    iter_chunks,
    rotated_file_name,
)
from mcp_blob_logging_server.storage import (
    MAX_APPEND_BLOCK_BYTES,
    AccessGrant,
    InMemoryObjectStore,
    Permission,
    SignedAccessGrantService,
    StorageError,
)
from mcp_blob_logging_server.storage.memory import InMemoryBlobClient

MIB4 = 4 * 1024 * 1024
ROTATED = re.compile(r"^audit-rotated-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z\.log$")


class ReadOnlyCredentials:
    def __init__(self, inner: SignedAccessGrantService) -> None:
        self._inner = inner

    async def grant_access(
        self, container_name: str, blob_path: str, permissions: Iterable[Permission], ttl_minutes: int
    ) -> AccessGrant:
        return await self._inner.grant_access(container_name, blob_path, [Permission.READ], ttl_minutes)


async def _properties(store: InMemoryObjectStore, credentials: SignedAccessGrantService, path: str):
    grant = await credentials.grant_access("logs", path, [Permission.READ], 5)
    return await store.blob_client(grant).get_properties()


def test_iter_chunks_covers_payload() -> None:
    data = bytes(range(256)) * 10
    chunks = list(iter_chunks(data, 1000))
    assert [len(c) for c in chunks] == [1000, 1000, 560]
    assert b"".join(chunks) == data
    assert list(iter_chunks(b"", 10)) == []


def test_rotated_file_name_does_not_stack_suffixes() -> None:
    first = rotated_file_name("audit.log")
    assert ROTATED.match(first)
    second = rotated_file_name(first)
    assert ROTATED.match(second)
    assert second.count("-rotated-") == 1


@pytest.mark.asyncio
async def test_append_writer_creates_blob_with_metadata(store, credentials, config) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.CSV)
    await writer.initialize("audit.csv", config)

    props = await _properties(store, credentials, "app/audit.csv")
    assert props.size == 0
    assert props.content_type == "text/csv; charset=utf-8"
    assert props.metadata["createdBy"] == "LoggingService"
    assert props.metadata["logType"] == "application-log"
    assert props.metadata["fileType"] == "csv"
    assert props.metadata["serviceVersion"] == "2.0"
    assert props.metadata["createdAt"].endswith("Z")


@pytest.mark.asyncio
async def test_bulk_write_splits_into_4mib_chunks(store, credentials, config, append_calls) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    await writer.initialize("audit.log", config)

    payload = "x" * (MIB4 + 1000)
    await writer.write_bulk(payload)

    assert append_calls == [MIB4, 1000]
    assert sum(append_calls) == len(payload.encode("utf-8"))
    stats = await writer.get_stats()
    assert stats.size_bytes == MIB4 + 1000


@pytest.mark.asyncio
async def test_bulk_write_counts_utf8_bytes(store, credentials, config, append_calls) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG, max_block_bytes=10)
    await writer.initialize("audit.log", config)

    await writer.write_bulk("ñ" * 8)

    assert append_calls == [10, 6]


@pytest.mark.asyncio
async def test_oversize_entry_is_rejected_without_append(store, credentials, config, append_calls) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    await writer.initialize("audit.log", config)

    with pytest.raises(EntryTooLargeError) as exc:
        await writer.write_entry("x" * (MIB4 + 1))

    assert append_calls == []
    assert str(exc.value) == f"Log entry too large: {MIB4 + 1} bytes. Max: {MIB4} bytes"


@pytest.mark.asyncio
async def test_entry_at_limit_is_accepted(store, credentials, config, append_calls) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    await writer.initialize("audit.log", config)
    await writer.write_entry("x" * MAX_APPEND_BLOCK_BYTES)
    assert append_calls == [MAX_APPEND_BLOCK_BYTES]


@pytest.mark.asyncio
async def test_needs_rotation_threshold_is_inclusive(store, credentials) -> None:
    config = LogFileConfig(directory="app", max_file_size=0.001)  # 1048 bytes
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    await writer.initialize("audit.log", config)

    await writer.write_entry("x" * 1047)
    assert await writer.needs_rotation() is False

    await writer.write_entry("x")
    assert await writer.needs_rotation() is True


@pytest.mark.asyncio
async def test_needs_rotation_is_false_when_probe_fails(store, credentials, config, monkeypatch) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    await writer.initialize("audit.log", config)

    async def _boom(self):
        raise StorageError("backend unavailable")

    monkeypatch.setattr(InMemoryBlobClient, "get_properties", _boom)
    assert await writer.needs_rotation() is False


@pytest.mark.asyncio
async def test_rotate_opens_a_new_blob(store, credentials, config) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    await writer.initialize("audit.log", config)
    await writer.write_entry("old\n")

    new_name = await writer.rotate()

    assert ROTATED.match(new_name)
    assert writer.file_name == new_name
    assert f"app/{new_name}" in store.list_blobs("logs", "app/")
    assert await writer.read_content() == EMPTY_FILE_MESSAGE


@pytest.mark.asyncio
async def test_stats_report_missing_blob_on_probe_error(store, credentials, config, monkeypatch) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    await writer.initialize("audit.log", config)

    async def _boom(self):
        raise StorageError("backend unavailable")

    monkeypatch.setattr(InMemoryBlobClient, "exists", _boom)
    assert await writer.get_stats() == BlobStats(exists=False)


@pytest.mark.asyncio
async def test_read_content_sentinel_and_missing(store, credentials, config, monkeypatch) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    await writer.initialize("audit.log", config)
    assert await writer.read_content() == "Log file exists but is empty"

    await writer.write_entry("  \n")
    assert await writer.read_content() == EMPTY_FILE_MESSAGE

    await writer.write_entry("hello\n")
    assert await writer.read_content() == "  \nhello\n"

    async def _missing(self):
        return False

    monkeypatch.setattr(InMemoryBlobClient, "exists", _missing)
    with pytest.raises(NotFoundError, match="Log file 'audit.log' does not exist"):
        await writer.read_content()


@pytest.mark.asyncio
async def test_missing_container_is_reported(store, credentials) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    with pytest.raises(ContainerMissingError) as exc:
        await writer.initialize("audit.log", LogFileConfig(container_name="nope"))
    assert str(exc.value) == (
        "Container 'nope' does not exist. Please ensure the container exists before logging."
    )


@pytest.mark.asyncio
async def test_insufficient_grant_is_an_access_error(store, credentials, config) -> None:
    writer = AppendBlobWriter(store, ReadOnlyCredentials(credentials), LogFileType.LOG)
    with pytest.raises(AccessError, match="Error accessing log file"):
        await writer.initialize("audit.log", config)


@pytest.mark.asyncio
async def test_writer_requires_initialize(store, credentials) -> None:
    writer = AppendBlobWriter(store, credentials, LogFileType.LOG)
    with pytest.raises(StrategyNotInitializedError):
        await writer.write_entry("x\n")


def _row(**values) -> str:
    return json.dumps(values) + "\n"


@pytest.mark.asyncio
async def test_regenerating_writer_builds_styled_workbook(store, credentials, config, read_blob) -> None:
    writer = RegeneratingBlobWriter(store, credentials)
    await writer.initialize("report.xlsx", config)
    assert await writer.read_content() == EMPTY_FILE_MESSAGE

    await writer.write_bulk(_row(Timestamp="t1", Message="first") + _row(Timestamp="t2", Message="second"))

    wb = load_workbook(BytesIO(await read_blob("logs", "app/report.xlsx")))
    ws = wb.active
    assert ws.title == "Logs"
    assert [c.value for c in ws[1]] == ["Timestamp", "Message"]
    assert ws["A1"].font.bold is True
    assert ws["A1"].fill.fgColor.rgb.endswith("DDDDDD")
    assert ws.column_dimensions["A"].width == 25
    assert ws["B3"].value == "second"


@pytest.mark.asyncio
async def test_regenerating_writer_columns_are_union_of_keys(store, credentials, config) -> None:
    writer = RegeneratingBlobWriter(store, credentials)
    await writer.initialize("report.xlsx", config)

    await writer.write_entry(_row(a=1))
    await writer.write_entry(_row(b="two"))

    lines = (await writer.read_content()).splitlines()
    assert [json.loads(line) for line in lines] == [{"a": 1, "b": ""}, {"a": "", "b": "two"}]


@pytest.mark.asyncio
async def test_regenerating_writer_reloads_existing_rows(store, credentials, config) -> None:
    first = RegeneratingBlobWriter(store, credentials)
    await first.initialize("report.xlsx", config)
    await first.write_entry(_row(Message="one"))
    created = (await _properties(store, credentials, "app/report.xlsx")).metadata["createdAt"]

    second = RegeneratingBlobWriter(store, credentials)
    await second.initialize("report.xlsx", config)
    assert len(second.rows) == 1
    await second.write_entry(_row(Message="two"))

    lines = (await second.read_content()).splitlines()
    assert [json.loads(line)["Message"] for line in lines] == ["one", "two"]

    props = await _properties(store, credentials, "app/report.xlsx")
    assert props.content_type == (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert props.metadata["entriesCount"] == "2"
    assert props.metadata["createdAt"] == created
    assert "lastUpdated" in props.metadata


@pytest.mark.asyncio
async def test_regenerating_writer_rejects_non_json_rows(store, credentials, config) -> None:
    writer = RegeneratingBlobWriter(store, credentials)
    await writer.initialize("report.xlsx", config)
    with pytest.raises(ValidationError):
        await writer.write_entry("not json\n")
    assert writer.rows == []


@pytest.mark.asyncio
async def test_regenerating_writer_starts_empty_after_rotation(store, credentials, config) -> None:
    writer = RegeneratingBlobWriter(store, credentials)
    await writer.initialize("report.xlsx", config)
    await writer.write_entry(_row(Message="before"))

    new_name = await writer.rotate()

    assert new_name.startswith("report-rotated-")
    assert new_name.endswith(".xlsx")
    assert writer.rows == []
    assert await writer.read_content() == EMPTY_FILE_MESSAGE

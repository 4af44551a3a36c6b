from __future__ import annotations

import json

import pytest

from mcp_blob_logging_server.core.errors import StrategyNotInitializedError, ValidationError
from mcp_blob_logging_server.core.factory import LogStrategyFactory
from mcp_blob_logging_server.core.models import BulkLogEntry, LogEntry, LogFileConfig, LogFileType, LogLevel
from mcp_blob_logging_server.core.strategy import blob_file_name

CSV_HEADER = "timestamp,level,requestId,userId,sessionId,message,metadata"


def test_blob_file_name_replaces_known_extension() -> None:
    assert blob_file_name("audit", LogFileType.CSV) == "audit.csv"
    assert blob_file_name("audit.csv", LogFileType.CSV) == "audit.csv"
    assert blob_file_name("audit.log", LogFileType.XLSX) == "audit.xlsx"
    assert blob_file_name("audit.txt", LogFileType.LOG) == "audit.txt.log"


@pytest.mark.asyncio
async def test_static_csv_header_written_once(factory: LogStrategyFactory, config) -> None:
    strategy = factory.create_strategy("audit.csv", config)
    await strategy.initialize("audit.csv", config)
    await strategy.append_log(LogEntry(LogLevel.INFO, "one"))

    again = factory.create_strategy("audit.csv", config)
    await again.initialize("audit.csv", config)
    await again.append_log(LogEntry(LogLevel.WARN, "two"))

    lines = (await again.read_logs()).splitlines()
    assert lines[0] == CSV_HEADER
    assert lines.count(CSV_HEADER) == 1
    assert [line.split(",")[5] for line in lines[1:]] == ["one", "two"]


@pytest.mark.asyncio
async def test_dynamic_header_deferred_to_first_entry(factory: LogStrategyFactory) -> None:
    config = LogFileConfig(directory="app", dynamic_columns=True)
    strategy = factory.create_strategy("orders.csv", config)
    await strategy.initialize("orders.csv", config)
    assert await strategy.read_logs() == "Log file exists but is empty"

    await strategy.append_log(LogEntry(LogLevel.INFO, "x", metadata={"orderId": "A1", "total": 10}))
    await strategy.append_log(LogEntry(LogLevel.INFO, "y", metadata={"total": 12, "extra": 1}))

    assert await strategy.read_logs() == "orderId,total\nA1,10\n,12\n"


@pytest.mark.asyncio
async def test_dynamic_bulk_samples_first_entry(factory: LogStrategyFactory) -> None:
    config = LogFileConfig(directory="app", dynamic_columns=True)
    strategy = factory.create_strategy("batch.csv", config)
    await strategy.initialize("batch.csv", config)

    await strategy.append_bulk_logs(
        [
            BulkLogEntry(LogLevel.INFO, "a", metadata={"k": 1}),
            BulkLogEntry(LogLevel.INFO, "b", metadata={"k": 2, "j": 3}),
        ]
    )

    assert await strategy.read_logs() == "k\n1\n2\n"


@pytest.mark.asyncio
async def test_bulk_validation_is_all_or_nothing(factory, config, append_calls) -> None:
    strategy = factory.create_strategy("audit.log", config)
    await strategy.initialize("audit.log", config)

    with pytest.raises(ValidationError, match="Invalid log entry for LOG format"):
        await strategy.append_bulk_logs(
            [BulkLogEntry(LogLevel.INFO, "fine"), BulkLogEntry(LogLevel.INFO, "")]
        )
    assert append_calls == []


@pytest.mark.asyncio
async def test_empty_bulk_is_a_no_op(factory, config, append_calls) -> None:
    strategy = factory.create_strategy("audit.log", config)
    await strategy.initialize("audit.log", config)
    await strategy.append_bulk_logs([])
    assert append_calls == []


@pytest.mark.asyncio
async def test_rotation_rewrites_header(factory: LogStrategyFactory) -> None:
    config = LogFileConfig(directory="app", max_file_size=0.00008)  # 83 bytes
    strategy = factory.create_strategy("audit.csv", config)
    await strategy.initialize("audit.csv", config)
    await strategy.append_log(LogEntry(LogLevel.INFO, "first"))
    original = strategy.file_name

    await strategy.append_log(LogEntry(LogLevel.INFO, "second"))

    assert strategy.file_name != original
    assert strategy.file_name.startswith("audit-rotated-")
    lines = (await strategy.read_logs()).splitlines()
    assert lines[0] == CSV_HEADER
    assert len(lines) == 2
    assert lines[1].split(",")[5] == "second"


@pytest.mark.asyncio
async def test_rotation_resets_dynamic_columns(factory: LogStrategyFactory) -> None:
    config = LogFileConfig(directory="app", max_file_size=0.00001, dynamic_columns=True)  # 10 bytes
    strategy = factory.create_strategy("dyn.csv", config)
    await strategy.initialize("dyn.csv", config)
    await strategy.append_log(LogEntry(LogLevel.INFO, "a", metadata={"old": "value"}))

    await strategy.append_log(LogEntry(LogLevel.INFO, "b", metadata={"new": "value"}))

    assert strategy.formatter.get_current_headers() == ["new"]
    assert await strategy.read_logs() == "new\nvalue\n"


@pytest.mark.asyncio
async def test_xlsx_strategy_round_trip(factory: LogStrategyFactory, config, entry) -> None:
    strategy = factory.create_strategy("report.xlsx", config)
    await strategy.initialize("report.xlsx", config)

    await strategy.append_log(entry)
    await strategy.append_bulk_logs([BulkLogEntry(LogLevel.ERROR, "failed")])

    rows = [json.loads(line) for line in (await strategy.read_logs()).splitlines()]
    assert [r["Message"] for r in rows] == ["user signed in", "failed"]
    assert rows[0]["User ID"] == "u-1"
    assert rows[1]["Level"] == "ERROR"


@pytest.mark.asyncio
async def test_stats_carry_file_type(factory: LogStrategyFactory, config) -> None:
    strategy = factory.create_strategy("audit", config)
    await strategy.initialize("audit", config)
    await strategy.append_log(LogEntry(LogLevel.DEBUG, "hello"))

    stats = await strategy.get_log_file_stats()
    assert stats.exists is True
    assert stats.file_type is LogFileType.LOG
    assert stats.size_bytes and stats.size_bytes > 0
    assert stats.created_at is not None


@pytest.mark.asyncio
async def test_operations_require_initialize(factory: LogStrategyFactory, config) -> None:
    strategy = factory.create_strategy("audit.log", config)
    with pytest.raises(StrategyNotInitializedError, match="Strategy not initialized"):
        await strategy.append_log(LogEntry(LogLevel.INFO, "x"))
    with pytest.raises(StrategyNotInitializedError):
        await strategy.read_logs()

from __future__ import annotations

import pytest

from mcp_blob_logging_server.core.factory import LogStrategyFactory, determine_file_type
from mcp_blob_logging_server.core.formatters import (
    DelimitedLogFormatter,
    SpreadsheetLogFormatter,
    TraditionalLogFormatter,
)
from mcp_blob_logging_server.core.models import LogFileConfig, LogFileType
from mcp_blob_logging_server.core.writers import AppendBlobWriter, RegeneratingBlobWriter


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("audit.csv", LogFileType.CSV),
        ("report.xlsx", LogFileType.XLSX),
        ("app.log", LogFileType.LOG),
        ("no-extension", LogFileType.LOG),
        ("notes.txt", LogFileType.LOG),
    ],
)
def test_determine_file_type_from_extension(file_name: str, expected: LogFileType) -> None:
    assert determine_file_type(file_name) is expected


def test_explicit_file_type_wins() -> None:
    config = LogFileConfig(file_type=LogFileType.CSV)
    assert determine_file_type("report.xlsx", config) is LogFileType.CSV


@pytest.mark.parametrize(
    ("file_name", "formatter_cls", "writer_cls"),
    [
        ("a.log", TraditionalLogFormatter, AppendBlobWriter),
        ("a.csv", DelimitedLogFormatter, AppendBlobWriter),
        ("a.xlsx", SpreadsheetLogFormatter, RegeneratingBlobWriter),
    ],
)
def test_create_strategy_pairs_formatter_and_writer(
    factory: LogStrategyFactory, file_name, formatter_cls, writer_cls
) -> None:
    strategy = factory.create_strategy(file_name)
    assert isinstance(strategy.formatter, formatter_cls)
    assert isinstance(strategy.writer, writer_cls)
    assert strategy.initialized is False


def test_each_strategy_gets_its_own_formatter(factory: LogStrategyFactory) -> None:
    a = factory.create_strategy("a.csv")
    b = factory.create_strategy("a.csv")
    assert a.formatter is not b.formatter


def test_supported_file_types(factory: LogStrategyFactory) -> None:
    assert factory.get_supported_file_types() == [LogFileType.LOG, LogFileType.CSV, LogFileType.XLSX]
    assert factory.is_file_type_supported(LogFileType.XLSX)
    assert factory.is_file_type_supported("csv")
    assert not factory.is_file_type_supported("pdf")

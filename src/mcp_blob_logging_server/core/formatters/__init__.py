"""Log formatters, one per persisted representation."""

from __future__ import annotations

from .base import DynamicHeaders, HeaderState, LogFormatter, StaticHeaders
from .delimited import DEFAULT_CSV_HEADERS, DelimitedLogFormatter, escape_csv_field
from .spreadsheet import EXCEL_HEADERS, SpreadsheetLogFormatter, title_case
from .traditional import TraditionalLogFormatter

__all__ = [
    "DEFAULT_CSV_HEADERS",
    "EXCEL_HEADERS",
    "DelimitedLogFormatter",
    "DynamicHeaders",
    "HeaderState",
    "LogFormatter",
    "SpreadsheetLogFormatter",
    "StaticHeaders",
    "TraditionalLogFormatter",
    "escape_csv_field",
    "title_case",
]

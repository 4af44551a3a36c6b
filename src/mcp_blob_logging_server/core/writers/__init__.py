"""Blob writers: append-optimized and regenerate-on-write."""

from __future__ import annotations

from .append import AppendBlobWriter, iter_chunks
from .base import CONTENT_TYPES, EMPTY_FILE_MESSAGE, LogWriter, rotated_file_name
from .regenerate import RegeneratingBlobWriter

__all__ = [
    "CONTENT_TYPES",
    "EMPTY_FILE_MESSAGE",
    "AppendBlobWriter",
    "LogWriter",
    "RegeneratingBlobWriter",
    "iter_chunks",
    "rotated_file_name",
]

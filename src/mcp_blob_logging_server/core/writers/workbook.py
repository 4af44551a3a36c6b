"""openpyxl helpers: rows <-> ``.xlsx`` bytes."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from io import BytesIO
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

SHEET_TITLE = "Logs"

_HEADER_FONT = Font(bold=True)
_HEADER_FILL = PatternFill(fill_type="solid", fgColor="DDDDDD")
_HEADER_ALIGNMENT = Alignment(horizontal="center")

_WIDE_COLUMNS = {"message": 50, "metadata": 40, "description": 40}


def column_width(title: str) -> int:
    key = title.strip().lower()
    if key == "timestamp":
        return 25
    if key in _WIDE_COLUMNS:
        return _WIDE_COLUMNS[key]
    return max(len(title) + 5, 12)


def ordered_columns(rows: Sequence[Mapping[str, Any]]) -> list[str]:
    """Union of row keys in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        value = json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def build_workbook(rows: Sequence[Mapping[str, Any]]) -> bytes:
    """Render one styled sheet with a header row and one row per mapping."""
    columns = ordered_columns(rows)

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    if columns:
        ws.append(columns)
        for cell in ws[1]:
            cell.font = _HEADER_FONT
            cell.fill = _HEADER_FILL
            cell.alignment = _HEADER_ALIGNMENT
        for idx, title in enumerate(columns, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = column_width(title)

    for row in rows:
        ws.append([_cell_value(row.get(col)) for col in columns])

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def read_workbook_rows(data: bytes) -> list[dict[str, Any]]:
    """Parse the first sheet back into row mappings keyed by the header row."""
    if not data:
        return []

    wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    try:
        ws = wb[SHEET_TITLE] if SHEET_TITLE in wb.sheetnames else wb.worksheets[0]
        values = ws.iter_rows(values_only=True)
        header = next(values, None)
        if not header:
            return []
        columns = ["" if h is None else str(h) for h in header]

        rows: list[dict[str, Any]] = []
        for raw in values:
            if raw is None or all(v is None for v in raw):
                continue
            row: dict[str, Any] = {}
            for idx, col in enumerate(columns):
                if not col:
                    continue
                value = raw[idx] if idx < len(raw) else None
                row[col] = "" if value is None else value
            rows.append(row)
        return rows
    finally:
        wb.close()

"""Workbook access: turn a named sheet into header-keyed row records."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from pathlib import Path
from typing import IO, Iterator, Union

import openpyxl
from openpyxl.workbook.workbook import Workbook

log = logging.getLogger(__name__)

CellValue = Union[str, int, float, None]
Row = dict[str, CellValue]


@contextmanager
def open_workbook(source: str | Path | IO[bytes]) -> Iterator[Workbook]:
    """Open an .xlsx workbook read-only (cached values, not formulas) and close it afterwards."""
    if isinstance(source, (str, Path)):
        source = Path(source)
    wb = openpyxl.load_workbook(source, read_only=True, data_only=True)
    try:
        yield wb
    finally:
        wb.close()


def _cell(value: object) -> CellValue:
    """Coerce an openpyxl cell value into text, number or None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    text = str(value)
    return text if text.strip() else None


def _headers(raw: tuple) -> list[str | None]:
    out: list[str | None] = []
    seen: dict[str, int] = {}
    for value in raw:
        label = "" if value is None else str(value).strip()
        if not label:
            out.append(None)
            continue
        if label in seen:
            seen[label] += 1
            label = f"{label}_{seen[label]}"
        else:
            seen[label] = 0
        out.append(label)
    return out


def extract_rows(workbook: Workbook, sheet_name: str) -> list[Row]:
    """Return the rows of *sheet_name* as dicts keyed by header text.

    The first row is the header. Columns without a header are dropped and
    fully blank rows skipped. A missing sheet yields ``[]``.
    """
    if sheet_name not in workbook.sheetnames:
        log.info("Sheet %r not found; treating as empty", sheet_name)
        return []
    ws = workbook[sheet_name]
    rows = ws.iter_rows(values_only=True)
    header_row = next(rows, None)
    if not header_row:
        return []
    headers = _headers(header_row)

    out: list[Row] = []
    for raw in rows:
        if raw is None:
            continue
        record: Row = {}
        for idx, label in enumerate(headers):
            if label is None:
                continue
            record[label] = _cell(raw[idx]) if idx < len(raw) else None
        if any(v is not None for v in record.values()):
            out.append(record)
    return out

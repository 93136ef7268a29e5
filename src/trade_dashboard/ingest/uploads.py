from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable, Mapping
from zipfile import BadZipFile

import xlrd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from trade_dashboard.api.client import BackendClient
from trade_dashboard.api.errors import BackendError

PREVIEW_ROWS = 5
REQUIRED_FIELDS = ("timestamp", "action")

CSV_SUFFIXES = {".csv"}
SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}
LEGACY_SPREADSHEET_SUFFIXES = {".xls"}
JSON_SUFFIXES = {".json"}

_SKIPPED_XLS_CELLS = {xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR}

logger = logging.getLogger(__name__)


class UnsupportedFileType(ValueError):
    pass


@dataclass(frozen=True)
class ParsedUpload:
    rows: list[dict[str, Any]]
    discarded: int = 0


@dataclass(frozen=True)
class UploadOutcome:
    success: bool
    message: str
    preview: list[dict[str, Any]] = field(default_factory=list)
    uploaded: int = 0


def parse_upload(filename: str, content: bytes) -> ParsedUpload:
    suffix = Path(filename).suffix.lower()
    if suffix in CSV_SUFFIXES:
        records = _read_csv(content)
    elif suffix in SPREADSHEET_SUFFIXES:
        records = _read_spreadsheet(content)
    elif suffix in LEGACY_SPREADSHEET_SUFFIXES:
        records = _read_legacy_spreadsheet(content)
    elif suffix in JSON_SUFFIXES:
        records = _read_json(content)
    else:
        raise UnsupportedFileType("Unsupported file type. Please upload CSV, Excel (.xlsx, .xls), or JSON.")
    return _keep_complete_rows(records)


def load_upload(path: str | Path) -> ParsedUpload:
    source_path = Path(path)
    return parse_upload(source_path.name, source_path.read_bytes())


def submit_upload(client: BackendClient, account: str, filename: str, content: bytes) -> UploadOutcome:
    preview: list[dict[str, Any]] = []
    try:
        parsed = parse_upload(filename, content)
        if not parsed.rows:
            raise ValueError("No valid trades found in file")
        preview = parsed.rows[:PREVIEW_ROWS]
        client.write_trades_batch([{**row, "account": account} for row in parsed.rows])
    except (BackendError, ValueError) as exc:
        logger.warning("upload of %s failed: %s", filename, exc)
        return UploadOutcome(success=False, message=str(exc) or "Failed to process file", preview=preview)

    count = len(parsed.rows)
    return UploadOutcome(
        success=True,
        message=f"Successfully uploaded {count} trades!",
        preview=preview,
        uploaded=count,
    )


def _read_csv(content: bytes) -> list[dict[str, Any]]:
    text = content.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text, newline=""))
    return [dict(row) for row in reader]


def _read_spreadsheet(content: bytes) -> list[dict[str, Any]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError) as exc:
        raise ValueError(f"Invalid spreadsheet upload: {exc}") from exc
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        columns = [str(name).strip() if name is not None else "" for name in header]
        records = []
        for values in rows:
            record = {
                column: _cell_text(value)
                for column, value in zip(columns, values)
                if column and value is not None
            }
            if record:
                records.append(record)
        return records
    finally:
        workbook.close()


def _read_legacy_spreadsheet(content: bytes) -> list[dict[str, Any]]:
    try:
        book = xlrd.open_workbook(file_contents=content)
    except (xlrd.XLRDError, CompDocError) as exc:
        raise ValueError(f"Invalid spreadsheet upload: {exc}") from exc
    try:
        sheet = book.sheet_by_index(0)
        if sheet.nrows == 0:
            return []
        columns = [str(cell.value).strip() for cell in sheet.row(0)]
        records = []
        for index in range(1, sheet.nrows):
            record = {}
            for column, cell in zip(columns, sheet.row(index)):
                if not column or cell.ctype in _SKIPPED_XLS_CELLS:
                    continue
                value = cell.value
                if cell.ctype == xlrd.XL_CELL_DATE:
                    value = xlrd.xldate_as_datetime(value, book.datemode)
                elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                    value = bool(value)
                record[column] = _cell_text(value)
            if record:
                records.append(record)
        return records
    finally:
        book.release_resources()


def _read_json(content: bytes) -> list[dict[str, Any]]:
    try:
        payload = json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Invalid JSON upload: {exc}") from exc
    items = payload if isinstance(payload, list) else [payload]
    return [dict(item) for item in items if isinstance(item, Mapping)]


def _keep_complete_rows(records: Iterable[Mapping[str, Any]]) -> ParsedUpload:
    rows: list[dict[str, Any]] = []
    discarded = 0
    for record in records:
        if all(record.get(name) not in (None, "") for name in REQUIRED_FIELDS):
            rows.append(dict(record))
        else:
            discarded += 1
    return ParsedUpload(rows=rows, discarded=discarded)


def _cell_text(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value

"""
Spreadsheet I/O: address rows in, processed address set out.

Reading builds each row's ``full_address`` from the "Address Line 1" and
"City" columns and keeps every original column verbatim for the export.
Writing appends the structured fields and validation outcome as extra
columns, so the downloaded file is the uploaded one plus results.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Sequence, Union
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .exceptions import SpreadsheetError
from .models import AddressRecord, ParsedRow

logger = logging.getLogger(__name__)

SpreadsheetSource = Union[bytes, str, Path, BinaryIO]

ADDRESS_LINE_COLUMN = "Address Line 1"
CITY_COLUMN = "City"
REQUIRED_COLUMNS: tuple[str, ...] = (ADDRESS_LINE_COLUMN, CITY_COLUMN)

EXPORT_SHEET_TITLE = "Processed Addresses"
EXPORT_FILENAME = "route_optimizer_results.xlsx"


# ─── Reader ──────────────────────────────────────────────────────────


def read_address_rows(source: SpreadsheetSource) -> list[ParsedRow]:
    """Read the first sheet of an .xlsx workbook into address rows.

    Raises:
        SpreadsheetError: unreadable file, empty sheet, missing required
            column, or no row that yields an address.
    """
    headers, data_rows = _read_first_sheet(source)

    if not data_rows:
        raise SpreadsheetError("The Excel file appears to be empty.")

    for column in REQUIRED_COLUMNS:
        if column not in headers:
            raise SpreadsheetError(
                f'The Excel file is missing the required column: "{column}". '
                "Please check the file and try again.",
                details={"headers": headers},
            )

    rows: list[ParsedRow] = []
    for values in data_rows:
        original = {
            header: value
            for header, value in zip(headers, values)
            if value is not None
        }
        full_address = build_full_address(original)
        if full_address:
            rows.append(ParsedRow(original_data=original, full_address=full_address))

    if not rows:
        raise SpreadsheetError(
            f'No addresses could be constructed from the "{ADDRESS_LINE_COLUMN}" '
            f'and "{CITY_COLUMN}" columns.'
        )

    logger.info("Read %d address rows (%d skipped)", len(rows), len(data_rows) - len(rows))
    return rows


def build_full_address(row: dict[str, Any]) -> str:
    """Join the trimmed address line and city; non-text cells are ignored."""
    parts = []
    for column in REQUIRED_COLUMNS:
        value = row.get(column)
        if isinstance(value, str) and value.strip():
            parts.append(value.strip())
    return ", ".join(parts)


def _read_first_sheet(
    source: SpreadsheetSource,
) -> tuple[list[str], list[tuple[Any, ...]]]:
    if isinstance(source, bytes):
        source = io.BytesIO(source)

    try:
        workbook = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
        logger.error("Could not open workbook: %s", e)
        raise SpreadsheetError(
            "Could not parse the Excel file. Please ensure it's a valid .xlsx file."
        ) from e

    try:
        sheet = workbook.worksheets[0]
        rows = [
            row
            for row in sheet.iter_rows(values_only=True)
            if any(cell is not None and cell != "" for cell in row)
        ]
    finally:
        workbook.close()

    if not rows:
        return [], []

    headers = [
        str(h).strip() if h is not None else f"Column {i + 1}"
        for i, h in enumerate(rows[0])
    ]
    return _unique_headers(headers), rows[1:]


def _unique_headers(headers: list[str]) -> list[str]:
    """Suffix repeated header names with _1, _2, ... so no column is lost."""
    seen: set[str] = set()
    unique: list[str] = []
    for header in headers:
        name = header
        suffix = 0
        while name in seen:
            suffix += 1
            name = f"{header}_{suffix}"
        seen.add(name)
        unique.append(name)
    return unique


# ─── Writer ──────────────────────────────────────────────────────────


def export_rows(records: Iterable[AddressRecord]) -> list[dict[str, Any]]:
    """Flatten records to export rows: original columns plus results."""
    return [
        {
            **record.original_data,
            "House Number": record.house_number or "",
            "Street Name": record.street_name or "",
            "City": record.city or "",
            "State": record.state or "",
            "Zip": record.zip or "",
            "Validation Status": record.status.value,
            "Validation Error": record.error or "",
        }
        for record in records
    ]


def write_workbook(records: Sequence[AddressRecord]) -> bytes:
    """Render the processed address set as .xlsx bytes."""
    rows = export_rows(records)

    headers: list[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = EXPORT_SHEET_TITLE
    sheet.append(headers)
    for row in rows:
        sheet.append([row.get(h) for h in headers])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()

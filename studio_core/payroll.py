from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from functools import reduce
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from studio_core.coercion import (
    cell_text,
    currency_to_number,
    excel_date_to_string,
    excel_time_to_string,
    is_blank,
    parse_float,
    to_number,
)
from studio_core.errors import ParseError
from studio_core.models import ColumnMapping, DateRange, PayrollParseResult, PayrollRecord
from studio_core.rows import (
    HEADER_LOOKBACK_ROWS,
    Row,
    RowKind,
    classify_row,
    instructor_name_from_row,
    map_headers,
)
from studio_core.sections import resolve_sections
from studio_core.workbook import read_workbook

logger = logging.getLogger(__name__)

EMPTY_FILE_MESSAGE = "Excel file appears to be empty"
NO_DATA_MESSAGE = (
    "No valid data rows found in Excel file. "
    "Please check that your file has class data with dates and class names."
)
DATE_RANGE_SEARCH_ROWS = 10

_DASH = r"\s*[-–—]\s*"
# ASCII digits and words; \s stays Unicode-aware so non-breaking spaces match.
_LONG_DATE = r"([A-Za-z0-9_]+,\s+[A-Za-z0-9_]+\s+[0-9]{1,2},\s+[0-9]{4})"
DATE_RANGE_PATTERNS = [
    re.compile(r"([0-9]{1,2}/[0-9]{1,2}/[0-9]{4})" + _DASH + r"([0-9]{1,2}/[0-9]{1,2}/[0-9]{4})"),
    re.compile(r"([0-9]{1,2}-[0-9]{1,2}-[0-9]{4})" + _DASH + r"([0-9]{1,2}-[0-9]{1,2}-[0-9]{4})"),
    re.compile(r"([0-9]{4}/[0-9]{1,2}/[0-9]{1,2})" + _DASH + r"([0-9]{4}/[0-9]{1,2}/[0-9]{1,2})"),
    re.compile(_LONG_DATE + _DASH + _LONG_DATE),
    re.compile(
        r"([A-Za-z]+,\s*[A-Za-z]+\s+[0-9]+,\s+[0-9]{4})" + _DASH + r"([A-Za-z]+,\s*[A-Za-z]+\s+[0-9]+,\s+[0-9]{4})"
    ),
]
FILENAME_DATE_RANGE = re.compile(r"([0-9]{1,2}-[0-9]{1,2}-[0-9]{4})\s*-\s*([0-9]{1,2}-[0-9]{1,2}-[0-9]{4})")


# ---------------- Date range ----------------
def extract_date_range(rows: Sequence[Row]) -> Optional[DateRange]:
    for row in rows[:DATE_RANGE_SEARCH_ROWS]:
        for cell in row or ():
            if is_blank(cell):
                continue
            text = cell_text(cell)
            for pattern in DATE_RANGE_PATTERNS:
                match = pattern.search(text)
                if match:
                    return DateRange(start_date=match.group(1), end_date=match.group(2), raw=text)
    return None


def date_range_from_filename(filename: Optional[str]) -> Optional[DateRange]:
    if not filename:
        return None
    match = FILENAME_DATE_RANGE.search(filename)
    if not match:
        return None
    start, end = match.group(1), match.group(2)
    return DateRange(start_date=start, end_date=end, raw=f"{start} - {end}")


# ---------------- Sheet scan ----------------
@dataclass(frozen=True)
class ScanState:
    instructor_name: Optional[str] = None
    column_mapping: Optional[ColumnMapping] = None


@dataclass(frozen=True)
class SheetScan:
    state: ScanState
    records: Tuple[PayrollRecord, ...] = ()


def _cell(row: Row, mapping: ColumnMapping, field_name: str) -> object:
    idx = mapping.get(field_name)
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def build_record(row: Row, mapping: ColumnMapping, instructor_name: str) -> PayrollRecord:
    class_name = _cell(row, mapping, "class_name")
    earnings = currency_to_number(_cell(row, mapping, "earnings"))
    if earnings == 0 and "base_pay" in mapping and "bonus_pay" in mapping:
        earnings = parse_float(_cell(row, mapping, "base_pay")) + parse_float(_cell(row, mapping, "bonus_pay"))
    return PayrollRecord(
        instructor_name=instructor_name,
        class_name="" if is_blank(class_name) else cell_text(class_name),
        class_date=excel_date_to_string(_cell(row, mapping, "class_date")),
        class_time=excel_time_to_string(_cell(row, mapping, "class_time")),
        staff_paid=to_number(_cell(row, mapping, "staff_paid")),
        earnings=earnings,
    )


def _lookback_instructor(rows: Sequence[Row], header_idx: int) -> Optional[str]:
    for idx in range(max(0, header_idx - HEADER_LOOKBACK_ROWS), header_idx):
        name = instructor_name_from_row(rows[idx])
        if name:
            return name
    return None


def scan_sheet(rows: Sequence[Row], instructor_name: Optional[str] = None) -> SheetScan:
    """Fold one sheet's rows into the final scan state and emitted records.

    The fold carries only ``ScanState``; records are collected in one list
    and frozen once at the end.
    """
    records: List[PayrollRecord] = []

    def step(state: ScanState, item: Tuple[int, Row]) -> ScanState:
        idx, row = item
        classification = classify_row(row)
        if classification.kind is RowKind.INSTRUCTOR_NAME:
            return replace(state, instructor_name=classification.instructor_name)
        if classification.kind is RowKind.HEADER:
            name = state.instructor_name or _lookback_instructor(rows, idx)
            return ScanState(instructor_name=name, column_mapping=map_headers(row))
        if classification.kind is RowKind.DATA and state.column_mapping is not None and state.instructor_name:
            record = build_record(row, state.column_mapping, state.instructor_name)
            if record.class_name or record.class_date:
                records.append(record)
            else:
                logger.debug("Dropped row %d without class name or date", idx)
        return state

    final = reduce(step, enumerate(rows), ScanState(instructor_name=instructor_name or None))
    return SheetScan(state=final, records=tuple(records))


def parse_sheet(rows: Sequence[Row], instructor_name: Optional[str] = None) -> List[PayrollRecord]:
    return list(scan_sheet(rows, instructor_name).records)


# ---------------- Workbook ----------------
def parse_payroll_workbook(content: bytes, filename: str = "") -> PayrollParseResult:
    """Parse a payroll/attendance export into normalized class records.

    Raises ``ParseError`` when the file cannot be read, when its first sheet is
    empty, or when no sheet yields a usable class row.
    """
    sheets = read_workbook(content)
    if not sheets or not sheets[0][1]:
        raise ParseError(EMPTY_FILE_MESSAGE)

    date_range = extract_date_range(sheets[0][1]) or date_range_from_filename(filename)
    if date_range is None:
        logger.debug("No date range found in file or filename")
    else:
        logger.debug("Date range found: %s", date_range)

    sheet_rows = [rows for _, rows in sheets]
    sections = resolve_sections(sheet_rows)

    records: List[PayrollRecord] = []
    for sheet_idx, (sheet_name, rows) in enumerate(sheets):
        if not rows:
            continue
        instructor = sections.get(sheet_idx) or f"Instructor {sheet_idx + 1}"
        sheet_records = parse_sheet(rows, instructor)
        if sheet_records:
            logger.debug("Sheet %r: %d rows for %s", sheet_name, len(sheet_records), instructor)
        records.extend(sheet_records)

    logger.debug("Parsed %d data rows from %d sheet(s)", len(records), len(sheets))
    if not records:
        raise ParseError(NO_DATA_MESSAGE)
    return PayrollParseResult(date_range=date_range, payroll_data=records)


def load_payroll_report(path: Path) -> PayrollParseResult:
    path = Path(path)
    return parse_payroll_workbook(path.read_bytes(), filename=path.name)

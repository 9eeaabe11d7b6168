"""Heuristic classification of raw payroll report rows.

Payroll exports interleave lone ``"Last, First"`` instructor rows, repeated
column header rows, ``"Total for ..."`` summary rows and the class rows we
actually want. Each predicate looks at one row in isolation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import pandas as pd

from studio_core.coercion import cell_text, is_blank
from studio_core.models import ColumnMapping

logger = logging.getLogger(__name__)

Row = Sequence[object]

TOTAL_MARKER = "Total for"
NAME_EXCLUSIONS = ("pay rate", "–", "—", "class/", "date")
HEADER_LOOKBACK_ROWS = 5

_TOTAL_NAME = re.compile(r"Total for\s+(.+)", re.IGNORECASE)


class RowKind(str, Enum):
    BLANK = "blank"
    TOTAL = "total"
    INSTRUCTOR_NAME = "instructor_name"
    HEADER = "header"
    DATA = "data"


@dataclass(frozen=True)
class RowClassification:
    kind: RowKind
    instructor_name: Optional[str] = None


def _has_value(cell: object) -> bool:
    if cell is None or (isinstance(cell, str) and cell == ""):
        return False
    try:
        return not bool(pd.isna(cell))
    except (TypeError, ValueError):
        return True


def is_blank_row(row: Optional[Row]) -> bool:
    return not row or all(is_blank(cell) for cell in row)


def is_total_row(row: Optional[Row]) -> bool:
    if not row or is_blank(row[0]):
        return False
    return TOTAL_MARKER in cell_text(row[0])


def total_row_instructor(row: Optional[Row]) -> Optional[str]:
    """Instructor named by a ``"Total for <name>"`` row, if any."""
    if not is_total_row(row):
        return None
    match = _TOTAL_NAME.search(cell_text(row[0]))
    if not match:
        return None
    return match.group(1).strip() or None


def instructor_name_from_row(row: Optional[Row]) -> Optional[str]:
    """Name carried by a lone ``"Last, First"`` cell, or ``None``."""
    if not row:
        return None
    values = [cell for cell in row if _has_value(cell)]
    if len(values) != 1:
        return None
    text = cell_text(values[0])
    lowered = text.lower()
    if "," not in text or not 3 < len(text) < 100:
        return None
    if any(marker in lowered for marker in NAME_EXCLUSIONS):
        return None
    return text


def is_instructor_name_row(row: Optional[Row]) -> bool:
    return instructor_name_from_row(row) is not None


def _lowered_cells(row: Row) -> List[str]:
    return ["" if is_blank(cell) else cell_text(cell).lower() for cell in row]


def is_header_row(row: Optional[Row]) -> bool:
    if not row or len(row) < 3:
        return False
    cells = _lowered_cells(row)
    has_date = any("date" in c for c in cells)
    has_pay = any("earning" in c or "pay" in c for c in cells)
    has_name = any("class" in c or "name" in c for c in cells)
    return has_date and has_pay and has_name


def classify_row(row: Optional[Row]) -> RowClassification:
    if is_blank_row(row):
        return RowClassification(RowKind.BLANK)
    if is_total_row(row):
        return RowClassification(RowKind.TOTAL, total_row_instructor(row))
    name = instructor_name_from_row(row)
    if name is not None:
        return RowClassification(RowKind.INSTRUCTOR_NAME, name)
    if is_header_row(row):
        return RowClassification(RowKind.HEADER)
    return RowClassification(RowKind.DATA)


def _header_field(text: str) -> Optional[str]:
    if "class" in text and "name" in text:
        return "class_name"
    if "class" in text and "date" in text:
        return "class_date"
    if "class" in text and "time" in text:
        return "class_time"
    if ("staff" in text and "paid" in text and "unpaid" not in text) or text == "# staff paid":
        return "staff_paid"
    if "earning" in text:
        return "earnings"
    if "base" in text and "pay" in text:
        return "base_pay"
    if "bonus" in text and "pay" in text:
        return "bonus_pay"
    return None


def map_headers(row: Row) -> ColumnMapping:
    mapping: ColumnMapping = {}
    for idx, cell in enumerate(row):
        if is_blank(cell):
            continue
        field_name = _header_field(cell_text(cell).lower())
        if field_name is not None:
            mapping[field_name] = idx
    logger.debug("Mapped header row %s -> %s", list(row), mapping)
    return mapping

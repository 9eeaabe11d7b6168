from __future__ import annotations

import io
import logging
from typing import List, Tuple

import pandas as pd

from studio_core.errors import ParseError

logger = logging.getLogger(__name__)

RawRow = List[object]
RawSheet = Tuple[str, List[RawRow]]


def _trim_row(values: List[object]) -> RawRow:
    end = len(values)
    while end and values[end - 1] is None:
        end -= 1
    return values[:end]


def frame_to_rows(df: pd.DataFrame) -> List[RawRow]:
    """Convert a header-less sheet frame into rows of plain cell values.

    Missing cells become ``None`` and trailing empty cells are dropped, so a
    row is only as long as its last filled cell.
    """
    if df.empty:
        return []
    values = df.astype(object).where(pd.notna(df), None).values.tolist()
    return [_trim_row(row) for row in values]


def read_workbook(content: bytes) -> List[RawSheet]:
    """Read every sheet of an XLS/XLSX payload, in file order."""
    # Only empty cells are missing; literal "NA" or "N/A" text is kept.
    try:
        frames = pd.read_excel(
            io.BytesIO(content), sheet_name=None, header=None, keep_default_na=False, na_values=[""]
        )
    except Exception as exc:
        raise ParseError("Failed to read Excel file") from exc
    sheets = [(str(name), frame_to_rows(df)) for name, df in frames.items()]
    logger.debug("Excel file loaded: %d sheet(s)", len(sheets))
    return sheets

"""Best-effort conversion of raw spreadsheet cells into typed values.

Every function here is total: uncurated exports routinely contain stray
strings in numeric columns, so bad input degrades to ``0``, ``""`` or the
original text instead of raising.
"""

from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime, time
from typing import Optional

import pandas as pd


# Days between the Excel epoch (1899-12-30) and the Unix epoch (1970-01-01).
EXCEL_EPOCH_OFFSET = 25569

_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_CURRENCY_NOISE = re.compile(r"[$,\s]")
_TWELVE_HOUR = re.compile(
    r"^(\d{1,2})(?::(\d{2}))?(?::\d{2})?\s*([ap])\.?\s*m\.?$",
    re.IGNORECASE,
)


def is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not math.isnan(float(value))


def is_blank(value: object) -> bool:
    """True for the cell values a spreadsheet export treats as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, bool):
        return not value
    if is_number(value):
        return float(value) == 0
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def cell_text(value: object) -> str:
    """Trimmed text of a cell; integral floats lose their trailing ``.0``."""
    if value is None:
        return ""
    if is_number(value):
        number = float(value)
        if number.is_integer() and abs(number) < 1e15:
            return str(int(number))
        return str(value).strip()
    if not isinstance(value, str):
        try:
            if pd.isna(value):
                return ""
        except (TypeError, ValueError):
            pass
    return str(value).strip()


def format_locale_date(value: date) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def excel_serial_to_datetime(serial: object, *, whole_days: bool = False) -> Optional[datetime]:
    """Convert an Excel serial day number to a naive ``datetime``.

    Non-numeric, falsy or out-of-range input yields ``None``.
    """
    if not is_number(serial) or not serial:
        return None
    days = float(serial) - EXCEL_EPOCH_OFFSET
    if whole_days:
        days = math.floor(days)
    try:
        ts = pd.to_datetime(days, unit="D", origin="unix", errors="coerce")
    except Exception:
        return None
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def excel_date_to_string(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date)):
        return format_locale_date(value)
    if is_blank(value):
        return ""
    if is_number(value):
        converted = excel_serial_to_datetime(value)
        return format_locale_date(converted) if converted is not None else cell_text(value)
    return cell_text(value)


def twelve_hour_to_24(text: str) -> Optional[str]:
    match = _TWELVE_HOUR.match(text.strip())
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    if not 1 <= hours <= 12 or minutes > 59:
        return None
    is_pm = match.group(3).lower() == "p"
    if hours == 12:
        hours = 12 if is_pm else 0
    elif is_pm:
        hours += 12
    return f"{hours:02d}:{minutes:02d}"


def excel_time_to_string(value: object) -> str:
    if isinstance(value, (datetime, time)):
        return f"{value.hour:02d}:{value.minute:02d}"
    if is_number(value) and 0 <= float(value) < 1:
        fraction = float(value) * 24
        hours = math.floor(fraction)
        minutes = round((fraction - hours) * 60)
        return f"{hours:02d}:{minutes:02d}"
    if is_blank(value):
        return ""
    text = cell_text(value)
    if re.search(r"[ap]\.?\s*m", text, re.IGNORECASE):
        return twelve_hour_to_24(text) or text
    return text


def _leading_float(text: str) -> Optional[float]:
    match = _LEADING_FLOAT.match(text.lstrip())
    if not match:
        return None
    return float(match.group(0))


def currency_to_number(value: object) -> float:
    if value is None or (isinstance(value, str) and value == ""):
        return 0.0
    if is_number(value):
        return float(value)
    if not isinstance(value, str):
        try:
            if pd.isna(value):
                return 0.0
        except (TypeError, ValueError):
            pass
    parsed = _leading_float(_CURRENCY_NOISE.sub("", str(value)))
    return parsed if parsed is not None else 0.0


def parse_float(value: object) -> float:
    if is_number(value):
        return float(value)
    if not isinstance(value, str):
        return 0.0
    parsed = _leading_float(value)
    return parsed if parsed is not None else 0.0


def to_number(value: object) -> float:
    if is_number(value):
        return float(value)
    if not isinstance(value, str):
        return 0.0
    text = value.strip()
    if not text:
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return 0.0
    return 0.0 if math.isnan(number) else number

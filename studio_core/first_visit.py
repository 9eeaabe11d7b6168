from __future__ import annotations

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from studio_core.coercion import cell_text, excel_serial_to_datetime, is_blank, to_number
from studio_core.errors import ParseError
from studio_core.models import FirstVisitDateRange, FirstVisitParseResult, FirstVisitRecord

logger = logging.getLogger(__name__)

FIRST_VISIT_ERROR = "Failed to parse First Visit Report. Please ensure the file format is correct."

REFERRAL_CATEGORIES = (
    "Unassigned",
    "ClassPass",
    "Word of Mouth",
    "Internet Search",
    "Social Media",
    "Event",
    "Walk By",
    "Print Media",
    "Partner",
    "Instructor",
    "Other",
)

# Checked in order; the first category with a matching keyword wins.
REFERRAL_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("ClassPass", ("classpass", "class pass")),
    ("Word of Mouth", ("another client", "friend", "sister", "work...random")),
    ("Internet Search", ("internet search", "google")),
    ("Social Media", ("instagram", "facebook", "social media")),
    ("Event", ("event", "bend fashion", "bend pride", "dustin riley", "dusty")),
    ("Walk By", ("walk by", "walk-by")),
    ("Print Media", ("newspaper", "magazine", "source weekly", "bend bulletin")),
    ("Partner", ("tumalo", "bend vacations")),
    ("Instructor", ("instructor",)),
    ("Internet Search", ("reserve with google",)),
]


def normalize_referral_type(referral: object) -> str:
    if is_blank(referral):
        return "Unassigned"
    text = cell_text(referral) if not isinstance(referral, str) else referral
    if not text or text == "Unassigned":
        return "Unassigned"
    lowered = text.lower()
    for category, keywords in REFERRAL_RULES:
        if any(k in lowered for k in keywords):
            return category
    return "Other"


def parse_first_visit_date(value: object) -> Optional[datetime]:
    """Whole-day date of a First Visit cell (Excel serial or parsed datetime)."""
    if isinstance(value, datetime):
        if pd.isna(value):
            return None
        return datetime(value.year, value.month, value.day)
    return excel_serial_to_datetime(value, whole_days=True)


def format_date_key(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def _text(row: Dict[str, object], column: str) -> str:
    value = row.get(column)
    if is_blank(value):
        return ""
    return value if isinstance(value, str) else cell_text(value)


def build_first_visit_record(row: Dict[str, object], record_id: int) -> FirstVisitRecord:
    first_visit = parse_first_visit_date(row.get("First Visit"))
    referral = _text(row, "Referral Type")
    return FirstVisitRecord(
        record_id=record_id,
        client_id=_text(row, "Client ID"),
        client_name=_text(row, "Client"),
        first_visit_date=first_visit,
        first_visit_date_str=format_date_key(first_visit),
        visit_location=_text(row, "Visit Location"),
        service_category=_text(row, "Service Category"),
        visit_type=_text(row, "Visit Type"),
        pricing_option=_text(row, "Pricing Option"),
        booking_method=_text(row, "Booking Method").strip(),
        referral_type=referral,
        referral_type_normalized=normalize_referral_type(referral),
        staff=_text(row, "Staff"),
        visits_since_first=to_number(row.get("# Visits since First Visit")),
        phone=_text(row, "Phone"),
        email=_text(row, "Email"),
    )


def _distinct(values: Iterable[str]) -> List[str]:
    return sorted({v for v in values if v})


def summarize_first_visits(records: List[FirstVisitRecord]) -> FirstVisitParseResult:
    dates = [r.first_visit_date for r in records if r.first_visit_date is not None]
    date_range = FirstVisitDateRange(start=min(dates), end=max(dates)) if dates else None
    return FirstVisitParseResult(
        first_visit_data=records,
        date_range=date_range,
        service_categories=_distinct(r.service_category for r in records),
        staff_list=_distinct(r.staff for r in records),
        referral_types=_distinct(r.referral_type_normalized for r in records),
    )


def parse_first_visit_workbook(content: bytes) -> FirstVisitParseResult:
    """Parse a First Visit report: one client per row, headers on the first row."""
    try:
        df = pd.read_excel(io.BytesIO(content), sheet_name=0, keep_default_na=False, na_values=[""])
        df.columns = [str(c).strip() for c in df.columns]
        df = df.astype(object).where(pd.notna(df), None)
        rows = df.to_dict(orient="records")
        records = [build_first_visit_record(row, idx + 1) for idx, row in enumerate(rows)]
    except Exception as exc:
        raise ParseError(FIRST_VISIT_ERROR) from exc

    kept = [r for r in records if r.client_id]
    logger.debug("First visit report: kept %d of %d rows", len(kept), len(records))
    return summarize_first_visits(kept)


def load_first_visit_report(path: Path) -> FirstVisitParseResult:
    return parse_first_visit_workbook(Path(path).read_bytes())

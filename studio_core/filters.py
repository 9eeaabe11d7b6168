from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence, TypeVar

import pandas as pd

from studio_core.first_visit import REFERRAL_CATEGORIES
from studio_core.metrics import first_visit_frame, parse_class_dates, payroll_frame

DEFAULT_EXCLUDED_CLASSES = ("Front Desk",)

T = TypeVar("T")


@dataclass(frozen=True)
class PayrollFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructors: List[str] = field(default_factory=list)
    excluded_classes: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_CLASSES))


@dataclass(frozen=True)
class FirstVisitFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    service_categories: List[str] = field(default_factory=list)
    staff: List[str] = field(default_factory=list)
    referral_types: List[str] = field(default_factory=list)


def _as_date(value: object) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        parsed = pd.to_datetime(value, errors="coerce")
    except Exception:
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    out: List[str] = []
    for v in values:
        if v is None:
            continue
        s = str(v).strip()
        if s and s not in out:
            out.append(s)
    return out


def normalize_payroll_filters(raw: Optional[dict]) -> PayrollFilters:
    raw = raw or {}
    excluded = raw.get("excluded_classes")
    return PayrollFilters(
        start_date=_as_date(raw.get("start_date")),
        end_date=_as_date(raw.get("end_date")),
        instructors=_as_str_list(raw.get("instructors")),
        excluded_classes=list(DEFAULT_EXCLUDED_CLASSES) if excluded is None else _as_str_list(excluded),
    )


def normalize_first_visit_filters(raw: Optional[dict]) -> FirstVisitFilters:
    raw = raw or {}
    referral_types = [r for r in _as_str_list(raw.get("referral_types")) if r in REFERRAL_CATEGORIES]
    return FirstVisitFilters(
        start_date=_as_date(raw.get("start_date")),
        end_date=_as_date(raw.get("end_date")),
        service_categories=_as_str_list(raw.get("service_categories")),
        staff=_as_str_list(raw.get("staff")),
        referral_types=referral_types,
    )


def _date_mask(dates: pd.Series, start: Optional[date], end: Optional[date]) -> pd.Series:
    """Rows inside ``[start, end]``; rows whose date cannot be parsed are kept."""
    mask = pd.Series(True, index=dates.index)
    days = dates.dt.normalize()
    if start is not None:
        mask &= ~(days < pd.Timestamp(start))
    if end is not None:
        mask &= ~(days > pd.Timestamp(end))
    return mask


def _select(records: Sequence[T], mask: pd.Series) -> List[T]:
    return [record for record, keep in zip(records, mask.tolist()) if keep]


def filter_payroll_records(records: Sequence[T], filters: PayrollFilters) -> List[T]:
    records = list(records)
    df = payroll_frame(records)
    if df.empty:
        return []
    mask = ~df["class_name"].isin(filters.excluded_classes)
    if filters.instructors:
        mask &= df["instructor_name"].isin(filters.instructors)
    if filters.start_date or filters.end_date:
        mask &= _date_mask(parse_class_dates(df["class_date"]), filters.start_date, filters.end_date)
    return _select(records, mask)


def filter_first_visit_records(records: Sequence[T], filters: FirstVisitFilters) -> List[T]:
    records = list(records)
    df = first_visit_frame(records)
    if df.empty:
        return []
    mask = pd.Series(True, index=df.index)
    if filters.start_date or filters.end_date:
        mask &= _date_mask(df["first_visit_date"], filters.start_date, filters.end_date)
    if filters.service_categories:
        mask &= df["service_category"].isin(filters.service_categories)
    if filters.staff:
        mask &= df["staff"].isin(filters.staff)
    if filters.referral_types:
        mask &= df["referral_type_normalized"].isin(filters.referral_types)
    return _select(records, mask)

from __future__ import annotations

import html
import math
import re
from dataclasses import asdict, fields, is_dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from studio_core.models import FirstVisitRecord, PayrollRecord

PAYROLL_COLUMNS = [f.name for f in fields(PayrollRecord)]
FIRST_VISIT_COLUMNS = [f.name for f in fields(FirstVisitRecord)]

WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
EARLIEST_CLASS_HOUR = 5
LATEST_CLASS_HOUR = 21

_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})")


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def _as_dict(record: object) -> Dict[str, Any]:
    if is_dataclass(record):
        return asdict(record)
    return dict(record)  # type: ignore[call-overload]


def records_frame(records: Iterable[object], columns: List[str]) -> pd.DataFrame:
    """Build a frame from dataclass records or plain dicts, always with ``columns``."""
    rows = [_as_dict(r) for r in records or []]
    df = pd.DataFrame(rows)
    for col in columns:
        if col not in df.columns:
            df[col] = pd.NA
    return df[columns].copy()


def payroll_frame(records: Iterable[object]) -> pd.DataFrame:
    df = records_frame(records, PAYROLL_COLUMNS)
    for col in ["instructor_name", "class_name", "class_date", "class_time"]:
        df[col] = df[col].fillna("").astype(str).str.strip()
    for col in ["staff_paid", "earnings"]:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)
    return df


def first_visit_frame(records: Iterable[object]) -> pd.DataFrame:
    df = records_frame(records, FIRST_VISIT_COLUMNS)
    for col in ["client_id", "service_category", "staff", "referral_type_normalized"]:
        df[col] = df[col].fillna("").astype(str)
    df["visits_since_first"] = pd.to_numeric(df["visits_since_first"], errors="coerce").fillna(0.0)
    df["first_visit_date"] = pd.to_datetime(df["first_visit_date"], errors="coerce")
    return df


def parse_class_dates(dates: pd.Series) -> pd.Series:
    return pd.to_datetime(dates.where(dates.ne(""), None), errors="coerce", format="mixed")


def _percent(count: int, total: int) -> float:
    if not total:
        return 0.0
    return round_half_up(count / total * 100, 1) or 0.0


def _sorted_desc(grouped: pd.DataFrame, col: str) -> pd.DataFrame:
    return grouped.sort_values(col, ascending=False, kind="stable").reset_index(drop=True)


# ---------------- Payroll ----------------
def _instructor_rows(records: Iterable[object]) -> pd.DataFrame:
    """Payroll rows with a named instructor; HTML entities are decoded before grouping."""
    df = payroll_frame(records)
    df["instructor_name"] = df["instructor_name"].map(html.unescape)
    return df[df["instructor_name"].ne("")]


def calculate_metrics(records: Iterable[object]) -> Dict[str, Any]:
    df = payroll_frame(records)
    if df.empty:
        return {"total_instructors": 0, "total_classes": 0, "total_sessions": 0, "total_earnings": 0.0}
    has_class = df["class_name"].ne("") | df["class_date"].ne("")
    return {
        "total_instructors": int(df.loc[df["instructor_name"].ne(""), "instructor_name"].nunique()),
        "total_classes": int(df.loc[df["class_name"].ne(""), "class_name"].nunique()),
        "total_sessions": int(has_class.sum()),
        "total_earnings": float(df["earnings"].sum()),
    }


def earnings_by_instructor(records: Iterable[object]) -> List[Dict[str, Any]]:
    df = _instructor_rows(records)
    if df.empty:
        return []
    grouped = df.groupby("instructor_name", sort=False)["earnings"].sum().reset_index()
    grouped = _sorted_desc(grouped, "earnings")
    return [
        {"name": row.instructor_name, "earnings": round_half_up(row.earnings, 2)}
        for row in grouped.itertuples(index=False)
    ]


def sessions_by_instructor(records: Iterable[object]) -> List[Dict[str, Any]]:
    df = _instructor_rows(records)
    if df.empty:
        return []
    grouped = df.groupby("instructor_name", sort=False).size().reset_index(name="sessions")
    grouped = _sorted_desc(grouped, "sessions")
    return [
        {"name": row.instructor_name, "sessions": int(row.sessions)}
        for row in grouped.itertuples(index=False)
    ]


def class_distribution(records: Iterable[object]) -> List[Dict[str, Any]]:
    df = payroll_frame(records)
    df = df[df["class_name"].ne("")]
    if df.empty:
        return []
    grouped = df.groupby("class_name", sort=False).size().reset_index(name="value")
    grouped = _sorted_desc(grouped, "value")
    return [{"name": row.class_name, "value": int(row.value)} for row in grouped.itertuples(index=False)]


def earnings_over_time(records: Iterable[object]) -> List[Dict[str, Any]]:
    """Earnings per class date, oldest first; unparseable dates sort last."""
    df = payroll_frame(records)
    df = df[df["class_date"].ne("")]
    if df.empty:
        return []
    grouped = df.groupby("class_date", sort=False)["earnings"].sum().reset_index()
    grouped["parsed"] = parse_class_dates(grouped["class_date"])
    grouped = grouped.sort_values(["parsed", "class_date"], na_position="last", kind="stable")
    return [
        {"date": row.class_date, "earnings": round_half_up(row.earnings, 2)}
        for row in grouped.itertuples(index=False)
    ]


def payroll_by_month(records: Iterable[object]) -> List[Dict[str, Any]]:
    df = payroll_frame(records)
    df = df[df["class_date"].ne("")].copy()
    if df.empty:
        return []
    df["parsed"] = parse_class_dates(df["class_date"])
    df = df.dropna(subset=["parsed"])
    if df.empty:
        return []
    df["month"] = df["parsed"].dt.strftime("%Y-%m")
    grouped = df.groupby("month")["earnings"].sum().reset_index().sort_values("month")
    return [
        {"month": row.month, "payroll": round_half_up(row.earnings, 2)}
        for row in grouped.itertuples(index=False)
    ]


def attendance_by_instructor(records: Iterable[object], *, limit: Optional[int] = 10) -> List[Dict[str, Any]]:
    """Average attendance (``staff_paid``) per class for each instructor, highest first."""
    df = _instructor_rows(records)
    if df.empty:
        return []
    grouped = (
        df.groupby("instructor_name", sort=False)["staff_paid"]
        .agg(total_attendance="sum", sessions="size")
        .reset_index()
    )
    grouped["avg_attendance"] = grouped["total_attendance"] / grouped["sessions"]
    grouped = _sorted_desc(grouped, "avg_attendance")
    if limit:
        grouped = grouped.head(limit)
    return [
        {
            "name": row.instructor_name,
            "avg_attendance": round_half_up(row.avg_attendance, 1),
            "total_attendance": float(row.total_attendance),
            "sessions": int(row.sessions),
        }
        for row in grouped.itertuples(index=False)
    ]


def class_hour(value: object) -> Optional[int]:
    """Hour of day (0-23) of a class time: ``HH:MM`` with optional am/pm, or a day fraction."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    match = _CLOCK.match(text)
    if match:
        hour = int(match.group(1))
        lowered = text.lower()
        if "pm" in lowered and hour != 12:
            hour += 12
        elif "am" in lowered and hour == 12:
            hour = 0
        return hour
    try:
        fraction = float(text)
    except ValueError:
        return None
    if 0 <= fraction < 1:
        return math.floor(fraction * 24)
    return None


def format_hour(hour: int) -> str:
    if hour in (0, 12):
        return f"12 {'AM' if hour == 0 else 'PM'}"
    return f"{hour} AM" if hour < 12 else f"{hour - 12} PM"


def _attendance_slots(records: Iterable[object]) -> pd.DataFrame:
    """Dated, timed classes inside studio hours with ``hour`` and Sunday-first ``weekday``."""
    df = payroll_frame(records)
    df = df[df["class_date"].ne("") & df["class_time"].ne("")].copy()
    if df.empty:
        return df
    df["parsed"] = parse_class_dates(df["class_date"])
    df["hour"] = df["class_time"].map(class_hour)
    df = df.dropna(subset=["parsed", "hour"])
    df = df[df["hour"].between(EARLIEST_CLASS_HOUR, LATEST_CLASS_HOUR)].copy()
    df["hour"] = df["hour"].astype(int)
    df["weekday"] = (df["parsed"].dt.dayofweek + 1) % 7
    return df


def attendance_by_hour(records: Iterable[object]) -> List[Dict[str, Any]]:
    slots = _attendance_slots(records)
    if slots.empty:
        return []
    overall = slots["staff_paid"].mean()
    grouped = slots.groupby("hour")["staff_paid"].agg(total="sum", sessions="size").reset_index()
    out = []
    for row in grouped.sort_values("hour").itertuples(index=False):
        avg = row.total / row.sessions
        out.append(
            {
                "hour": int(row.hour),
                "label": format_hour(int(row.hour)),
                "avg_attendance": round_half_up(avg, 1),
                "sessions": int(row.sessions),
                "above_avg": bool(avg > overall),
            }
        )
    return out


def attendance_by_weekday(records: Iterable[object]) -> List[Dict[str, Any]]:
    """One entry per weekday, Sunday first; days without classes report zero sessions."""
    slots = _attendance_slots(records)
    if slots.empty:
        return []
    overall = slots["staff_paid"].mean()
    stats = slots.groupby("weekday")["staff_paid"].agg(total="sum", sessions="size")
    out = []
    for idx, day in enumerate(WEEKDAYS):
        total = float(stats.at[idx, "total"]) if idx in stats.index else 0.0
        sessions = int(stats.at[idx, "sessions"]) if idx in stats.index else 0
        avg = total / sessions if sessions else 0.0
        out.append(
            {
                "day": day[:3],
                "full_day": day,
                "avg_attendance": round_half_up(avg, 1),
                "sessions": sessions,
                "above_avg": bool(sessions and avg > overall),
            }
        )
    return out


# ---------------- First visit ----------------
def calculate_first_visit_metrics(records: Iterable[object]) -> Dict[str, Any]:
    df = first_visit_frame(records)
    total = int(len(df))
    if not total:
        return {"total_clients": 0, "retention_rate_1_plus": 0.0, "retention_rate_10_plus": 0.0}
    visits = df["visits_since_first"]
    return {
        "total_clients": total,
        "retention_rate_1_plus": _percent(int((visits >= 1).sum()), total),
        "retention_rate_10_plus": _percent(int((visits >= 10).sum()), total),
    }


def _share_counts(df: pd.DataFrame, col: str, key: str) -> List[Dict[str, Any]]:
    total = int(len(df))
    if not total:
        return []
    labels = df[col].where(df[col].ne(""), "Unknown")
    grouped = labels.groupby(labels, sort=False).size().reset_index(name="clients")
    grouped.columns = [key, "clients"]
    grouped = _sorted_desc(grouped, "clients")
    return [
        {key: getattr(row, key), "count": int(row.clients), "percentage": _percent(int(row.clients), total)}
        for row in grouped.itertuples(index=False)
    ]


def new_clients_by_category(records: Iterable[object]) -> List[Dict[str, Any]]:
    return _share_counts(first_visit_frame(records), "service_category", "category")


def referral_source_counts(records: Iterable[object]) -> List[Dict[str, Any]]:
    return _share_counts(first_visit_frame(records), "referral_type_normalized", "source")


def new_clients_by_month(records: Iterable[object]) -> List[Dict[str, Any]]:
    df = first_visit_frame(records).dropna(subset=["first_visit_date"])
    if df.empty:
        return []
    months = df["first_visit_date"].dt.to_period("M")
    grouped = months.groupby(months).size().sort_index()
    return [
        {"month": period.strftime("%Y-%m"), "label": period.strftime("%b %y"), "count": int(count)}
        for period, count in grouped.items()
    ]


def retention_by_referral(records: Iterable[object], *, min_clients: int = 10) -> List[Dict[str, Any]]:
    df = first_visit_frame(records)
    if df.empty:
        return []
    df["source"] = df["referral_type_normalized"].where(df["referral_type_normalized"].ne(""), "Unknown")
    df["retained"] = df["visits_since_first"] >= 1
    df["high_retention"] = df["visits_since_first"] >= 10
    grouped = (
        df.groupby("source", sort=False)
        .agg(
            total_clients=("client_id", "size"),
            total_visits=("visits_since_first", "sum"),
            retained=("retained", "sum"),
            high_retention=("high_retention", "sum"),
        )
        .reset_index()
    )
    grouped = grouped[grouped["total_clients"] >= min_clients].copy()
    if grouped.empty:
        return []
    grouped["avg_visits"] = (grouped["total_visits"] / grouped["total_clients"]).apply(lambda v: round_half_up(v, 1))
    grouped = _sorted_desc(grouped, "avg_visits")
    return [
        {
            "source": row.source,
            "total_clients": int(row.total_clients),
            "total_visits": float(row.total_visits),
            "avg_visits": row.avg_visits,
            "retention_rate": _percent(int(row.retained), int(row.total_clients)),
            "high_retention_rate": _percent(int(row.high_retention), int(row.total_clients)),
        }
        for row in grouped.itertuples(index=False)
    ]

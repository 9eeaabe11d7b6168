from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


ColumnMapping = Dict[str, int]
SectionMap = Dict[int, str]


@dataclass(frozen=True)
class PayrollRecord:
    instructor_name: str
    class_name: str = ""
    class_date: str = ""
    class_time: str = ""
    staff_paid: float = 0.0
    earnings: float = 0.0


@dataclass(frozen=True)
class DateRange:
    start_date: str
    end_date: str
    raw: str


@dataclass(frozen=True)
class PayrollParseResult:
    date_range: Optional[DateRange]
    payroll_data: List[PayrollRecord] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.payroll_data)


@dataclass(frozen=True)
class FirstVisitRecord:
    record_id: int
    client_id: str
    client_name: str = ""
    first_visit_date: Optional[datetime] = None
    first_visit_date_str: Optional[str] = None
    visit_location: str = ""
    service_category: str = ""
    visit_type: str = ""
    pricing_option: str = ""
    booking_method: str = ""
    referral_type: str = ""
    referral_type_normalized: str = "Unassigned"
    staff: str = ""
    visits_since_first: float = 0.0
    phone: str = ""
    email: str = ""


@dataclass(frozen=True)
class FirstVisitDateRange:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class FirstVisitParseResult:
    first_visit_data: List[FirstVisitRecord] = field(default_factory=list)
    date_range: Optional[FirstVisitDateRange] = None
    service_categories: List[str] = field(default_factory=list)
    staff_list: List[str] = field(default_factory=list)
    referral_types: List[str] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return len(self.first_visit_data)

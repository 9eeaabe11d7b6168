from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PayrollFiltersModel(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructors: List[str] = Field(default_factory=list)
    excluded_classes: Optional[List[str]] = None


class FirstVisitFiltersModel(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    service_categories: List[str] = Field(default_factory=list)
    staff: List[str] = Field(default_factory=list)
    referral_types: List[str] = Field(default_factory=list)


class PayrollRecordModel(BaseModel):
    instructor_name: str
    class_name: str = ""
    class_date: str = ""
    class_time: str = ""
    staff_paid: float = 0.0
    earnings: float = 0.0


class FirstVisitRecordModel(BaseModel):
    record_id: int = 0
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


class PayrollMetricsRequest(BaseModel):
    records: List[PayrollRecordModel] = Field(default_factory=list)
    filters: PayrollFiltersModel = Field(default_factory=PayrollFiltersModel)


class FirstVisitMetricsRequest(BaseModel):
    records: List[FirstVisitRecordModel] = Field(default_factory=list)
    filters: FirstVisitFiltersModel = Field(default_factory=FirstVisitFiltersModel)

from datetime import date, datetime

from studio_core.filters import (
    DEFAULT_EXCLUDED_CLASSES,
    FirstVisitFilters,
    PayrollFilters,
    filter_first_visit_records,
    filter_payroll_records,
    normalize_first_visit_filters,
    normalize_payroll_filters,
)
from studio_core.models import FirstVisitRecord, PayrollRecord

PAYROLL = [
    PayrollRecord("Smith, Jane", "Yoga Flow", "1/2/2024", earnings=50.0),
    PayrollRecord("Smith, Jane", "Front Desk", "1/2/2024", earnings=30.0),
    PayrollRecord("Doe, John", "Barre", "1/20/2024", earnings=60.0),
    PayrollRecord("Doe, John", "Barre", "TBD", earnings=10.0),
]

CLIENTS = [
    FirstVisitRecord(1, "C1", first_visit_date=datetime(2024, 1, 1), service_category="Yoga", staff="Smith, Jane", referral_type_normalized="Social Media"),
    FirstVisitRecord(2, "C2", first_visit_date=datetime(2024, 2, 1), service_category="Pilates", staff="Doe, John", referral_type_normalized="ClassPass"),
    FirstVisitRecord(3, "C3", service_category="Yoga", staff="Doe, John"),
]


class TestNormalize:
    def test_payroll_defaults(self):
        filters = normalize_payroll_filters(None)
        assert filters == PayrollFilters()
        assert filters.excluded_classes == list(DEFAULT_EXCLUDED_CLASSES)

    def test_payroll_values(self):
        filters = normalize_payroll_filters(
            {
                "start_date": "2024-01-05",
                "end_date": date(2024, 1, 31),
                "instructors": [" Doe, John ", "Doe, John", None],
                "excluded_classes": [],
            }
        )
        assert filters.start_date == date(2024, 1, 5)
        assert filters.end_date == date(2024, 1, 31)
        assert filters.instructors == ["Doe, John"]
        assert filters.excluded_classes == []

    def test_bad_dates_are_ignored(self):
        assert normalize_payroll_filters({"start_date": "not a date"}).start_date is None

    def test_first_visit_drops_unknown_referral_types(self):
        filters = normalize_first_visit_filters({"referral_types": ["Social Media", "Carrier Pigeon"], "staff": "Doe, John"})
        assert filters.referral_types == ["Social Media"]
        assert filters.staff == ["Doe, John"]
        assert normalize_first_visit_filters({}) == FirstVisitFilters()


class TestPayrollFiltering:
    def test_front_desk_excluded_by_default(self):
        kept = filter_payroll_records(PAYROLL, normalize_payroll_filters({}))
        assert [r.class_name for r in kept] == ["Yoga Flow", "Barre", "Barre"]

    def test_instructor_filter(self):
        kept = filter_payroll_records(PAYROLL, normalize_payroll_filters({"instructors": ["Doe, John"]}))
        assert {r.instructor_name for r in kept} == {"Doe, John"}

    def test_date_window_keeps_unparseable_dates(self):
        filters = normalize_payroll_filters({"start_date": "2024-01-05", "end_date": "2024-01-31", "excluded_classes": []})
        kept = filter_payroll_records(PAYROLL, filters)
        assert [r.class_date for r in kept] == ["1/20/2024", "TBD"]

    def test_works_on_dicts(self):
        rows = [{"instructor_name": "Smith, Jane", "class_name": "Front Desk", "class_date": "1/2/2024"}]
        assert filter_payroll_records(rows, PayrollFilters()) == []
        assert filter_payroll_records(rows, PayrollFilters(excluded_classes=[])) == rows

    def test_empty_input(self):
        assert filter_payroll_records([], PayrollFilters()) == []


class TestFirstVisitFiltering:
    def test_no_filters_keeps_everything(self):
        assert filter_first_visit_records(CLIENTS, FirstVisitFilters()) == CLIENTS

    def test_date_window_keeps_undated_clients(self):
        kept = filter_first_visit_records(CLIENTS, FirstVisitFilters(start_date=date(2024, 1, 15)))
        assert [r.client_id for r in kept] == ["C2", "C3"]

    def test_category_staff_and_referral(self):
        assert [r.client_id for r in filter_first_visit_records(CLIENTS, FirstVisitFilters(service_categories=["Yoga"]))] == ["C1", "C3"]
        assert [r.client_id for r in filter_first_visit_records(CLIENTS, FirstVisitFilters(staff=["Doe, John"]))] == ["C2", "C3"]
        assert [r.client_id for r in filter_first_visit_records(CLIENTS, FirstVisitFilters(referral_types=["ClassPass"]))] == ["C2"]

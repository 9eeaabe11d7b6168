from datetime import datetime

import pytest

from studio_core.errors import ParseError
from studio_core.first_visit import (
    FIRST_VISIT_ERROR,
    REFERRAL_CATEGORIES,
    format_date_key,
    load_first_visit_report,
    normalize_referral_type,
    parse_first_visit_date,
    parse_first_visit_workbook,
)

from tests.conftest import FIRST_VISIT_HEADER


class TestReferralNormalization:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, "Unassigned"),
            ("", "Unassigned"),
            ("Unassigned", "Unassigned"),
            ("ClassPass", "ClassPass"),
            ("class pass app", "ClassPass"),
            ("Referred by another client", "Word of Mouth"),
            ("My sister", "Word of Mouth"),
            ("Google", "Internet Search"),
            ("Instagram Story", "Social Media"),
            ("Bend Pride booth", "Event"),
            ("Walk-by", "Walk By"),
            ("Source Weekly ad", "Print Media"),
            ("Tumalo Creek", "Partner"),
            ("Saw an instructor post", "Instructor"),
            ("Something else", "Other"),
        ],
    )
    def test_categories(self, raw, expected):
        assert normalize_referral_type(raw) == expected

    def test_earlier_rules_win(self):
        # "Reserve with Google" contains "google", so the search rule claims it first.
        assert normalize_referral_type("Reserve with Google") == "Internet Search"
        assert normalize_referral_type("ClassPass friend") == "ClassPass"

    def test_results_are_known_categories(self):
        for raw in ["", "Facebook", "newspaper", "random", "friend"]:
            assert normalize_referral_type(raw) in REFERRAL_CATEGORIES


class TestFirstVisitDates:
    def test_serial_truncates_to_day(self):
        assert parse_first_visit_date(45323.6) == datetime(2024, 2, 1)

    def test_datetime_cells(self):
        assert parse_first_visit_date(datetime(2024, 3, 5, 14, 30)) == datetime(2024, 3, 5)

    def test_missing(self):
        assert parse_first_visit_date(None) is None
        assert parse_first_visit_date("soon") is None
        assert format_date_key(None) is None

    def test_date_key(self):
        assert format_date_key(datetime(2024, 3, 5)) == "2024-03-05"


class TestParseWorkbook:
    def test_rows(self, first_visit_workbook):
        result = parse_first_visit_workbook(first_visit_workbook)
        assert result.total_records == 3
        ann, bob, cy = result.first_visit_data

        assert ann.record_id == 1
        assert ann.client_id == "C1"
        assert ann.first_visit_date == datetime(2024, 1, 1)
        assert ann.first_visit_date_str == "2024-01-01"
        assert ann.booking_method == "Online"
        assert ann.referral_type == "Instagram Story"
        assert ann.referral_type_normalized == "Social Media"
        assert ann.visits_since_first == 12.0

        assert bob.first_visit_date_str == "2024-02-01"
        assert bob.referral_type_normalized == "ClassPass"
        assert bob.visits_since_first == 0.0

        assert cy.record_id == 4
        assert cy.first_visit_date is None
        assert cy.first_visit_date_str is None
        assert cy.referral_type == ""
        assert cy.referral_type_normalized == "Unassigned"
        assert cy.visits_since_first == 0.0
        assert cy.phone == ""

    def test_summary_lists(self, first_visit_workbook):
        result = parse_first_visit_workbook(first_visit_workbook)
        assert result.service_categories == ["Pilates", "Yoga Classes"]
        assert result.staff_list == ["Doe, John", "Smith, Jane"]
        assert result.referral_types == ["ClassPass", "Social Media", "Unassigned"]
        assert result.date_range.start == datetime(2024, 1, 1)
        assert result.date_range.end == datetime(2024, 2, 1)

    def test_no_dates_means_no_range(self, build_workbook):
        content = build_workbook([FIRST_VISIT_HEADER, ["C9", "Dee"]])
        result = parse_first_visit_workbook(content)
        assert result.total_records == 1
        assert result.date_range is None

    def test_unreadable_bytes(self):
        with pytest.raises(ParseError) as excinfo:
            parse_first_visit_workbook(b"not a workbook")
        assert str(excinfo.value) == FIRST_VISIT_ERROR


def test_load_from_path(tmp_path, first_visit_workbook):
    path = tmp_path / "first_visit.xlsx"
    path.write_bytes(first_visit_workbook)
    assert load_first_visit_report(path).total_records == 3


def test_na_like_text_is_kept(build_workbook):
    row = ["NA", "Nan", 45292, "Studio", "Yoga Classes", "Class", "Intro", "Online", "N/A", "None", 2, None, None]
    result = parse_first_visit_workbook(build_workbook([FIRST_VISIT_HEADER, row]))
    assert result.total_records == 1
    record = result.first_visit_data[0]
    assert record.client_id == "NA"
    assert record.client_name == "Nan"
    assert record.referral_type == "N/A"
    assert record.referral_type_normalized == "Other"
    assert record.staff == "None"

"""Shared fixtures: in-memory workbooks built with openpyxl."""

import io
from typing import Callable, Sequence

import openpyxl
import pytest


def _workbook_bytes(*sheets: Sequence[Sequence[object]]) -> bytes:
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for idx, rows in enumerate(sheets or ([],)):
        ws = wb.create_sheet(f"Sheet{idx + 1}")
        for row in rows:
            ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def build_workbook() -> Callable[..., bytes]:
    """Return a factory: ``build_workbook(rows_sheet1, rows_sheet2, ...) -> bytes``."""
    return _workbook_bytes


PAYROLL_HEADER = ["Class Name", "Class Date", "Class Time", "# Staff Paid", "Total Earnings"]

FIRST_VISIT_HEADER = [
    "Client ID",
    "Client",
    "First Visit",
    "Visit Location",
    "Service Category",
    "Visit Type",
    "Pricing Option",
    "Booking Method",
    "Referral Type",
    "Staff",
    "# Visits since First Visit",
    "Phone",
    "Email",
]


@pytest.fixture
def payroll_workbook(build_workbook) -> bytes:
    """Four sheets: two sections closed by total rows plus a trailing sheet."""
    sheet1 = [
        ["Pay Period: 01/01/2024 - 01/31/2024"],
        [],
        PAYROLL_HEADER,
        ["Yoga Flow", "1/2/2024", 0.375, 5, "$50.00"],
        ["Pilates", "1/3/2024", 0.75, 3, "$1,030.50"],
    ]
    sheet2 = [
        PAYROLL_HEADER,
        ["Yoga Flow", "1/9/2024", 0.375, 4, "$45.00"],
        ["Total for Smith, Jane", None, None, 12, "$1,125.50"],
    ]
    sheet3 = [
        PAYROLL_HEADER,
        ["Barre", 45300, "6:30 PM", 6, 60],
        [None, None, None, 2, 10],
        ["Total for Doe, John", None, None, 6, 60],
    ]
    sheet4 = [
        PAYROLL_HEADER,
        ["Barre", "1/20/2024", "7:00 AM", 2, "20"],
    ]
    return build_workbook(sheet1, sheet2, sheet3, sheet4)


@pytest.fixture
def first_visit_workbook(build_workbook) -> bytes:
    rows = [
        FIRST_VISIT_HEADER,
        ["C1", "Ann", 45292, "Studio", "Yoga Classes", "Class", "Intro", " Online ", "Instagram Story", "Smith, Jane", 12, "555-0101", "ann@example.com"],
        ["C2", "Bob", 45323.6, "Studio", "Pilates", "Class", "Drop In", "Front Desk", "ClassPass", "Doe, John", 0, "555-0102", "bob@example.com"],
        [None, "Ghost", 45300, "Studio", "Yoga Classes", "Class", "Intro", "Online", "Google", "Smith, Jane", 3, None, None],
        ["C3", "Cy", None, "Studio", "Yoga Classes", "Class", "Intro", "Online", None, "Smith, Jane", None, None, None],
    ]
    return build_workbook(rows)

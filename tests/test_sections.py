from studio_core.sections import fill_sections, find_section_boundaries, resolve_sections

from tests.conftest import PAYROLL_HEADER


def _sheet(*rows):
    return [PAYROLL_HEADER, ["Yoga", "1/1/2024", 0.5, 3, 30], *rows]


class TestSectionBoundaries:
    def test_one_boundary_per_sheet(self):
        sheets = [_sheet(["Total for Smith, Jane"], ["Total for Doe, John"])]
        assert find_section_boundaries(sheets) == [(0, "Smith, Jane")]

    def test_sheets_without_totals_have_no_boundary(self):
        assert find_section_boundaries([_sheet(), _sheet()]) == []


class TestFillSections:
    def test_sheets_before_boundary_belong_to_it(self):
        assert fill_sections([(1, "Smith, Jane"), (2, "Doe, John")], 4) == {
            0: "Smith, Jane",
            1: "Smith, Jane",
            2: "Doe, John",
            3: "Doe, John",
        }

    def test_single_boundary_covers_every_sheet(self):
        assert fill_sections([(0, "Smith, Jane")], 3) == {0: "Smith, Jane", 1: "Smith, Jane", 2: "Smith, Jane"}

    def test_no_boundaries(self):
        assert fill_sections([], 3) == {}


def test_resolve_sections():
    sheets = [
        _sheet(),
        _sheet(["Total for Smith, Jane"]),
        _sheet(["Total for Doe, John"]),
        _sheet(),
    ]
    assert resolve_sections(sheets) == {0: "Smith, Jane", 1: "Smith, Jane", 2: "Doe, John", 3: "Doe, John"}

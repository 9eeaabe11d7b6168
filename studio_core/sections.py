from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from studio_core.models import SectionMap
from studio_core.rows import Row, total_row_instructor

logger = logging.getLogger(__name__)

Sheet = Sequence[Row]


def find_section_boundaries(sheets: Sequence[Sheet]) -> List[Tuple[int, str]]:
    """Return ``(sheet_index, instructor)`` for each sheet closing a section.

    A sheet contributes at most one boundary: its first ``"Total for <name>"``
    row.
    """
    boundaries: List[Tuple[int, str]] = []
    for sheet_idx, rows in enumerate(sheets):
        for row in rows:
            name = total_row_instructor(row)
            if name:
                boundaries.append((sheet_idx, name))
                break
    return boundaries


def fill_sections(boundaries: Sequence[Tuple[int, str]], sheet_count: int) -> SectionMap:
    """Expand section boundaries into a dense sheet -> instructor map.

    Sheets before a boundary belong to the instructor named at that boundary;
    sheets after the last boundary inherit the last instructor seen.
    """
    sections: SectionMap = {}
    section_start = 0
    last_instructor: Optional[str] = None
    for boundary_idx, name in boundaries:
        for sheet_idx in range(section_start, boundary_idx + 1):
            sections[sheet_idx] = name
        logger.debug("Instructor section %r covers sheets %d-%d", name, section_start, boundary_idx)
        section_start = boundary_idx + 1
        last_instructor = name
    if section_start < sheet_count and last_instructor:
        for sheet_idx in range(section_start, sheet_count):
            sections[sheet_idx] = last_instructor
    return sections


def resolve_sections(sheets: Sequence[Sheet]) -> SectionMap:
    sections = fill_sections(find_section_boundaries(sheets), len(sheets))
    logger.debug("Mapped %d of %d sheets to instructors", len(sections), len(sheets))
    return sections

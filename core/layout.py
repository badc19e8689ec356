from __future__ import annotations

from enum import Enum
from typing import Sequence

from config import SINGLE_SHEET_FIXED_HEADERS


class ExcelExportMode(str, Enum):
    SINGLE_SHEET = "SINGLE_SHEET"
    MULTIPLE_SHEETS = "MULTIPLE_SHEETS"


def is_single_sheet_header(first_row: Sequence[str] | None) -> bool:
    if not first_row:
        return False
    expected = list(SINGLE_SHEET_FIXED_HEADERS)
    return list(first_row[: len(expected)]) == expected


def detect_layout(first_row: Sequence[str] | None) -> ExcelExportMode:
    if is_single_sheet_header(first_row):
        return ExcelExportMode.SINGLE_SHEET
    return ExcelExportMode.MULTIPLE_SHEETS

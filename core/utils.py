from __future__ import annotations

import re

_CELL_REFERENCE = re.compile(r"^\$?([A-Za-z]{1,3})\$?(\d*)$")


def column_letters(column: int) -> str:
    """Return the A1-style letters for a zero-based column index."""
    if column < 0:
        raise ValueError("Column index must be >= 0.")
    letters = ""
    index = column + 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def column_index(reference: str) -> int:
    """Return the zero-based column index of a cell reference such as ``"C7"``."""
    match = _CELL_REFERENCE.match(reference.strip())
    if match is None:
        raise ValueError(f"Invalid cell reference: {reference}")
    value = 0
    for char in match.group(1).upper():
        value = value * 26 + (ord(char) - 64)
    return value - 1


def cell_reference(column: int, row_number: int) -> str:
    return f"{column_letters(column)}{row_number}"


def local_name(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag

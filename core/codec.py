from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Iterable, Iterator, Sequence

from lxml import etree

from core.utils import cell_reference, column_index, local_name


logger = logging.getLogger(__name__)

SPREADSHEET_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"


def _tag(name: str) -> str:
    return f"{{{SPREADSHEET_NS}}}{name}"


class CellKind(str, Enum):
    TEXT = "TEXT"
    SHARED_STRING = "SHARED_STRING"
    RICH_TEXT = "RICH_TEXT"


@dataclass(frozen=True)
class Cell:
    """One stored cell.

    ``TEXT`` cells carry their value directly, ``SHARED_STRING`` cells carry
    an index into the shared string table as text, and ``RICH_TEXT`` cells have
    no value payload and are made of text fragments.
    """

    column: int
    kind: CellKind = CellKind.TEXT
    text: str = ""
    fragments: tuple[str, ...] = ()

    def resolve(self, shared_strings: Sequence[str] | None) -> str:
        if self.kind == CellKind.RICH_TEXT:
            return "".join(self.fragments)
        if self.kind == CellKind.SHARED_STRING:
            return _lookup_shared_string(self.text, shared_strings)
        return self.text


def _lookup_shared_string(text: str, shared_strings: Sequence[str] | None) -> str:
    if shared_strings is None:
        return text
    try:
        index = int(text)
    except ValueError:
        index = -1
    if 0 <= index < len(shared_strings):
        return shared_strings[index]
    logger.warning("Shared string reference %r is out of range; using stored text", text)
    return text


def decode_row(cells: Iterable[Cell], shared_strings: Sequence[str] | None = None) -> list[str]:
    """Expand sparse cells into a dense row, filling skipped columns with ``""``."""
    values: list[str] = []
    position = 0
    for cell in cells:
        while position < cell.column:
            values.append("")
            position += 1
        values.append(cell.resolve(shared_strings))
        position += 1
    return values


def encode_row(values: Iterable[str | None]) -> list[Cell]:
    return [
        Cell(column=index, kind=CellKind.TEXT, text=value or "")
        for index, value in enumerate(values)
    ]


def _text_fragments(element: etree._Element) -> tuple[str, ...]:
    return tuple(node.text or "" for node in element.iter(_tag("t")))


def read_cell(element: etree._Element, position: int) -> Cell:
    reference = element.get("r")
    column = column_index(reference) if reference else position
    value_node = element.find(_tag("v"))
    if value_node is None:
        return Cell(column=column, kind=CellKind.RICH_TEXT, fragments=_text_fragments(element))
    text = value_node.text or ""
    if element.get("t") == "s":
        return Cell(column=column, kind=CellKind.SHARED_STRING, text=text)
    return Cell(column=column, kind=CellKind.TEXT, text=text)


def read_row(element: etree._Element) -> list[Cell]:
    cells: list[Cell] = []
    position = 0
    for child in element:
        if not isinstance(child.tag, str) or local_name(child.tag) != "c":
            continue
        cell = read_cell(child, position)
        cells.append(cell)
        position = cell.column + 1
    return cells


def iter_rows(worksheet: etree._Element) -> Iterator[list[Cell]]:
    sheet_data = worksheet.find(_tag("sheetData"))
    if sheet_data is None:
        return
    for row in sheet_data.iterchildren(_tag("row")):
        yield read_row(row)


def read_shared_strings(root: etree._Element) -> list[str]:
    return ["".join(_text_fragments(item)) for item in root.iterchildren(_tag("si"))]


def write_row(sheet_data: etree._Element, row_number: int, cells: Iterable[Cell]) -> etree._Element:
    row = etree.SubElement(sheet_data, _tag("row"), r=str(row_number))
    for cell in cells:
        node = etree.SubElement(
            row,
            _tag("c"),
            r=cell_reference(cell.column, row_number),
            t="inlineStr",
        )
        inline = etree.SubElement(node, _tag("is"))
        text = etree.SubElement(inline, _tag("t"))
        text.set(XML_SPACE, "preserve")
        text.text = cell.text
    return row

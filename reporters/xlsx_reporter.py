from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Sequence
import zipfile

from lxml import etree

from config import FIXED_COLUMN_HEADERS, SINGLE_SHEET_FIXED_HEADERS, SINGLE_SHEET_NAME
from core.codec import SPREADSHEET_NS, encode_row, write_row
from core.diff_engine import language_column_headers, language_data_columns
from core.layout import ExcelExportMode
from core.models import ResourceManager
from core.scope import FullScope, ResourceScope, entities_in_scope, scope_languages
from core.sheet_naming import SheetEntity, assign_sheet_names
from reporters.base import BaseReporter


logger = logging.getLogger(__name__)

CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"
PACKAGE_RELATIONSHIPS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
OFFICE_RELATIONSHIPS_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
OFFICE_DOCUMENT_TYPE = f"{OFFICE_RELATIONSHIPS_NS}/officeDocument"
WORKSHEET_TYPE = f"{OFFICE_RELATIONSHIPS_NS}/worksheet"
WORKBOOK_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"
WORKSHEET_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"
RELATIONSHIPS_CONTENT_TYPE = "application/vnd.openxmlformats-package.relationships+xml"


@dataclass
class SheetContent:
    name: str
    sheet_id: int
    relationship_id: str
    rows: list[list[str]]

    @property
    def part_name(self) -> str:
        return f"worksheets/sheet{self.sheet_id}.xml"


def _serialize(root: etree._Element) -> bytes:
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=True)


def _content_types_xml(sheets: Sequence[SheetContent]) -> bytes:
    root = etree.Element(f"{{{CONTENT_TYPES_NS}}}Types", nsmap={None: CONTENT_TYPES_NS})
    etree.SubElement(
        root,
        f"{{{CONTENT_TYPES_NS}}}Default",
        Extension="rels",
        ContentType=RELATIONSHIPS_CONTENT_TYPE,
    )
    etree.SubElement(
        root,
        f"{{{CONTENT_TYPES_NS}}}Default",
        Extension="xml",
        ContentType="application/xml",
    )
    etree.SubElement(
        root,
        f"{{{CONTENT_TYPES_NS}}}Override",
        PartName="/xl/workbook.xml",
        ContentType=WORKBOOK_CONTENT_TYPE,
    )
    for sheet in sheets:
        etree.SubElement(
            root,
            f"{{{CONTENT_TYPES_NS}}}Override",
            PartName=f"/xl/{sheet.part_name}",
            ContentType=WORKSHEET_CONTENT_TYPE,
        )
    return _serialize(root)


def _relationships_xml(relationships: Sequence[tuple[str, str, str]]) -> bytes:
    root = etree.Element(
        f"{{{PACKAGE_RELATIONSHIPS_NS}}}Relationships",
        nsmap={None: PACKAGE_RELATIONSHIPS_NS},
    )
    for rel_id, rel_type, target in relationships:
        etree.SubElement(
            root,
            f"{{{PACKAGE_RELATIONSHIPS_NS}}}Relationship",
            Id=rel_id,
            Type=rel_type,
            Target=target,
        )
    return _serialize(root)


def _workbook_xml(sheets: Sequence[SheetContent]) -> bytes:
    root = etree.Element(
        f"{{{SPREADSHEET_NS}}}workbook",
        nsmap={None: SPREADSHEET_NS, "r": OFFICE_RELATIONSHIPS_NS},
    )
    sheets_node = etree.SubElement(root, f"{{{SPREADSHEET_NS}}}sheets")
    for sheet in sheets:
        node = etree.SubElement(sheets_node, f"{{{SPREADSHEET_NS}}}sheet")
        node.set("name", sheet.name)
        node.set("sheetId", str(sheet.sheet_id))
        node.set(f"{{{OFFICE_RELATIONSHIPS_NS}}}id", sheet.relationship_id)
    return _serialize(root)


def _worksheet_xml(rows: Sequence[Sequence[str]]) -> bytes:
    root = etree.Element(f"{{{SPREADSHEET_NS}}}worksheet", nsmap={None: SPREADSHEET_NS})
    sheet_data = etree.SubElement(root, f"{{{SPREADSHEET_NS}}}sheetData")
    for row_number, values in enumerate(rows, start=1):
        write_row(sheet_data, row_number, encode_row(values))
    return _serialize(root)


def write_workbook(output_path: str, sheets: Sequence[SheetContent]) -> None:
    """Write a minimal spreadsheet package; a partially written file is removed."""
    path = Path(output_path)
    try:
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr("[Content_Types].xml", _content_types_xml(sheets))
            archive.writestr(
                "_rels/.rels",
                _relationships_xml([("rId1", OFFICE_DOCUMENT_TYPE, "xl/workbook.xml")]),
            )
            archive.writestr("xl/workbook.xml", _workbook_xml(sheets))
            archive.writestr(
                "xl/_rels/workbook.xml.rels",
                _relationships_xml(
                    [(sheet.relationship_id, WORKSHEET_TYPE, sheet.part_name) for sheet in sheets]
                ),
            )
            for sheet in sheets:
                archive.writestr(f"xl/{sheet.part_name}", _worksheet_xml(sheet.rows))
    except Exception:
        path.unlink(missing_ok=True)
        raise


class XlsxReporter(BaseReporter):
    name = "XLSX Resource Exporter"
    output_extension = ".xlsx"

    def export(
        self,
        resource_manager: ResourceManager,
        output_path: str,
        scope: ResourceScope | None = None,
        mode: ExcelExportMode = ExcelExportMode.SINGLE_SHEET,
    ) -> str:
        if mode == ExcelExportMode.MULTIPLE_SHEETS:
            sheets = self.build_multiple_sheets(resource_manager, scope)
        else:
            sheets = [
                self.build_single_sheet(scope or FullScope(resource_manager.resource_entities))
            ]
        write_workbook(output_path, sheets)
        logger.info(
            "Exported %d sheet(s) to %s (%s)",
            len(sheets),
            output_path,
            mode.value,
        )
        return output_path

    @staticmethod
    def build_single_sheet(scope: ResourceScope) -> SheetContent:
        languages = scope_languages(scope)
        rows = [[*SINGLE_SHEET_FIXED_HEADERS, *language_column_headers(languages, scope)]]
        for entry in scope.entries:
            entity = entry.container
            rows.append(
                [
                    entity.project_name,
                    entity.unique_name or "",
                    entry.key,
                    *language_data_columns(entry, languages, scope),
                ]
            )
        return SheetContent(name=SINGLE_SHEET_NAME, sheet_id=1, relationship_id="rId1", rows=rows)

    @staticmethod
    def build_multiple_sheets(
        resource_manager: ResourceManager,
        scope: ResourceScope | None,
    ) -> list[SheetContent]:
        sheet_entities = assign_sheet_names(resource_manager.resource_entities)
        if scope is not None:
            in_scope = entities_in_scope(scope)
            sheet_entities = [
                item
                for item in sheet_entities
                if any(item.entity is entity for entity in in_scope)
            ]
        return [XlsxReporter._entity_sheet(item, scope) for item in sheet_entities]

    @staticmethod
    def _entity_sheet(item: SheetEntity, scope: ResourceScope | None) -> SheetContent:
        entity = item.entity
        cultures = entity.cultures
        if scope is None:
            entries = list(entity.entries)
        else:
            entries = [entry for entry in scope.entries if entry.container is entity]

        rows = [[*FIXED_COLUMN_HEADERS, *language_column_headers(cultures, scope)]]
        for entry in entries:
            rows.append([entry.key, *language_data_columns(entry, cultures, scope)])
        logger.debug("Sheet %r: %d entries", item.sheet_name, len(entries))
        return SheetContent(
            name=item.sheet_name,
            sheet_id=item.sheet_id,
            relationship_id=item.relationship_id,
            rows=rows,
        )

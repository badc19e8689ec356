from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path, PurePosixPath
import posixpath
from typing import Iterable, Sequence
import zipfile

from lxml import etree

from config import FIXED_COLUMN_HEADERS
from core.codec import SPREADSHEET_NS, decode_row, iter_rows, read_shared_strings
from core.diff_engine import TableDiffer
from core.layout import ExcelExportMode, detect_layout
from core.models import (
    CultureKey,
    EntryChange,
    ImportMappingError,
    ResourceEntity,
    ResourceManager,
    WorkbookError,
)
from core.sheet_naming import SheetEntity, assign_sheet_names, find_sheet_entity
from core.utils import local_name
from parsers.base import BaseParser


logger = logging.getLogger(__name__)

OFFICE_RELATIONSHIPS_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
OFFICE_DOCUMENT_SUFFIX = "/officeDocument"
SHARED_STRINGS_SUFFIX = "/sharedStrings"
DEFAULT_WORKBOOK_PART = "xl/workbook.xml"


@dataclass(frozen=True)
class WorkbookSheet:
    name: str
    part_name: str


def _rels_path(part_name: str) -> str:
    part = PurePosixPath(part_name)
    return str(part.parent / "_rels" / f"{part.name}.rels")


def _resolve_target(source_part: str, target: str) -> str:
    normalized = target.replace("\\", "/").strip()
    if normalized.startswith("/"):
        return normalized.lstrip("/")
    base_dir = posixpath.dirname(source_part)
    return posixpath.normpath(posixpath.join(base_dir, normalized))


class WorkbookReader:
    """Reads sheets and shared strings from an open spreadsheet package."""

    def __init__(self, archive: zipfile.ZipFile, filepath: str) -> None:
        self.archive = archive
        self.filepath = filepath
        self._names = set(archive.namelist())
        self.workbook_part = self._find_workbook_part()
        self._relationships = self._read_relationships(self.workbook_part)

    def _parse_part(self, part_name: str) -> etree._Element:
        try:
            data = self.archive.read(part_name)
            parser = etree.XMLParser(resolve_entities=False, recover=False)
            return etree.fromstring(data, parser)
        except KeyError as exc:
            raise WorkbookError(self.filepath, f"missing part '{part_name}'") from exc
        except (etree.XMLSyntaxError, zipfile.BadZipFile) as exc:
            raise WorkbookError(self.filepath, f"invalid part '{part_name}': {exc}") from exc

    def _read_relationships(self, part_name: str) -> dict[str, tuple[str, str]]:
        rels_path = _rels_path(part_name)
        if rels_path not in self._names:
            return {}
        relationships: dict[str, tuple[str, str]] = {}
        for node in self._parse_part(rels_path):
            if not isinstance(node.tag, str) or local_name(node.tag) != "Relationship":
                continue
            rel_id = node.get("Id")
            target = node.get("Target")
            if rel_id and target:
                relationships[rel_id] = (node.get("Type") or "", _resolve_target(part_name, target))
        return relationships

    def _find_workbook_part(self) -> str:
        for rel_type, target in self._read_relationships("").values():
            if rel_type.endswith(OFFICE_DOCUMENT_SUFFIX):
                return target
        if DEFAULT_WORKBOOK_PART in self._names:
            return DEFAULT_WORKBOOK_PART
        raise WorkbookError(self.filepath, "no workbook part found")

    def sheets(self) -> list[WorkbookSheet]:
        root = self._parse_part(self.workbook_part)
        if local_name(root.tag) != "workbook":
            raise WorkbookError(self.filepath, f"unexpected root element '{local_name(root.tag)}'")
        sheets: list[WorkbookSheet] = []
        for node in root.iter(f"{{{SPREADSHEET_NS}}}sheet"):
            rel_id = node.get(f"{{{OFFICE_RELATIONSHIPS_NS}}}id")
            relationship = self._relationships.get(rel_id or "")
            if relationship is None:
                raise WorkbookError(self.filepath, f"sheet '{node.get('name')}' has no part")
            sheets.append(WorkbookSheet(name=node.get("name") or "", part_name=relationship[1]))
        return sheets

    def shared_strings(self) -> list[str] | None:
        for rel_type, target in self._relationships.values():
            if rel_type.endswith(SHARED_STRINGS_SUFFIX) and target in self._names:
                return read_shared_strings(self._parse_part(target))
        return None

    def table(self, sheet: WorkbookSheet, shared_strings: Sequence[str] | None) -> list[list[str]]:
        worksheet = self._parse_part(sheet.part_name)
        try:
            return [decode_row(cells, shared_strings) for cells in iter_rows(worksheet)]
        except ValueError as exc:
            raise WorkbookError(self.filepath, f"sheet '{sheet.name}': {exc}") from exc


def _group_rows(rows: Iterable[list[str]]) -> dict[str, tuple[str, list[list[str]]]]:
    """Group rows case-insensitively on their first column, dropping that column."""
    groups: dict[str, tuple[str, list[list[str]]]] = {}
    for row in rows:
        value = row[0] if row else ""
        folded = value.casefold()
        if folded not in groups:
            groups[folded] = (value, [])
        groups[folded][1].append(row[1:])
    return groups


def find_resource_entity(
    entities: Sequence[ResourceEntity],
    project_name: str,
    unique_name: str,
) -> ResourceEntity | None:
    project = project_name.casefold()
    name = unique_name.casefold()
    project_entities = [item for item in entities if item.project_name.casefold() == project]
    for item in project_entities:
        if (item.unique_name or "").casefold() == name:
            return item
    # older exports wrote the base name into the File column
    for item in project_entities:
        if item.base_name.casefold() == name:
            return item
    return None


class XlsxParser(BaseParser):
    name = "XLSX Resource Importer"
    supported_extensions = [".xlsx"]
    format_description = "Excel Workbook"

    def can_handle(self, filepath: str) -> bool:
        return Path(filepath).suffix.lower() in self.supported_extensions

    def import_changes(
        self,
        resource_manager: ResourceManager,
        filepath: str,
        languages: Iterable[CultureKey] | None = None,
        comment_languages: Iterable[CultureKey] | None = None,
    ) -> list[EntryChange]:
        known_cultures = resource_manager.cultures
        target_languages = list(known_cultures if languages is None else languages)
        target_comments = list(known_cultures if comment_languages is None else comment_languages)

        with self._open(filepath) as archive:
            reader = WorkbookReader(archive, filepath)
            sheets = reader.sheets()
            if not sheets:
                logger.info("Workbook %s has no sheets", filepath)
                return []

            shared_strings = reader.shared_strings()
            first_table = reader.table(sheets[0], shared_strings)
            first_row = first_table[0] if first_table else None

            mode = detect_layout(first_row)
            logger.debug("Detected %s layout in %s", mode.value, filepath)
            if mode == ExcelExportMode.SINGLE_SHEET:
                changes = self._import_single_sheet(
                    resource_manager,
                    first_table,
                    target_languages,
                    target_comments,
                )
            else:
                changes = self._import_multiple_sheets(
                    resource_manager,
                    reader,
                    sheets,
                    shared_strings,
                    first_table,
                    target_languages,
                    target_comments,
                )

        logger.info("Imported %d change(s) from %s", len(changes), filepath)
        return changes

    def validate(self, filepath: str) -> list[str]:
        errors: list[str] = []
        try:
            with self._open(filepath) as archive:
                reader = WorkbookReader(archive, filepath)
                for sheet in reader.sheets():
                    reader.table(sheet, None)
        except WorkbookError as exc:
            errors.append(str(exc))
        return errors

    @staticmethod
    def _open(filepath: str) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(filepath, "r")
        except (OSError, zipfile.BadZipFile) as exc:
            raise WorkbookError(filepath, str(exc)) from exc

    @staticmethod
    def _import_single_sheet(
        resource_manager: ResourceManager,
        table: list[list[str]],
        languages: list[CultureKey],
        comment_languages: list[CultureKey],
    ) -> list[EntryChange]:
        header = table[0][2:]
        entities = list(resource_manager.resource_entities)
        changes: list[EntryChange] = []

        for project_name, project_rows in _group_rows(table[1:]).values():
            if not project_name:
                continue
            for unique_name, file_rows in _group_rows(project_rows).values():
                if not unique_name:
                    continue
                entity = find_resource_entity(entities, project_name, unique_name)
                if entity is None:
                    logger.debug(
                        "Skipping %d row(s) for %s/%s: resource not found",
                        len(file_rows),
                        project_name,
                        unique_name,
                    )
                    continue
                changes.extend(
                    TableDiffer.import_table(
                        entity,
                        FIXED_COLUMN_HEADERS,
                        [header, *file_rows],
                        languages,
                        comment_languages,
                    )
                )
        return changes

    @staticmethod
    def _import_multiple_sheets(
        resource_manager: ResourceManager,
        reader: WorkbookReader,
        sheets: list[WorkbookSheet],
        shared_strings: Sequence[str] | None,
        first_table: list[list[str]],
        languages: list[CultureKey],
        comment_languages: list[CultureKey],
    ) -> list[EntryChange]:
        sheet_entities = assign_sheet_names(resource_manager.resource_entities)

        mapped: list[tuple[WorkbookSheet, SheetEntity]] = []
        for sheet in sheets:
            match = find_sheet_entity(sheet_entities, sheet.name)
            if match is None:
                raise ImportMappingError(sheet.name)
            mapped.append((sheet, match))

        changes: list[EntryChange] = []
        for position, (sheet, match) in enumerate(mapped):
            table = first_table if position == 0 else reader.table(sheet, shared_strings)
            logger.debug("Sheet %r -> %s (%d rows)", sheet.name, match.entity.unique_name, len(table))
            changes.extend(
                TableDiffer.import_table(
                    match.entity,
                    FIXED_COLUMN_HEADERS,
                    table,
                    languages,
                    comment_languages,
                )
            )
        return changes

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, Sequence

from config import COMMENT_HEADER_PREFIX
from core.models import (
    ChangeField,
    CultureKey,
    EntryChange,
    ImportTableError,
    ResourceEntity,
    ResourceTableEntry,
)
from core.scope import ResourceScope, includes_comment, includes_value


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LanguageColumn:
    index: int
    culture: CultureKey
    field: ChangeField


def comment_header(culture: CultureKey) -> str:
    return COMMENT_HEADER_PREFIX + str(culture)


def parse_language_header(title: str) -> tuple[ChangeField, CultureKey]:
    if title.startswith(COMMENT_HEADER_PREFIX):
        return ChangeField.COMMENT, CultureKey.parse(title[len(COMMENT_HEADER_PREFIX):])
    return ChangeField.VALUE, CultureKey.parse(title)


def language_column_headers(
    cultures: Iterable[CultureKey],
    scope: ResourceScope | None,
) -> list[str]:
    """Comment column then value column per culture, each only when in scope."""
    headers: list[str] = []
    for culture in cultures:
        if includes_comment(scope, culture):
            headers.append(comment_header(culture))
        if includes_value(scope, culture):
            headers.append(str(culture))
    return headers


def language_data_columns(
    entry: ResourceTableEntry,
    cultures: Iterable[CultureKey],
    scope: ResourceScope | None,
) -> list[str]:
    columns: list[str] = []
    for culture in cultures:
        if includes_comment(scope, culture):
            columns.append(entry.get_comment(culture))
        if includes_value(scope, culture):
            columns.append(entry.get_value(culture))
    return columns


class TableDiffer:
    @staticmethod
    def language_columns(header: Sequence[str], first_index: int) -> list[LanguageColumn]:
        columns: list[LanguageColumn] = []
        seen: set[tuple[ChangeField, CultureKey]] = set()
        for index in range(first_index, len(header)):
            field, culture = parse_language_header(header[index])
            if (field, culture) in seen:
                logger.debug("Ignoring duplicate column %r at index %d", header[index], index)
                continue
            seen.add((field, culture))
            columns.append(LanguageColumn(index=index, culture=culture, field=field))
        return columns

    @staticmethod
    def import_table(
        entity: ResourceEntity,
        fixed_headers: Sequence[str],
        table: Sequence[Sequence[str]],
        languages: Iterable[CultureKey],
        comment_languages: Iterable[CultureKey],
    ) -> list[EntryChange]:
        """Compare a table against ``entity`` and return the differing texts.

        The first row is the header: the fixed columns followed by language
        columns. The first fixed column holds the entry key. Keys the entity
        does not have are ignored and the entity is never modified.
        """
        if not table:
            return []

        header = list(table[0])
        fixed = list(fixed_headers)
        if header[: len(fixed)] != fixed:
            raise ImportTableError(
                f"Table header must start with {fixed}, got {header[: len(fixed)]}"
            )

        targets = {
            ChangeField.VALUE: set(languages),
            ChangeField.COMMENT: set(comment_languages),
        }
        columns = [
            column
            for column in TableDiffer.language_columns(header, len(fixed))
            if column.culture in targets[column.field]
        ]

        changes: list[EntryChange] = []
        for row in table[1:]:
            key = row[0] if row else ""
            if not key:
                continue
            entry = entity.find_entry(key)
            if entry is None:
                logger.debug("Key %r not found in %s; row ignored", key, entity.unique_name)
                continue
            for column in columns:
                text = row[column.index] if column.index < len(row) else ""
                original = entry.get_text(column.culture, column.field)
                if text == original:
                    continue
                changes.append(
                    EntryChange(
                        entry=entry,
                        culture=column.culture,
                        field=column.field,
                        original_text=original,
                        text=text,
                    )
                )
        return changes

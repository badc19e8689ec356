from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from config import (
    MAX_SHEET_NAME_LENGTH,
    MAX_SHEET_NAME_SUFFIX,
    SHEET_NAME_SEPARATOR,
    SHEET_NAME_SUFFIX_MARKER,
)
from core.models import ResourceEntity, SheetNameError


@dataclass(frozen=True)
class SheetEntity:
    entity: ResourceEntity
    index: int
    sheet_name: str

    @property
    def sheet_id(self) -> int:
        return self.index + 1

    @property
    def relationship_id(self) -> str:
        return f"rId{self.index + 1}"


class _UsedNames:
    """Sheet names already taken; workbooks treat names case-insensitively."""

    def __init__(self) -> None:
        self._names: set[str] = set()

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._names

    def add(self, name: str) -> None:
        self._names.add(name.casefold())


def short_name(name: str, suffix: int, max_length: int = MAX_SHEET_NAME_LENGTH) -> str:
    marker = f"{SHEET_NAME_SUFFIX_MARKER}{suffix}"
    if len(marker) >= max_length:
        raise SheetNameError(f"Suffix {marker!r} leaves no room for a sheet name.")
    return name[: max_length - len(marker)] + marker


def unique_sheet_name(
    entity: ResourceEntity,
    used_names: _UsedNames,
    max_length: int = MAX_SHEET_NAME_LENGTH,
    max_suffix: int = MAX_SHEET_NAME_SUFFIX,
) -> str:
    name = SHEET_NAME_SEPARATOR.join((entity.project_name, entity.base_name))

    if len(name) > max_length or name in used_names:
        candidate = None
        for suffix in range(max_suffix + 1):
            shortened = short_name(name, suffix, max_length)
            if shortened not in used_names:
                candidate = shortened
                break
        if candidate is None:
            raise SheetNameError("Failed to generate a unique short name.")
        name = candidate

    used_names.add(name)
    return name


def sort_entities(entities: Iterable[ResourceEntity]) -> list[ResourceEntity]:
    return sorted(entities, key=lambda entity: (entity.project_name, entity.base_name))


def assign_sheet_names(
    entities: Iterable[ResourceEntity],
    max_length: int = MAX_SHEET_NAME_LENGTH,
    max_suffix: int = MAX_SHEET_NAME_SUFFIX,
) -> list[SheetEntity]:
    """Name one sheet per entity.

    Entities are ordered by project then base name and named in a single pass;
    the first entity claiming a name keeps it, later collisions get a ``~N``
    suffix on a truncated name.
    """
    used_names = _UsedNames()
    return [
        SheetEntity(
            entity=entity,
            index=index,
            sheet_name=unique_sheet_name(entity, used_names, max_length, max_suffix),
        )
        for index, entity in enumerate(sort_entities(entities))
    ]


def find_sheet_entity(sheet_entities: Iterable[SheetEntity], sheet_name: str) -> SheetEntity | None:
    wanted = sheet_name.casefold()
    for item in sheet_entities:
        if item.sheet_name.casefold() == wanted:
            return item
    return None

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable


class WorkbookError(Exception):
    def __init__(self, filepath: str, reason: str) -> None:
        super().__init__(f"Failed to read workbook '{filepath}': {reason}")
        self.filepath = filepath
        self.reason = reason


class ImportMappingError(Exception):
    def __init__(self, sheet_name: str) -> None:
        super().__init__(
            f"Sheet '{sheet_name}' does not match any resource file of the current project."
        )
        self.sheet_name = sheet_name


class SheetNameError(Exception):
    pass


class ImportTableError(Exception):
    pass


class ChangeField(str, Enum):
    VALUE = "VALUE"
    COMMENT = "COMMENT"


@dataclass(frozen=True, eq=False)
class CultureKey:
    """Language identifier; the neutral culture has an empty name."""

    name: str = ""

    @classmethod
    def parse(cls, token: str | None) -> "CultureKey":
        return cls((token or "").strip())

    def __str__(self) -> str:
        return self.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CultureKey):
            return NotImplemented
        return self.name.lower() == other.name.lower()

    def __hash__(self) -> int:
        return hash(self.name.lower())


@dataclass(frozen=True)
class ResourceLanguage:
    culture_key: CultureKey


@dataclass(eq=False)
class ResourceTableEntry:
    key: str
    container: "ResourceEntity" = field(repr=False)
    values: dict[CultureKey, str] = field(default_factory=dict, repr=False)
    comments: dict[CultureKey, str] = field(default_factory=dict, repr=False)

    def get_value(self, culture: CultureKey) -> str:
        return self.values.get(culture) or ""

    def get_comment(self, culture: CultureKey) -> str:
        return self.comments.get(culture) or ""

    def get_text(self, culture: CultureKey, change_field: ChangeField) -> str:
        if change_field == ChangeField.COMMENT:
            return self.get_comment(culture)
        return self.get_value(culture)


@dataclass(eq=False)
class ResourceEntity:
    project_name: str
    base_name: str
    unique_name: str | None = None
    entries: list[ResourceTableEntry] = field(default_factory=list, repr=False)
    languages: list[ResourceLanguage] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self.unique_name:
            self.unique_name = self.base_name

    @property
    def cultures(self) -> list[CultureKey]:
        return [language.culture_key for language in self.languages]

    def add_language(self, culture: CultureKey | str) -> CultureKey:
        if isinstance(culture, str):
            culture = CultureKey.parse(culture)
        if culture not in self.cultures:
            self.languages.append(ResourceLanguage(culture))
        return culture

    def add_entry(
        self,
        key: str,
        values: dict[str, str] | None = None,
        comments: dict[str, str] | None = None,
    ) -> ResourceTableEntry:
        if self.find_entry(key) is not None:
            raise ValueError(f"Duplicate key '{key}' in {self.project_name}/{self.unique_name}")
        entry = ResourceTableEntry(key=key, container=self)
        for token, text in (values or {}).items():
            entry.values[self.add_language(token)] = text
        for token, text in (comments or {}).items():
            entry.comments[self.add_language(token)] = text
        self.entries.append(entry)
        return entry

    def find_entry(self, key: str) -> ResourceTableEntry | None:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None


@dataclass
class ResourceManager:
    resource_entities: list[ResourceEntity] = field(default_factory=list)

    def add_entity(
        self,
        project_name: str,
        base_name: str,
        unique_name: str | None = None,
        languages: Iterable[str] = (),
    ) -> ResourceEntity:
        entity = ResourceEntity(project_name, base_name, unique_name)
        for token in languages:
            entity.add_language(token)
        self.resource_entities.append(entity)
        return entity

    @property
    def cultures(self) -> list[CultureKey]:
        seen: list[CultureKey] = []
        for entity in self.resource_entities:
            for culture in entity.cultures:
                if culture not in seen:
                    seen.append(culture)
        return seen


@dataclass
class EntryChange:
    entry: ResourceTableEntry
    culture: CultureKey
    field: ChangeField
    original_text: str
    text: str

    @property
    def entity(self) -> ResourceEntity:
        return self.entry.container

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from core.models import CultureKey, ResourceEntity, ResourceTableEntry


class ResourceScope(Protocol):
    entries: Sequence[ResourceTableEntry]
    languages: Sequence[CultureKey]
    comments: Sequence[CultureKey]


def _distinct(cultures: Iterable[CultureKey]) -> tuple[CultureKey, ...]:
    seen: list[CultureKey] = []
    for culture in cultures:
        if culture not in seen:
            seen.append(culture)
    return tuple(seen)


@dataclass(frozen=True)
class Scope:
    """Explicit selection of entries and of the cultures whose values/comments participate."""

    entries: tuple[ResourceTableEntry, ...]
    languages: tuple[CultureKey, ...]
    comments: tuple[CultureKey, ...] = ()

    @classmethod
    def create(
        cls,
        entries: Iterable[ResourceTableEntry],
        languages: Iterable[CultureKey | str],
        comments: Iterable[CultureKey | str] = (),
    ) -> "Scope":
        return cls(
            entries=tuple(entries),
            languages=_distinct(_as_culture(item) for item in languages),
            comments=_distinct(_as_culture(item) for item in comments),
        )

    @classmethod
    def for_entity(
        cls,
        entity: ResourceEntity,
        languages: Iterable[CultureKey | str],
        comments: Iterable[CultureKey | str] = (),
    ) -> "Scope":
        return cls.create(entity.entries, languages, comments)


class FullScope:
    """Every entry of every entity; all known languages for both values and comments."""

    def __init__(self, entities: Iterable[ResourceEntity]) -> None:
        items = list(entities)
        self.entries: tuple[ResourceTableEntry, ...] = tuple(
            entry for entity in items for entry in entity.entries
        )
        languages = _distinct(culture for entity in items for culture in entity.cultures)
        self.languages: tuple[CultureKey, ...] = languages
        self.comments: tuple[CultureKey, ...] = languages


def _as_culture(value: CultureKey | str) -> CultureKey:
    if isinstance(value, CultureKey):
        return value
    return CultureKey.parse(value)


def scope_languages(scope: ResourceScope) -> list[CultureKey]:
    """Value languages followed by comment-only languages, first-seen order."""
    return list(_distinct([*scope.languages, *scope.comments]))


def entities_in_scope(scope: ResourceScope) -> list[ResourceEntity]:
    entities: list[ResourceEntity] = []
    for entry in scope.entries:
        if not any(entry.container is entity for entity in entities):
            entities.append(entry.container)
    return entities


def includes_comment(scope: ResourceScope | None, culture: CultureKey) -> bool:
    return scope is None or culture in scope.comments


def includes_value(scope: ResourceScope | None, culture: CultureKey) -> bool:
    return scope is None or culture in scope.languages

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from core.models import CultureKey, EntryChange, ResourceManager


class BaseParser(ABC):
    name: str
    supported_extensions: list[str]
    format_description: str

    @abstractmethod
    def can_handle(self, filepath: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def import_changes(
        self,
        resource_manager: ResourceManager,
        filepath: str,
        languages: Iterable[CultureKey] | None = None,
        comment_languages: Iterable[CultureKey] | None = None,
    ) -> list[EntryChange]:
        raise NotImplementedError

    @abstractmethod
    def validate(self, filepath: str) -> list[str]:
        raise NotImplementedError

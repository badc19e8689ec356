from __future__ import annotations

from abc import ABC, abstractmethod

from core.layout import ExcelExportMode
from core.models import ResourceManager
from core.scope import ResourceScope


class BaseReporter(ABC):
    name: str
    output_extension: str

    @abstractmethod
    def export(
        self,
        resource_manager: ResourceManager,
        output_path: str,
        scope: ResourceScope | None = None,
        mode: ExcelExportMode = ExcelExportMode.SINGLE_SHEET,
    ) -> str:
        raise NotImplementedError

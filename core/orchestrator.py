from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Callable, Iterable

from core.layout import ExcelExportMode
from core.models import CultureKey, EntryChange, ResourceManager, WorkbookError
from core.scope import ResourceScope
from parsers.xlsx_parser import XlsxParser
from reporters.xlsx_reporter import XlsxReporter


logger = logging.getLogger(__name__)


@dataclass
class ExcelOrchestrator:
    resource_manager: ResourceManager
    on_progress: Callable[[str, float], None] | None = None
    last_changes: list[EntryChange] = field(default_factory=list)

    def export_file(
        self,
        output_path: str,
        scope: ResourceScope | None = None,
        mode: ExcelExportMode = ExcelExportMode.SINGLE_SHEET,
    ) -> str:
        path = Path(output_path)
        reporter = XlsxReporter()
        if path.suffix.lower() != reporter.output_extension:
            path = path.with_name(path.name + reporter.output_extension)
        path.parent.mkdir(parents=True, exist_ok=True)

        self._progress("Exporting resources", 0.1)
        logger.info("Exporting %s to %s", mode.value, path)
        result = reporter.export(self.resource_manager, str(path), scope=scope, mode=mode)
        self._progress("Done", 1.0)
        return result

    def import_file(
        self,
        input_path: str,
        languages: Iterable[CultureKey] | None = None,
        comment_languages: Iterable[CultureKey] | None = None,
    ) -> list[EntryChange]:
        parser = XlsxParser()
        if not parser.can_handle(input_path):
            raise WorkbookError(input_path, f"unsupported extension '{Path(input_path).suffix}'")

        self._progress("Reading workbook", 0.1)
        self.last_changes = []
        changes = parser.import_changes(
            self.resource_manager,
            input_path,
            languages=languages,
            comment_languages=comment_languages,
        )
        self.last_changes = changes
        self._progress("Done", 1.0)
        return changes

    def _progress(self, message: str, value: float) -> None:
        if self.on_progress is not None:
            self.on_progress(message, value)

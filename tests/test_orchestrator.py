from __future__ import annotations

from pathlib import Path

import openpyxl
import pytest

from core.layout import ExcelExportMode
from core.models import ChangeField, CultureKey, ImportMappingError, ResourceManager, WorkbookError
from core.orchestrator import ExcelOrchestrator
from core.scope import Scope


def make_manager() -> ResourceManager:
    manager = ResourceManager()
    strings = manager.add_entity("App", "Strings", languages=["", "de", "fr"])
    strings.add_entry("Hello", values={"": "Hello", "de": "Hallo", "fr": "Bonjour"}, comments={"": "Greeting"})
    strings.add_entry("Spaces", values={"": "  leading and trailing  ", "de": ""})
    strings.add_entry("Multiline", values={"": "line one\nline two"}, comments={"de": " note "})
    views = manager.add_entity("App", "Strings", unique_name="Views/Strings", languages=["", "de"])
    views.add_entry("Title", values={"": "Title", "de": "Titel"})
    core = manager.add_entity("Core", "Errors", languages=[""])
    core.add_entry("Failed", values={"": "Failed"})
    return manager


def make_long_name_manager() -> ResourceManager:
    manager = ResourceManager()
    for index in range(3):
        entity = manager.add_entity(
            "Company.Product.Module",
            f"Resources.Localization.Strings{index}",
            languages=["", "de"],
        )
        entity.add_entry("Key", values={"": f"Value {index}", "de": f"Wert {index}"})
    duplicate = manager.add_entity("Company.Product.Module", "Resources.Localization.Strings0", unique_name="Other/Strings0")
    duplicate.add_entry("Key", values={"": "Other"})
    return manager


@pytest.mark.parametrize("mode", [ExcelExportMode.SINGLE_SHEET, ExcelExportMode.MULTIPLE_SHEETS])
def test_round_trip_produces_no_changes(tmp_path: Path, mode: ExcelExportMode) -> None:
    orchestrator = ExcelOrchestrator(make_manager())
    path = orchestrator.export_file(str(tmp_path / "resources.xlsx"), mode=mode)

    assert orchestrator.import_file(path) == []
    assert orchestrator.last_changes == []


def test_round_trip_with_truncated_sheet_names(tmp_path: Path) -> None:
    manager = make_long_name_manager()
    orchestrator = ExcelOrchestrator(manager)
    path = orchestrator.export_file(str(tmp_path / "long.xlsx"), mode=ExcelExportMode.MULTIPLE_SHEETS)

    names = openpyxl.load_workbook(path).sheetnames
    assert len(names) == 4
    assert len(set(name.casefold() for name in names)) == 4
    assert all(len(name) <= 31 for name in names)
    assert all("~" in name for name in names)

    assert orchestrator.import_file(path) == []


def test_edits_are_reported_without_touching_resources(tmp_path: Path) -> None:
    manager = make_manager()
    orchestrator = ExcelOrchestrator(manager)
    path = orchestrator.export_file(str(tmp_path / "edit.xlsx"))

    workbook = openpyxl.load_workbook(path)
    sheet = workbook["ResXResourceManager"]
    header = [cell.value for cell in sheet[1]]
    de_column = header.index("de") + 1
    sheet.cell(row=2, column=de_column, value="Servus")
    workbook.save(path)

    changes = orchestrator.import_file(path)

    assert len(changes) == 1
    change = changes[0]
    assert (change.entry.key, change.culture, change.field) == ("Hello", CultureKey("de"), ChangeField.VALUE)
    assert (change.original_text, change.text) == ("Hallo", "Servus")
    assert manager.resource_entities[0].entries[0].get_value(CultureKey("de")) == "Hallo"


def test_empty_header_edits_the_neutral_value(tmp_path: Path) -> None:
    manager = ResourceManager()
    neutral = manager.add_entity("App", "Neutral")
    neutral.add_entry("Hello", values={"": "Hello"})
    orchestrator = ExcelOrchestrator(manager)
    path = orchestrator.export_file(str(tmp_path / "neutral.xlsx"), mode=ExcelExportMode.MULTIPLE_SHEETS)

    workbook = openpyxl.load_workbook(path)
    workbook["App|Neutral"]["C2"] = "edited"
    workbook.save(path)

    changes = orchestrator.import_file(path)

    assert [(c.entry.key, c.culture, c.field, c.text) for c in changes] == [
        ("Hello", CultureKey(""), ChangeField.VALUE, "edited"),
    ]


def test_import_respects_target_languages(tmp_path: Path) -> None:
    manager = make_manager()
    orchestrator = ExcelOrchestrator(manager)
    path = orchestrator.export_file(str(tmp_path / "targets.xlsx"), mode=ExcelExportMode.MULTIPLE_SHEETS)

    workbook = openpyxl.load_workbook(path)
    sheet = workbook["App|Strings"]
    header = [cell.value for cell in sheet[1]]
    sheet.cell(row=2, column=header.index("de") + 1, value="Servus")
    sheet.cell(row=2, column=header.index("fr") + 1, value="Salut")
    workbook.save(path)

    changes = orchestrator.import_file(path, languages=[CultureKey("fr")], comment_languages=[])
    assert [(c.culture, c.text) for c in changes] == [(CultureKey("fr"), "Salut")]


def test_scope_restricted_export(tmp_path: Path) -> None:
    manager = make_manager()
    core = manager.resource_entities[2]
    scope = Scope.for_entity(core, [CultureKey("")])
    orchestrator = ExcelOrchestrator(manager)
    path = orchestrator.export_file(str(tmp_path / "scoped.xlsx"), scope=scope)

    sheet = openpyxl.load_workbook(path)["ResXResourceManager"]
    rows = [[cell.value for cell in row] for row in sheet.iter_rows()]
    assert rows[0][:3] == ["Project", "File", "Key"]
    assert len(rows[0]) == 4
    assert "Comment" not in rows[0]
    assert rows[1] == ["Core", "Errors", "Failed", "Failed"]
    assert len(rows) == 2


def test_unmapped_sheet_produces_no_changes(tmp_path: Path) -> None:
    manager = make_manager()
    orchestrator = ExcelOrchestrator(manager)
    path = orchestrator.export_file(str(tmp_path / "mapped.xlsx"), mode=ExcelExportMode.MULTIPLE_SHEETS)

    workbook = openpyxl.load_workbook(path)
    first = workbook["App|Strings"]
    header = [cell.value for cell in first[1]]
    first.cell(row=2, column=header.index("de") + 1, value="Servus")
    workbook["Core|Errors"].title = "Renamed"
    workbook.save(path)

    with pytest.raises(ImportMappingError) as excinfo:
        orchestrator.import_file(path)

    assert excinfo.value.sheet_name == "Renamed"
    assert orchestrator.last_changes == []


def test_export_adds_extension_and_creates_directory(tmp_path: Path) -> None:
    progress: list[tuple[str, float]] = []
    orchestrator = ExcelOrchestrator(make_manager(), on_progress=lambda msg, value: progress.append((msg, value)))

    output = orchestrator.export_file(str(tmp_path / "nested" / "resources"))

    assert Path(output) == tmp_path / "nested" / "resources.xlsx"
    assert Path(output).exists()
    assert progress[-1] == ("Done", 1.0)


def test_export_appends_extension_after_existing_suffix(tmp_path: Path) -> None:
    orchestrator = ExcelOrchestrator(make_manager())

    output = orchestrator.export_file(str(tmp_path / "resources.v2"))
    kept = orchestrator.export_file(str(tmp_path / "upper.XLSX"))

    assert Path(output) == tmp_path / "resources.v2.xlsx"
    assert Path(kept) == tmp_path / "upper.XLSX"


def test_import_rejects_other_extensions(tmp_path: Path) -> None:
    path = tmp_path / "resources.csv"
    path.write_text("Key,de\n", encoding="utf-8")
    with pytest.raises(WorkbookError):
        ExcelOrchestrator(make_manager()).import_file(str(path))

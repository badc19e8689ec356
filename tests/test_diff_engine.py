from __future__ import annotations

import pytest

from core.diff_engine import (
    TableDiffer,
    comment_header,
    language_column_headers,
    language_data_columns,
    parse_language_header,
)
from core.models import ChangeField, CultureKey, ImportTableError, ResourceEntity
from core.scope import Scope

NEUTRAL = CultureKey("")
DE = CultureKey("de")
FR = CultureKey("fr")


def make_entity() -> ResourceEntity:
    entity = ResourceEntity(project_name="App", base_name="Strings")
    entity.add_entry("Hello", values={"": "Hello", "de": "Hallo"}, comments={"": "Greeting"})
    entity.add_entry("Bye", values={"": "Bye", "de": "Tschuess"})
    return entity


def test_comment_header_round_trip() -> None:
    assert comment_header(DE) == "Commentde"
    assert comment_header(NEUTRAL) == "Comment"
    assert parse_language_header("Commentde") == (ChangeField.COMMENT, DE)
    assert parse_language_header("Comment") == (ChangeField.COMMENT, NEUTRAL)
    assert parse_language_header("de") == (ChangeField.VALUE, DE)
    assert parse_language_header("") == (ChangeField.VALUE, NEUTRAL)


def test_language_columns_follow_scope() -> None:
    entity = make_entity()
    entry = entity.entries[0]
    scope = Scope.create(entity.entries, [DE], [NEUTRAL])

    assert language_column_headers([NEUTRAL, DE], None) == ["Comment", "", "Commentde", "de"]
    assert language_column_headers([NEUTRAL, DE], scope) == ["Comment", "de"]
    assert language_data_columns(entry, [NEUTRAL, DE], scope) == ["Greeting", "Hallo"]


def test_unchanged_table_produces_no_changes() -> None:
    entity = make_entity()
    table = [
        ["Key", "Comment", "", "Commentde", "de"],
        ["Hello", "Greeting", "Hello", "", "Hallo"],
        ["Bye", "", "Bye", "", "Tschuess"],
    ]
    assert TableDiffer.import_table(entity, ["Key"], table, [NEUTRAL, DE], [NEUTRAL, DE]) == []


def test_changed_cells_become_entry_changes() -> None:
    entity = make_entity()
    table = [
        ["Key", "Comment", "", "de"],
        ["Hello", "Salutation", "Hello", "Servus"],
    ]
    changes = TableDiffer.import_table(entity, ["Key"], table, [NEUTRAL, DE], [NEUTRAL])

    assert [(c.entry.key, c.culture, c.field, c.original_text, c.text) for c in changes] == [
        ("Hello", NEUTRAL, ChangeField.COMMENT, "Greeting", "Salutation"),
        ("Hello", DE, ChangeField.VALUE, "Hallo", "Servus"),
    ]
    assert entity.entries[0].get_value(DE) == "Hallo"
    assert changes[0].entity is entity


def test_languages_outside_targets_are_ignored() -> None:
    entity = make_entity()
    table = [["Key", "de", "Commentde"], ["Hello", "Servus", "new comment"]]
    assert TableDiffer.import_table(entity, ["Key"], table, [FR], []) == []


def test_unknown_and_empty_keys_are_skipped() -> None:
    entity = make_entity()
    table = [["Key", "de"], ["", "x"], ["Missing", "y"], ["Bye", "Ciao"]]
    changes = TableDiffer.import_table(entity, ["Key"], table, [DE], [])
    assert [(c.entry.key, c.text) for c in changes] == [("Bye", "Ciao")]


def test_short_rows_read_missing_cells_as_empty() -> None:
    entity = make_entity()
    table = [["Key", "", "de"], ["Bye", "Bye"]]
    changes = TableDiffer.import_table(entity, ["Key"], table, [NEUTRAL, DE], [])
    assert [(c.culture, c.text) for c in changes] == [(DE, "")]


def test_empty_table() -> None:
    assert TableDiffer.import_table(make_entity(), ["Key"], [], [DE], []) == []


def test_header_must_start_with_fixed_columns() -> None:
    with pytest.raises(ImportTableError):
        TableDiffer.import_table(make_entity(), ["Key"], [["Name", "de"]], [DE], [])

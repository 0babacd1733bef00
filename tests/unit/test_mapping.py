from __future__ import annotations

from sheetbatch.models import FieldDefinition
from sheetbatch.services.mapping import NullSuggester, suggest_mapping

FIELDS = [FieldDefinition(id="f1", name="Date"), FieldDefinition(id="f2", name="Amount")]
COLUMNS = ["Datum", "Betrag"]


class StaticSuggester:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def suggest(self, fields, columns):
        self.calls += 1
        return self.result


class FailingSuggester:
    def suggest(self, fields, columns):
        raise RuntimeError("service unavailable")


def test_valid_suggestions_are_kept():
    s = StaticSuggester({"f1": "Datum", "f2": "Betrag"})
    assert suggest_mapping(FIELDS, COLUMNS, s) == {"f1": "Datum", "f2": "Betrag"}


def test_invalid_suggestions_are_dropped():
    s = StaticSuggester({"f1": "Nope", "f9": "Datum", "f2": "Betrag", "f3": None})
    assert suggest_mapping(FIELDS, COLUMNS, s) == {"f2": "Betrag"}


def test_failure_yields_empty_mapping():
    assert suggest_mapping(FIELDS, COLUMNS, FailingSuggester()) == {}


def test_empty_inputs_skip_service():
    s = StaticSuggester({"f1": "Datum"})
    assert suggest_mapping([], COLUMNS, s) == {}
    assert suggest_mapping(FIELDS, [], s) == {}
    assert s.calls == 0


def test_null_suggester():
    assert suggest_mapping(FIELDS, COLUMNS, NullSuggester()) == {}
    assert suggest_mapping(FIELDS, COLUMNS) == {}


def test_none_result_is_empty():
    assert suggest_mapping(FIELDS, COLUMNS, StaticSuggester(None)) == {}

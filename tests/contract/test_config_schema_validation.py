from __future__ import annotations

import json

import jsonschema
import pytest

from sheetbatch.config.loader import SCHEMA_PATH

"""Config JSON schema contract (shipped as package data)."""


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_file_is_valid_json_schema(schema):
    jsonschema.Draft202012Validator.check_schema(schema)


def test_minimal_config(schema):
    jsonschema.validate({}, schema)
    jsonschema.validate({"schemas": [], "templates": [], "batches": []}, schema)


@pytest.mark.parametrize(
    "config",
    [
        {"database": {}},
        {"settings": {"max_workers": 0}},
        {"schemas": [{"id": "s", "name": "S", "fields": [{"id": "f", "name": "F", "type": "text"}]}]},
        {"templates": [{"id": "t", "name": "T", "schema_id": "s", "sheet_name": "S", "start_row": -1}]},
        {"templates": [{"id": "t", "name": "T", "schema_id": "s", "sheet_name": "S", "file_name_position": "middle"}]},
        {"batches": [{"id": "b", "name": "B", "export_strategy": "zip"}]},
        {"batches": [{"id": "b", "name": "B", "tasks": [{"id": "x"}]}]},
    ],
)
def test_invalid_configs_rejected(schema, config):
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(config, schema)


def test_legacy_strategy_names_accepted(schema):
    for strategy in ("split", "unified", "multi-sheet", "consolidated"):
        jsonschema.validate({"batches": [{"id": "b", "name": "B", "export_strategy": strategy}]}, schema)

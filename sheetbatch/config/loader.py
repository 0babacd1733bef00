from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError as SchemaValidationError

from ..models.batch import BatchConfiguration
from ..models.definitions import Schema
from ..models.template import Template
from .serialization import batch_from_dict, schema_from_dict, template_from_dict

"""Config loader.

Responsibilities:
- Load the YAML configuration (settings, schemas, templates, batches)
- Validate it against config_schema.json (shipped with the package)
- Reject duplicate ids and duplicate field names inside one schema
- Apply defaults and environment overrides

Task file locations (``files`` / ``source_directory``) are runtime inputs;
they are kept apart from the task definitions.
"""

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

ENV_OUTPUT_DIR = "SHEETBATCH_OUTPUT_DIR"
ENV_LOGS_DIR = "SHEETBATCH_LOGS_DIR"
ENV_MAX_WORKERS = "SHEETBATCH_MAX_WORKERS"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    output_directory: str = "./output"
    logs_directory: str = "./logs"
    file_name_column: str = "Source File"
    keep_na_strings: list[str] | None = None
    max_workers: int = 1
    header_sample_rows: int = 20


@dataclass(frozen=True)
class TaskSource:
    """Where the CLI finds the files of one task."""
    files: list[str] = field(default_factory=list)
    source_directory: str | None = None


@dataclass(frozen=True)
class AppConfig:
    settings: Settings
    schemas: dict[str, Schema]
    templates: dict[str, Template]
    batches: dict[str, BatchConfiguration]
    task_sources: dict[str, TaskSource] = field(default_factory=dict)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except SchemaValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        raise ConfigError(f"config validation failed at '{location}': {e.message}") from e


def _index_unique(kind: str, items: list[Any]) -> dict[str, Any]:
    indexed: dict[str, Any] = {}
    for item in items:
        if item.id in indexed:
            raise ConfigError(f"duplicate {kind} id: {item.id}")
        indexed[item.id] = item
    return indexed


def _check_schema(schema: Schema) -> None:
    names: set[str] = set()
    ids: set[str] = set()
    for f in schema.fields:
        if f.name in names:
            raise ConfigError(f"schema '{schema.id}': duplicate field name '{f.name}'")
        if f.id in ids:
            raise ConfigError(f"schema '{schema.id}': duplicate field id '{f.id}'")
        names.add(f.name)
        ids.add(f.id)


def _check_references(schemas: Mapping[str, Schema], templates: Mapping[str, Template],
                      batches: Mapping[str, BatchConfiguration]) -> None:
    # 参照切れは実行時にタスクエラーとして扱うため、ここでは警告のみ
    for tpl in templates.values():
        schema = schemas.get(tpl.schema_id)
        if schema is None:
            logger.warning("template '%s' references unknown schema '%s'", tpl.id, tpl.schema_id)
            continue
        unknown = [fid for fid in tpl.mapping if schema.field_by_id(fid) is None]
        if unknown:
            logger.warning("template '%s' maps unknown field ids: %s", tpl.id, unknown)
    for batch in batches.values():
        for task in batch.tasks:
            if task.template_id not in templates:
                logger.warning("batch '%s' task '%s' references unknown template '%s'",
                               batch.id, task.id, task.template_id)


def _load_settings(raw: dict[str, Any]) -> Settings:
    return Settings(
        output_directory=raw.get("output_directory", Settings.output_directory),
        logs_directory=raw.get("logs_directory", Settings.logs_directory),
        file_name_column=raw.get("file_name_column", Settings.file_name_column),
        keep_na_strings=raw.get("keep_na_strings"),
        max_workers=raw.get("max_workers", Settings.max_workers),
        header_sample_rows=raw.get("header_sample_rows", Settings.header_sample_rows),
    )


def apply_env_overrides(settings: Settings, environ: Mapping[str, str] | None = None) -> Settings:
    """Override settings from SHEETBATCH_* environment variables."""
    env = os.environ if environ is None else environ
    changes: dict[str, Any] = {}
    if env.get(ENV_OUTPUT_DIR):
        changes["output_directory"] = env[ENV_OUTPUT_DIR]
    if env.get(ENV_LOGS_DIR):
        changes["logs_directory"] = env[ENV_LOGS_DIR]
    if env.get(ENV_MAX_WORKERS):
        try:
            workers = int(env[ENV_MAX_WORKERS])
        except ValueError as e:
            raise ConfigError(f"{ENV_MAX_WORKERS} must be an integer: {env[ENV_MAX_WORKERS]!r}") from e
        if workers < 1:
            raise ConfigError(f"{ENV_MAX_WORKERS} must be >= 1")
        changes["max_workers"] = workers
    return replace(settings, **changes) if changes else settings


def parse_config(data: dict[str, Any]) -> AppConfig:
    """Build an AppConfig from already-loaded plain data."""
    _validate_config_schema(data)
    try:
        schemas = [schema_from_dict(s) for s in data.get("schemas", [])]
        templates = [template_from_dict(t) for t in data.get("templates", [])]
        batches = [batch_from_dict(b) for b in data.get("batches", [])]
    except ValueError as e:
        raise ConfigError(f"invalid configuration: {e}") from e

    for schema in schemas:
        _check_schema(schema)
    schema_map = _index_unique("schema", schemas)
    template_map = _index_unique("template", templates)
    batch_map = _index_unique("batch", batches)

    task_sources: dict[str, TaskSource] = {}
    for raw_batch in data.get("batches", []):
        for raw_task in raw_batch.get("tasks", []):
            task_id = str(raw_task["id"])
            if task_id in task_sources:
                raise ConfigError(f"duplicate task id: {task_id}")
            task_sources[task_id] = TaskSource(
                files=list(raw_task.get("files", [])),
                source_directory=raw_task.get("source_directory"),
            )

    _check_references(schema_map, template_map, batch_map)
    return AppConfig(
        settings=_load_settings(data.get("settings") or {}),
        schemas=schema_map,
        templates=template_map,
        batches=batch_map,
        task_sources=task_sources,
    )


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    return parse_config(data)

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import AppConfig, ConfigError, apply_env_overrides, load_config
from ..excel.extract import MISSING_HEADER_MESSAGE
from ..excel.reader import PandasSpreadsheetAdapter
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.batch import BatchConfiguration, BatchTask, TaskStatus
from ..models.source_file import SourceFile
from ..services.consolidation import consolidate, write_artifacts
from ..services.orchestrator import ProcessingError, attach_files, run_batch
from ..services.review import build_review_entry, write_review
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env, then the YAML config (+ SHEETBATCH_* overrides)
- Pick the batch (--batch, default: first one in the config)
- Resolve task files (``files`` list or ``*.xlsx`` in ``source_directory``,
  non-recursive) and attach them after the header pre-check
- Run the batch, write the output workbooks and the error log
- Print the SUMMARY line

Relative file paths in the config are resolved against the config file's
directory.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/batch.yml")


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (SHEETBATCH_* overrides live there)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Excel -> schema-validated batch transformer")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--batch", help="Batch id to run (default: first batch in the config)")
    p.add_argument("--out", type=Path, help="Output directory (overrides settings.output_directory)")
    p.add_argument("--review", type=Path, help="Write a JSON review snapshot to this path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--validate-only", action="store_true", help="Run the header pre-check and exit")
    return p.parse_args(argv)


def scan_excel_files(directory: Path) -> list[Path]:
    """Non-recursive ``*.xlsx`` scan, sorted by name; Excel lock files (``~$``) are skipped."""
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() == ".xlsx" and not p.name.startswith("~$")
    )


def _task_paths(cfg: AppConfig, task: BatchTask, base_dir: Path) -> list[Path]:
    source = cfg.task_sources.get(task.id)
    if source is None:
        return []
    paths = [base_dir / f for f in source.files]
    if source.source_directory:
        directory = base_dir / source.source_directory
        if not directory.is_dir():
            raise ProcessingError(f"directory not found: {directory}")
        paths.extend(scan_excel_files(directory))
    missing = [p for p in paths if not p.is_file()]
    if missing:
        raise ProcessingError(f"file not found: {', '.join(str(p) for p in missing)}")
    return paths


def _prepare_batch(
    cfg: AppConfig,
    batch: BatchConfiguration,
    base_dir: Path,
    adapter: PandasSpreadsheetAdapter,
    logger: logging.Logger,
) -> BatchConfiguration:
    tasks: list[BatchTask] = []
    for task in batch.tasks:
        paths = _task_paths(cfg, task, base_dir)
        template = cfg.templates.get(task.template_id)
        if not paths or template is None:
            # テンプレート欠落はタスク実行時に構造エラーとして記録される
            files = tuple(SourceFile.from_path(p) for p in paths)
            tasks.append(replace(task, files=files))
            continue
        logger.info(f"task {task.id}: {len(paths)} file(s)")
        files = [SourceFile.from_path(p) for p in paths]
        tasks.append(
            attach_files(task, files, template, adapter=adapter, sample_rows=cfg.settings.header_sample_rows)
        )
    return replace(batch, tasks=tuple(tasks))


def _print_validation(batch: BatchConfiguration) -> bool:
    all_valid = True
    for task in batch.tasks:
        for vr in task.validation_results or ():
            state = "ok" if vr.is_valid else "invalid"
            print(f"{task.id}\t{vr.file_name}\t{state}")
            if vr.is_duplicate:
                print("  duplicate file")
            if vr.error:
                print(f"  error: {vr.error}")
            for header in vr.missing_headers:
                print(f"  {MISSING_HEADER_MESSAGE}: {header}")
            all_valid = all_valid and vr.is_valid
    return all_valid


def _select_batch(cfg: AppConfig, batch_id: str | None) -> BatchConfiguration:
    if batch_id is None:
        if not cfg.batches:
            raise ConfigError("no batches defined")
        return next(iter(cfg.batches.values()))
    batch = cfg.batches.get(batch_id)
    if batch is None:
        raise ConfigError(f"unknown batch: {batch_id}")
    return batch


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 空リスト [] のときに sys.argv を読まないよう None のみ判定
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        for h in logger.handlers:
            h.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
        settings = apply_env_overrides(cfg.settings)
        batch = _select_batch(cfg, args.batch)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    adapter = PandasSpreadsheetAdapter(keep_na_strings=settings.keep_na_strings)
    base_dir = args.config.parent
    try:
        batch = _prepare_batch(cfg, batch, base_dir, adapter, logger)
    except (ProcessingError, OSError) as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL

    if args.validate_only:
        return EXIT_SUCCESS_ALL if _print_validation(batch) else EXIT_PARTIAL_FAILURE

    logger.info(f"Running batch {batch.id} ({batch.name}) tasks={len(batch.tasks)}")
    result = run_batch(
        batch,
        cfg.templates,
        cfg.schemas,
        adapter=adapter,
        max_workers=settings.max_workers,
    )

    out_dir = args.out or Path(settings.output_directory)
    try:
        artifacts = consolidate(result.batch, cfg.templates, cfg.schemas, file_name_column=settings.file_name_column)
        written = write_artifacts(artifacts, out_dir, adapter=adapter)
    except OSError as e:
        logger.error(f"output: {e}")
        return EXIT_FATAL
    logger.info(f"output files={len(written)} dir={out_dir}")

    buffer = ErrorLogBuffer(Path(settings.logs_directory))
    if buffer.extend_from_batch(result.batch):
        log_path = buffer.flush()
        logger.warning(f"validation errors written to {log_path}")

    if args.review is not None:
        entry = build_review_entry(
            result.batch, cfg.templates, cfg.schemas, file_name_column=settings.file_name_column
        )
        if entry is None:
            logger.info("review: no completed task, snapshot skipped")
        else:
            write_review(entry, args.review)
            logger.info(f"review snapshot written to {args.review}")

    summary_line = render_summary_line(result)
    # log_summary が "SUMMARY " を付与するため先頭を除去
    log_summary(summary_line[len("SUMMARY "):])

    if result.completed_tasks == len(result.tasks):
        return EXIT_SUCCESS_ALL
    for task in result.tasks:
        if task.status is not TaskStatus.COMPLETED:
            logger.warning(f"task {task.id} ended {task.status.value}")
    return EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

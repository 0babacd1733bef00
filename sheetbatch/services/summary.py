from __future__ import annotations

from ..models.processing_result import BatchRunResult

"""Summary line rendering for a batch run."""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return str(value)


def render_summary_line(result: BatchRunResult) -> str:
    """Render the SUMMARY line for a finished batch run.

    Format:
    SUMMARY tasks={total} completed={completed} error={error} pending={pending}
    rows={rows} errors={errors} elapsed_sec={elapsed}
    """
    return (
        f"SUMMARY tasks={len(result.tasks)} "
        f"completed={result.completed_tasks} "
        f"error={result.error_tasks} "
        f"pending={result.pending_tasks} "
        f"rows={result.total_rows} "
        f"errors={result.total_errors} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)}"
    )

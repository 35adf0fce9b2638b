from __future__ import annotations

from ..models.import_result import ImportResult

"""SUMMARY line rendering for the CLI."""

__all__ = [
    "render_summary_line",
]


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.3f}".rstrip('0').rstrip('.')


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for one import.

    Examples:
        >>> r = ImportResult(entity="lead", inserted=3, updated=1, elapsed_seconds=2.0)
        >>> render_summary_line(r)
        'SUMMARY entity=lead rows=4 inserted=3 updated=1 errors=0 batches=0 failed_batches=0 elapsed_sec=2'
    """
    stats = result.batch_stats
    return (
        f"SUMMARY entity={result.entity} "
        f"rows={result.total_rows} "
        f"inserted={result.inserted} "
        f"updated={result.updated} "
        f"errors={len(result.errors)} "
        f"batches={stats.total_batches} "
        f"failed_batches={stats.failed_batches} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)}"
    )

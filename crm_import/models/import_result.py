from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Any

"""Import result models.

``ImportResult`` is created empty when a job starts, accumulated batch by
batch by the orchestrator and returned once when the job completes.
"""

__all__ = [
    "RowError",
    "BatchProgress",
    "BatchStats",
    "ImportResult",
    "BatchStatsAccumulator",
]


@dataclass(frozen=True)
class RowError:
    row: int  # 1-based data row index
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "error": self.error}


@dataclass(frozen=True)
class BatchProgress:
    """Progress notification emitted before each batch runs."""
    batch_index: int  # 1-based
    total_batches: int
    row_range: str  # e.g. "rows 101-200"


@dataclass(frozen=True)
class BatchStats:
    total_batches: int = 0
    failed_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0


@dataclass
class ImportResult:
    """Aggregate outcome of one import call.

    Every input row is counted exactly once: as inserted, as updated, or as
    one entry in ``errors``.
    """
    entity: str
    inserted: int = 0
    updated: int = 0
    errors: list[RowError] = field(default_factory=list)
    batch_stats: BatchStats = field(default_factory=BatchStats)
    elapsed_seconds: float = 0.0

    @property
    def total_rows(self) -> int:
        return self.inserted + self.updated + len(self.errors)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def add_error(self, row: int, message: str) -> None:
        self.errors.append(RowError(row=row, error=message))

    def to_dict(self) -> dict[str, Any]:
        """Wire shape returned to the caller: ``{inserted, updated, errors}``."""
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "errors": [e.to_dict() for e in self.errors],
        }


class BatchStatsAccumulator:
    """Collects per-batch timings and summarises them for ``BatchStats``."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []
        self.failed = 0

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def add_failure(self) -> None:
        self.failed += 1

    def get_stats(self) -> BatchStats:
        if not self.batch_times:
            return BatchStats(failed_batches=self.failed)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 95th percentile (19th of 20 quantiles)
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]

        return BatchStats(
            total_batches=total_batches,
            failed_batches=self.failed,
            avg_batch_seconds=avg_batch_seconds,
            p95_batch_seconds=p95_batch_seconds,
        )

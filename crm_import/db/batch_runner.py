from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..models.candidate import CandidateRecord
from ..services.reconciliation import Action, Reconciler
from .storage import Storage, StorageError

"""Batch transaction runner.

A batch is applied inside one storage transaction: either every row in it
is persisted or none is. A failure on any row rolls back the whole batch and
is raised as ``BatchWriteError`` for the orchestrator to record; it is never
reduced to a single-row error here. Only ``StorageError`` is converted; any
other exception still rolls the batch back and then propagates unchanged.
"""

__all__ = [
    "BatchWriteError",
    "BatchMetrics",
    "BatchOutcome",
    "run_batch",
]


class BatchWriteError(Exception):
    """A batch transaction failed and was rolled back."""

    def __init__(self, rows: Sequence[int], failed_row: int | None, cause: BaseException) -> None:
        self.rows = list(rows)
        self.failed_row = failed_row
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)

    @property
    def first_row(self) -> int:
        return self.rows[0]

    @property
    def last_row(self) -> int:
        return self.rows[-1]


@dataclass(frozen=True)
class BatchMetrics:
    """Timing for a single batch transaction."""
    batch_size: int
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float
    succeeded: bool


@dataclass(frozen=True)
class BatchOutcome:
    inserted: int = 0
    updated: int = 0


def run_batch(
    storage: Storage,
    reconciler: Reconciler,
    candidates: Sequence[CandidateRecord],
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> BatchOutcome:
    """Apply ``candidates`` in order inside a single transaction.

    Parameters
    ----------
    storage: transactional storage collaborator
    reconciler: decides insert/update per candidate and performs the write
    candidates: rows of this batch, already past structural validation
    metrics_callback: receives ``BatchMetrics`` after the transaction ends
        (not invoked for an empty batch)
    """
    if not candidates:
        return BatchOutcome()

    inserted = 0
    updated = 0
    current: int | None = None
    succeeded = False
    start_time = time.time()
    try:
        with storage.transaction():
            for candidate in candidates:
                current = candidate.row
                action = reconciler.apply(storage, candidate)
                if action is Action.UPDATE:
                    updated += 1
                else:
                    inserted += 1
        succeeded = True
    except StorageError as e:
        raise BatchWriteError([c.row for c in candidates], current, e) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(candidates),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                    succeeded=succeeded,
                )
            )

    return BatchOutcome(inserted=inserted, updated=updated)

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar

from ..config.entities import DEFAULT_ENTITY_CONFIGS, EntityFieldConfig
from ..db.batch_runner import BatchMetrics, BatchWriteError, run_batch
from ..db.storage import Storage
from ..excel.reader import read_spreadsheet
from ..logging.error_log import ErrorLogBuffer
from ..mapping.row_mapper import map_rows
from ..models.candidate import CandidateRecord, EntityKind, Mapped, StructuralError
from ..models.error_record import BATCH_WRITE_ERROR, STRUCTURAL_ROW_ERROR, ErrorRecord
from ..models.import_result import BatchProgress, BatchStatsAccumulator, ImportResult
from .reconciliation import Reconciler

"""Import job orchestration.

Flow for one call:
1. map every row (header normalization + coercion + required fields)
2. fold structural errors into the result; they never reach storage
3. slice the remaining candidates into fixed-size batches
4. run each batch in its own transaction, strictly one after another
5. a failed batch becomes one error per row in it; the next batch still runs

Progress is pushed to an optional sink before each batch. The result is
returned once, after the last batch.
"""

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "ProcessingError",
    "UnknownEntityError",
    "ProgressSink",
    "ImportPipeline",
    "iter_batches",
    "describe_rows",
]

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100

ProgressSink = Callable[[BatchProgress], None]
T = TypeVar("T")


class ProcessingError(Exception):
    """Base exception for fatal job errors."""


class UnknownEntityError(ProcessingError):
    pass


def iter_batches(items: Sequence[T], size: int) -> Iterator[list[T]]:
    if size < 1:
        raise ValueError("batch size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def describe_rows(rows: Sequence[int]) -> str:
    if not rows:
        return "no rows"
    if len(rows) == 1:
        return f"row {rows[0]}"
    return f"rows {rows[0]}-{rows[-1]}"


class ImportPipeline:
    """Spreadsheet import pipeline bound to one storage collaborator.

    Args:
        storage: transactional storage used for lookups and writes
        configs: per-entity field configuration (defaults to the built-in tables)
        batch_size: candidate rows per transaction
        timezone: zone for naive date/time values found in the sheet
        progress: optional sink receiving ``BatchProgress`` before each batch
        error_log: optional JSON Lines buffer receiving every row error
    """

    def __init__(
        self,
        storage: Storage,
        configs: Mapping[EntityKind, EntityFieldConfig] | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timezone: str = "UTC",
        progress: ProgressSink | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch size must be >= 1")
        self.storage = storage
        self.configs = dict(configs if configs is not None else DEFAULT_ENTITY_CONFIGS)
        self.batch_size = batch_size
        self.timezone = timezone
        self.progress = progress
        self.error_log = error_log
        self.reconciler = Reconciler(self.configs)

    def _config(self, kind: EntityKind | str) -> EntityFieldConfig:
        try:
            entity = EntityKind.parse(kind)
            return self.configs[entity]
        except (ValueError, KeyError) as e:
            raise UnknownEntityError(f"unknown entity kind: {kind!r}") from e

    def import_file(
        self, kind: EntityKind | str, payload: bytes, *, file_name: str | None = None
    ) -> ImportResult:
        """Parse ``payload`` and import its rows.

        Raises:
            MalformedFileError: before any row is processed
        """
        config = self._config(kind)
        rows = read_spreadsheet(payload, file_name=file_name)
        logger.info("read %d rows from %s", len(rows), file_name or "upload")
        return self._run(config, rows)

    def import_rows(self, kind: EntityKind | str, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
        return self._run(self._config(kind), rows)

    def _record_error(self, result: ImportResult, row: int, message: str, error_type: str) -> None:
        result.add_error(row, message)
        if self.error_log is not None:
            self.error_log.append(ErrorRecord.create(result.entity, row, error_type, message))

    def _run(self, config: EntityFieldConfig, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
        start = datetime.now(UTC)
        entity = config.kind.value
        result = ImportResult(entity=entity)

        candidates: list[CandidateRecord] = []
        for mapped in map_rows(rows, config, tz=self.timezone):
            if isinstance(mapped, Mapped):
                candidates.append(mapped.candidate)
            elif isinstance(mapped, StructuralError):
                self._record_error(result, mapped.row, mapped.message, STRUCTURAL_ROW_ERROR)

        if result.errors:
            logger.warning("%s: %d rows rejected before import", entity, len(result.errors))

        batches = list(iter_batches(candidates, self.batch_size))
        stats = BatchStatsAccumulator()

        def on_metrics(metrics: BatchMetrics) -> None:
            stats.add_batch_time(metrics.elapsed_seconds)

        for index, batch in enumerate(batches, start=1):
            row_numbers = [c.row for c in batch]
            span = describe_rows(row_numbers)
            if self.progress is not None:
                self.progress(BatchProgress(batch_index=index, total_batches=len(batches), row_range=span))
            logger.debug("%s: batch %d/%d %s", entity, index, len(batches), span)
            try:
                outcome = run_batch(self.storage, self.reconciler, batch, metrics_callback=on_metrics)
            except BatchWriteError as e:
                stats.add_failure()
                logger.error("%s: batch %d (%s) rolled back: %s", entity, index, span, e)
                message = f"Batch {index} ({span}) rolled back: {e}"
                if e.failed_row is not None:
                    message += f" (failed at row {e.failed_row})"
                for row in row_numbers:
                    self._record_error(result, row, message, BATCH_WRITE_ERROR)
                continue
            result.inserted += outcome.inserted
            result.updated += outcome.updated

        result.errors.sort(key=lambda err: err.row)
        result.batch_stats = stats.get_stats()
        result.elapsed_seconds = (datetime.now(UTC) - start).total_seconds()
        logger.info(
            "%s: inserted=%d updated=%d errors=%d",
            entity,
            result.inserted,
            result.updated,
            len(result.errors),
        )
        return result

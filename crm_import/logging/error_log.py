from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Row error log for one import run.

Records are held in memory while the job runs and appended as JSON Lines to
``<logs_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC) on flush. Nothing is created
on disk for a clean run.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Buffered JSON Lines writer. Single writer, no locking."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self.logs_dir = logs_dir or LOGS_DIR
        self._pending: list[ErrorRecord] = []
        self._written: Counter[str] = Counter()
        self._path: Path | None = None

    @property
    def file_path(self) -> Path:
        # 初回参照時のタイムスタンプで固定
        if self._path is None:
            self._path = self.logs_dir / f"errors-{datetime.now(UTC).strftime(TIMESTAMP_FMT)}.log"
        return self._path

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)

    def extend(self, records: Iterable[ErrorRecord]) -> None:
        self._pending.extend(records)

    def __len__(self) -> int:
        return len(self._pending)

    def counts_by_type(self) -> dict[str, int]:
        """Records per ``error_type``, flushed and pending alike."""
        counts = self._written + Counter(r.error_type for r in self._pending)
        return dict(sorted(counts.items()))

    def flush(self) -> Path | None:
        """Append pending records; returns the file path, or None if nothing was pending."""
        if not self._pending:
            return None
        path = self.file_path
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = "".join(f"{r.to_json_line()}\n" for r in self._pending)
        with path.open("a", encoding="utf-8") as f:
            f.write(lines)
        self._written.update(r.error_type for r in self._pending)
        self._pending.clear()
        return path

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Every row-level problem that ends up in ``ImportResult.errors`` is also
written here so an operator can look at a failed import after the fact.
Use row=-1 for job-level problems where no single row is to blame.
"""

__all__ = [
    "ErrorRecord",
    "STRUCTURAL_ROW_ERROR",
    "BATCH_WRITE_ERROR",
    "MALFORMED_FILE_ERROR",
]

STRUCTURAL_ROW_ERROR = "STRUCTURAL_ROW_ERROR"
BATCH_WRITE_ERROR = "BATCH_WRITE_ERROR"
MALFORMED_FILE_ERROR = "MALFORMED_FILE_ERROR"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        entity: Entity kind being imported (lead, property, ...)
        row: Data row number (1-based). -1 when not attributable to a row
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: User-facing error message
    """
    timestamp: str
    entity: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(entity: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            entity=entity,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

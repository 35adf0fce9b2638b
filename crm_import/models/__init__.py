"""Domain models for the brokerage CRM spreadsheet import pipeline.

Raw rows come out of the spreadsheet reader, candidate records out of the
row mapper, and the import result is what the orchestrator hands back.
"""

from .candidate import CandidateRecord, EntityKind, Mapped, MappedRow, StructuralError
from .error_record import ErrorRecord
from .import_result import BatchProgress, ImportResult, RowError
from .raw_row import RawRow

__all__ = [
    # Input
    "RawRow",
    "EntityKind",
    # Mapping results
    "CandidateRecord",
    "Mapped",
    "MappedRow",
    "StructuralError",
    # Output
    "BatchProgress",
    "ErrorRecord",
    "ImportResult",
    "RowError",
]

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

"""Candidate record and per-row mapping results.

The row mapper returns either ``Mapped`` (a candidate ready for
reconciliation) or ``StructuralError`` (a row rejected before any storage
access). The orchestrator folds over these values; no exception crosses the
mapping boundary for a bad row.
"""

__all__ = [
    "EntityKind",
    "CandidateRecord",
    "Mapped",
    "StructuralError",
    "MappedRow",
]


class EntityKind(Enum):
    """Target entity of an import call."""
    LEAD = "lead"
    PROPERTY = "property"
    OWNER = "owner"
    CLIENT = "client"

    @classmethod
    def parse(cls, value: str | EntityKind) -> EntityKind:
        """Accept the enum itself, its value, or the plural used by the UI ("leads")."""
        if isinstance(value, EntityKind):
            return value
        text = str(value).strip().lower()
        if text == "properties":
            text = "property"
        elif text.endswith("s"):
            text = text[:-1]
        return cls(text)


@dataclass(frozen=True)
class CandidateRecord:
    """Coerced field values for one input row.

    ``values`` never contains ``None`` or empty strings: a field that is not
    set is simply absent.
    """
    kind: EntityKind
    row: int  # 1-based data row index
    values: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def has(self, *names: str) -> bool:
        return all(n in self.values for n in names)


@dataclass(frozen=True)
class Mapped:
    candidate: CandidateRecord

    @property
    def row(self) -> int:
        return self.candidate.row


@dataclass(frozen=True)
class StructuralError:
    row: int
    message: str


MappedRow = Union[Mapped, StructuralError]

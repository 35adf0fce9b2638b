from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import date, datetime
from typing import Union

"""RawRow model: one spreadsheet data row keyed by its header text.

Lives only for the duration of a single import call and is never persisted.
"""

__all__ = [
    "CellValue",
    "RawRow",
]

CellValue = Union[str, int, float, bool, datetime, date, None]


class RawRow(Mapping[str, CellValue]):
    """Ordered, read-only mapping from header string to raw cell value."""

    __slots__ = ("_cells",)

    def __init__(self, cells: Mapping[str, CellValue] | None = None) -> None:
        self._cells: dict[str, CellValue] = {str(k): v for k, v in (cells or {}).items()}

    def __getitem__(self, key: str) -> CellValue:
        return self._cells[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"RawRow({self._cells!r})"

    @property
    def headers(self) -> list[str]:
        return list(self._cells)

    def is_blank(self) -> bool:
        """True when no cell carries a value (None or whitespace only)."""
        for value in self._cells.values():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() == "":
                continue
            return False
        return True

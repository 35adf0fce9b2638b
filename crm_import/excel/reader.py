from __future__ import annotations

import io
import zipfile
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.raw_row import RawRow

"""Spreadsheet reader.

The first worksheet is decoded in one pass with pandas and its first row is
taken as the header row. Decoding happens when ``read_spreadsheet`` is
called, so an unreadable upload fails before any row is processed.

Engine selection: ``.xlsx`` payloads are zip archives and go through
openpyxl; legacy ``.xls`` (OLE2 compound document) goes through xlrd.
"""

__all__ = [
    "MalformedFileError",
    "SpreadsheetRows",
    "read_spreadsheet",
    "read_spreadsheet_path",
]

_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class MalformedFileError(Exception):
    """Raised when the payload is not a decodable spreadsheet."""


def _cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, str):
        return value
    # numpy スカラーは Python 型へ
    if hasattr(value, "item"):
        return value.item()
    return value


class SpreadsheetRows(Sequence[RawRow]):
    """Decoded first worksheet, iterable any number of times from the first data row."""

    def __init__(self, frame: pd.DataFrame, file_name: str | None = None) -> None:
        self._frame = frame
        self.file_name = file_name
        self.columns: list[str] = [str(c).strip() for c in frame.columns]
        self._rows: list[RawRow] | None = None

    def _materialize(self) -> list[RawRow]:
        if self._rows is None:
            self._rows = list(self._iter_frame())
        return self._rows

    def _iter_frame(self) -> Iterator[RawRow]:
        for values in self._frame.itertuples(index=False, name=None):
            row = RawRow({col: _cell(v) for col, v in zip(self.columns, values, strict=False)})
            # 全セル空の行は読み飛ばす
            if row.is_blank():
                continue
            yield row

    def __iter__(self) -> Iterator[RawRow]:
        if self._rows is not None:
            return iter(self._rows)
        return self._iter_frame()

    def __len__(self) -> int:
        return len(self._materialize())

    def __getitem__(self, index):  # type: ignore[override]
        return self._materialize()[index]


def _engine_for(payload: bytes, file_name: str | None) -> str | None:
    if payload.startswith(_OLE2_MAGIC):
        return "xlrd"
    if zipfile.is_zipfile(io.BytesIO(payload)):
        return "openpyxl"
    if file_name and file_name.lower().endswith(".xls"):
        return "xlrd"
    return None


def read_spreadsheet(payload: bytes, *, file_name: str | None = None) -> SpreadsheetRows:
    """Decode ``payload`` and return its first worksheet as raw rows.

    Raises:
        MalformedFileError: empty payload, not a spreadsheet, no worksheet,
            or no header row.
    """
    if not payload:
        raise MalformedFileError("empty file")
    engine = _engine_for(payload, file_name)
    if engine is None:
        raise MalformedFileError("not an .xlsx or .xls spreadsheet")
    try:
        # dtype=object: 整数セル (電話番号等) を float に拡張させない
        frame = pd.read_excel(io.BytesIO(payload), sheet_name=0, header=0, dtype=object, engine=engine)
    except Exception as e:
        raise MalformedFileError(f"could not read spreadsheet: {e}") from e
    if len(frame.columns) == 0:
        raise MalformedFileError("first worksheet has no header row")
    return SpreadsheetRows(frame, file_name=file_name)


def read_spreadsheet_path(path: Path) -> SpreadsheetRows:
    try:
        payload = path.read_bytes()
    except OSError as e:
        raise MalformedFileError(f"could not open {path}: {e}") from e
    return read_spreadsheet(payload, file_name=path.name)

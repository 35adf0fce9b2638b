from __future__ import annotations

import io
import zipfile
from datetime import datetime
from pathlib import Path

import pytest

from crm_import.excel.reader import MalformedFileError, read_spreadsheet, read_spreadsheet_path
from crm_import.models.raw_row import RawRow
from tests.conftest import make_workbook


def test_first_row_is_header_and_rows_are_raw_rows() -> None:
    payload = make_workbook([
        {"Name": "Asha", "Phone": 9876543210, "Budget": 5000000},
        {"Name": "Ravi", "Phone": 9123456780, "Budget": None},
    ])
    rows = read_spreadsheet(payload, file_name="leads.xlsx")
    assert rows.columns == ["Name", "Phone", "Budget"]
    assert len(rows) == 2
    first = rows[0]
    assert isinstance(first, RawRow)
    assert first["Name"] == "Asha"
    assert first["Phone"] == 9876543210
    assert rows[1]["Budget"] is None


def test_native_dates_come_through_as_datetime() -> None:
    payload = make_workbook([{"Name": "A", "next follow up": datetime(2025, 11, 17, 12, 30)}])
    row = read_spreadsheet(payload)[0]
    assert isinstance(row["next follow up"], datetime)
    assert row["next follow up"] == datetime(2025, 11, 17, 12, 30)


def test_iteration_is_restartable() -> None:
    payload = make_workbook([{"Name": "A"}, {"Name": "B"}])
    rows = read_spreadsheet(payload)
    assert [r["Name"] for r in rows] == ["A", "B"]
    assert [r["Name"] for r in rows] == ["A", "B"]


def test_blank_rows_are_skipped() -> None:
    payload = make_workbook([{"Name": "A", "Phone": "1"}, {"Name": None, "Phone": None}, {"Name": "B", "Phone": "2"}])
    rows = read_spreadsheet(payload)
    assert [r["Name"] for r in rows] == ["A", "B"]


def test_only_first_sheet_is_read() -> None:
    import pandas as pd

    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame([{"Name": "first"}]).to_excel(writer, sheet_name="A", index=False)
        pd.DataFrame([{"Name": "second"}]).to_excel(writer, sheet_name="B", index=False)
    rows = read_spreadsheet(buf.getvalue())
    assert [r["Name"] for r in rows] == ["first"]


@pytest.mark.parametrize("payload", [b"", b"name,phone\nA,1\n", b"\x00\x01garbage"])
def test_undecodable_payload_raises_malformed(payload: bytes) -> None:
    with pytest.raises(MalformedFileError):
        read_spreadsheet(payload)


def test_zip_that_is_not_a_workbook_is_malformed() -> None:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("hello.txt", "not excel")
    with pytest.raises(MalformedFileError):
        read_spreadsheet(buf.getvalue())


def test_read_path_missing_file(tmp_path: Path) -> None:
    with pytest.raises(MalformedFileError, match="could not open"):
        read_spreadsheet_path(tmp_path / "missing.xlsx")


def test_read_path(tmp_path: Path) -> None:
    p = tmp_path / "owners.xlsx"
    p.write_bytes(make_workbook([{"Name": "O", "Phone": "1"}]))
    rows = read_spreadsheet_path(p)
    assert rows.file_name == "owners.xlsx"
    assert len(rows) == 1

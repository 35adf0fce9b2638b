# Shared pytest fixtures
from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from crm_import.db.memory import MemoryStorage
from crm_import.db.storage import StorageError
from crm_import.logging.init import reset_logging
from crm_import.models.candidate import EntityKind


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "data").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


def make_workbook(rows: list[dict[str, Any]], columns: list[str] | None = None) -> bytes:
    """Build an .xlsx payload whose first row is the header."""
    frame = pd.DataFrame(rows, columns=columns)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name="Sheet1", index=False)
    return buf.getvalue()


def lead_row(i: int, **overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "Name": f"Lead {i}",
        "Phone": f"98{i:08d}",
        "Email": f"lead{i}@example.com",
        "Source": "Website",
    }
    row.update(overrides)
    return row


@pytest.fixture()
def lead_rows() -> Callable[..., list[dict[str, Any]]]:
    def _make(n: int, start: int = 1) -> list[dict[str, Any]]:
        return [lead_row(i) for i in range(start, start + n)]
    return _make


class FailingStorage(MemoryStorage):
    """MemoryStorage that raises on insert/update of chosen records."""

    def __init__(self, fail_when: Callable[[EntityKind, dict[str, Any]], bool], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.fail_when = fail_when
        self.calls: list[str] = []

    def find_by_dedup_key(self, kind, key_fields, values):
        self.calls.append("find")
        return super().find_by_dedup_key(kind, key_fields, values)

    def insert(self, kind, record):
        self.calls.append("insert")
        if self.fail_when(kind, dict(record)):
            raise StorageError(f"constraint violation on {record.get('name')}")
        return super().insert(kind, record)

    def update(self, kind, entity_id, record):
        self.calls.append("update")
        if self.fail_when(kind, dict(record)):
            raise StorageError(f"constraint violation on {record.get('name')}")
        super().update(kind, entity_id, record)

from __future__ import annotations

import io
import time

import pytest

from crm_import.db.memory import MemoryStorage
from crm_import.models.candidate import EntityKind
from crm_import.services.orchestrator import ImportPipeline
from scripts.gen_perf_dataset import generate_leads, generate_properties

"""Throughput smoke checks on generated workbooks (in-memory storage)."""

pytestmark = pytest.mark.perf


def _payload(frame) -> bytes:
    buf = io.BytesIO()
    frame.to_excel(buf, index=False, engine="openpyxl")
    return buf.getvalue()


def test_lead_import_throughput():
    rows = 1_000
    payload = _payload(generate_leads(rows, duplicate_ratio=0.05, broken_ratio=0.01))
    storage = MemoryStorage()
    start = time.perf_counter()
    result = ImportPipeline(storage).import_file(EntityKind.LEAD, payload)
    elapsed = time.perf_counter() - start
    assert result.total_rows == rows
    assert len(result.errors) == 10
    assert result.updated >= 1
    # 緩い上限 (CI でも落ちない程度)
    assert elapsed < 60, f"import too slow: {elapsed:.2f}s"


def test_property_owners_deduplicated():
    payload = _payload(generate_properties(300, owners=20))
    storage = MemoryStorage()
    result = ImportPipeline(storage, batch_size=50).import_file(EntityKind.PROPERTY, payload)
    assert result.inserted == 300
    assert storage.count(EntityKind.OWNER) <= 20
    assert result.batch_stats.total_batches == 6

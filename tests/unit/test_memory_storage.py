from __future__ import annotations

import pytest

from crm_import.db.memory import MemoryStorage
from crm_import.db.storage import Storage, StorageError
from crm_import.models.candidate import EntityKind

LEAD = EntityKind.LEAD


def test_memory_storage_satisfies_protocol(storage: MemoryStorage) -> None:
    assert isinstance(storage, Storage)


def test_insert_assigns_increasing_ids(storage: MemoryStorage) -> None:
    a = storage.insert(LEAD, {"name": "A"})
    b = storage.insert(LEAD, {"name": "B"})
    assert b > a
    assert storage.rows(LEAD) == [{"name": "A", "id": a}, {"name": "B", "id": b}]


def test_find_by_composite_key(storage: MemoryStorage) -> None:
    pid = storage.insert(EntityKind.PROPERTY, {"title": "Flat", "location": "Sangli"})
    storage.insert(EntityKind.PROPERTY, {"title": "Flat", "location": "Miraj"})
    assert storage.find_by_dedup_key(EntityKind.PROPERTY, ("title", "location"), ["Flat", "Sangli"]) == pid
    assert storage.find_by_dedup_key(EntityKind.PROPERTY, ("title", "location"), ["Flat", "Pune"]) is None


def test_update_merges_fields(storage: MemoryStorage) -> None:
    lid = storage.insert(LEAD, {"name": "A", "stage": "Won"})
    storage.update(LEAD, lid, {"name": "A2"})
    assert storage.rows(LEAD) == [{"name": "A2", "stage": "Won", "id": lid}]


def test_update_missing_id_raises(storage: MemoryStorage) -> None:
    with pytest.raises(StorageError):
        storage.update(LEAD, 42, {"name": "x"})


def test_transaction_rolls_back_on_error(storage: MemoryStorage) -> None:
    storage.insert(LEAD, {"name": "kept"})
    with pytest.raises(RuntimeError):
        with storage.transaction():
            storage.insert(LEAD, {"name": "lost"})
            assert storage.in_transaction
            raise RuntimeError("boom")
    assert [r["name"] for r in storage.rows(LEAD)] == ["kept"]
    assert storage.rollbacks == 1
    assert storage.commits == 0
    assert not storage.in_transaction


def test_transaction_commits(storage: MemoryStorage) -> None:
    with storage.transaction():
        storage.insert(LEAD, {"name": "A"})
    assert storage.count(LEAD) == 1
    assert storage.commits == 1


def test_unique_fields_raise_duplicate_key() -> None:
    s = MemoryStorage(unique_fields={LEAD: ["phone"]})
    s.insert(LEAD, {"phone": "1"})
    with pytest.raises(StorageError, match="duplicate key"):
        s.insert(LEAD, {"phone": "1"})
    # None は一意制約の対象外
    s.insert(LEAD, {"phone": None})
    s.insert(LEAD, {"phone": None})

from __future__ import annotations

from crm_import.config.entities import DEFAULT_ENTITY_CONFIGS
from crm_import.db.memory import MemoryStorage
from crm_import.models.candidate import CandidateRecord, EntityKind
from crm_import.services.reconciliation import Action, Decision, Reconciler


def _lead(row: int = 1, **values) -> CandidateRecord:
    base = {"name": "A", "phone": "1", "source": "Web"}
    base.update(values)
    return CandidateRecord(kind=EntityKind.LEAD, row=row, values=base)


def _property(row: int = 1, **values) -> CandidateRecord:
    base = {"title": "Flat", "location": "Sangli"}
    base.update(values)
    return CandidateRecord(kind=EntityKind.PROPERTY, row=row, values=base)


def test_no_match_is_insert(storage: MemoryStorage) -> None:
    r = Reconciler(DEFAULT_ENTITY_CONFIGS)
    assert r.decide(storage, _lead(email="a@example.com")) == Decision(Action.INSERT)


def test_email_key_is_tried_before_phone(storage: MemoryStorage) -> None:
    by_phone = storage.insert(EntityKind.LEAD, {"phone": "1"})
    by_email = storage.insert(EntityKind.LEAD, {"email": "a@example.com", "phone": "2"})
    d = Reconciler(DEFAULT_ENTITY_CONFIGS).decide(storage, _lead(email="a@example.com"))
    assert d == Decision(Action.UPDATE, entity_id=by_email, matched_on=("email",))
    assert d.entity_id != by_phone


def test_absent_key_field_skips_to_next_key(storage: MemoryStorage) -> None:
    lid = storage.insert(EntityKind.LEAD, {"phone": "1"})
    d = Reconciler(DEFAULT_ENTITY_CONFIGS).decide(storage, _lead())
    assert d.action is Action.UPDATE
    assert d.entity_id == lid
    assert d.matched_on == ("phone",)


def test_composite_property_key(storage: MemoryStorage) -> None:
    pid = storage.insert(EntityKind.PROPERTY, {"title": "Flat", "location": "Sangli"})
    r = Reconciler(DEFAULT_ENTITY_CONFIGS)
    assert r.decide(storage, _property()).entity_id == pid
    assert r.decide(storage, _property(location="Miraj")).action is Action.INSERT


def test_insert_defaults_only_on_insert(storage: MemoryStorage) -> None:
    r = Reconciler(DEFAULT_ENTITY_CONFIGS)
    assert r.apply(storage, _lead()) is Action.INSERT
    [row] = storage.rows(EntityKind.LEAD)
    assert row["stage"] == "New"

    storage.update(EntityKind.LEAD, row["id"], {"stage": "Won"})
    assert r.apply(storage, _lead(name="A2")) is Action.UPDATE
    [row] = storage.rows(EntityKind.LEAD)
    assert row["stage"] == "Won"
    assert row["name"] == "A2"


def test_owner_is_created_and_linked(storage: MemoryStorage) -> None:
    r = Reconciler(DEFAULT_ENTITY_CONFIGS)
    r.apply(storage, _property(owner_name="Ravi", owner_phone="99"))
    r.apply(storage, _property(title="Shop", owner_name="Ravi K", owner_phone="99"))
    owners = storage.rows(EntityKind.OWNER)
    assert len(owners) == 1
    assert owners[0]["name"] == "Ravi"
    props = storage.rows(EntityKind.PROPERTY)
    assert {p["owner_id"] for p in props} == {owners[0]["id"]}
    # ヘルパー列は永続化しない
    assert all("owner_name" not in p and "owner_phone" not in p for p in props)


def test_property_without_owner_has_no_owner_id(storage: MemoryStorage) -> None:
    Reconciler(DEFAULT_ENTITY_CONFIGS).apply(storage, _property())
    [prop] = storage.rows(EntityKind.PROPERTY)
    assert "owner_id" not in prop
    assert prop["type"] == "Residential"
    assert prop["status"] == "Available"

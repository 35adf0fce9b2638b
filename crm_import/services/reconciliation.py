from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..config.entities import EntityFieldConfig
from ..db.storage import EntityId, Storage
from ..models.candidate import CandidateRecord, EntityKind

"""Reconciliation engine: decide insert vs. update for each candidate.

Dedup keys are tried in configured order. A key whose fields are not all set
on the candidate is skipped; the first key that matches an existing entity
turns the row into an update of that entity, otherwise it is inserted.

Concurrent imports are not coordinated: two jobs can both decide "insert"
for the same key. Storage uniqueness constraints, when present, surface that
as a batch write error.
"""

__all__ = [
    "Action",
    "Decision",
    "Reconciler",
]

logger = logging.getLogger(__name__)


class Action(Enum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass(frozen=True)
class Decision:
    action: Action
    entity_id: EntityId | None = None
    matched_on: tuple[str, ...] | None = None


class Reconciler:
    def __init__(self, configs: Mapping[EntityKind, EntityFieldConfig]) -> None:
        self.configs = dict(configs)

    def config_for(self, kind: EntityKind) -> EntityFieldConfig:
        return self.configs[kind]

    def decide(self, storage: Storage, candidate: CandidateRecord) -> Decision:
        config = self.config_for(candidate.kind)
        for key in config.dedup_keys:
            if not candidate.has(*key):
                continue
            values = [candidate.values[f] for f in key]
            entity_id = storage.find_by_dedup_key(candidate.kind, key, values)
            if entity_id is not None:
                return Decision(Action.UPDATE, entity_id=entity_id, matched_on=key)
        return Decision(Action.INSERT)

    def resolve_owner(self, storage: Storage, candidate: CandidateRecord) -> dict[str, Any]:
        """Build the persistence record, resolving or creating the linked owner.

        Must run inside the caller's transaction: if the row's own write fails
        afterwards, a freshly created owner is rolled back with it.
        """
        config = self.config_for(candidate.kind)
        record = {
            name: value
            for name, value in candidate.values.items()
            if config.spec_for(name).persisted
        }
        link = config.owner_link
        if link is None or not candidate.has(link.name_field, link.phone_field):
            return record

        phone = candidate.values[link.phone_field]
        owner_id = storage.find_by_dedup_key(link.target_kind, ("phone",), [phone])
        if owner_id is None:
            owner_id = storage.insert(
                link.target_kind,
                {"name": candidate.values[link.name_field], "phone": phone},
            )
            logger.debug("row %d: created owner %s for phone %s", candidate.row, owner_id, phone)
        record[link.target_field] = owner_id
        return record

    def apply(self, storage: Storage, candidate: CandidateRecord) -> Action:
        """Resolve relationships, decide, and write one candidate."""
        config = self.config_for(candidate.kind)
        record = self.resolve_owner(storage, candidate)
        decision = self.decide(storage, candidate)
        if decision.action is Action.UPDATE:
            storage.update(candidate.kind, decision.entity_id, record)
        else:
            storage.insert(candidate.kind, {**config.insert_defaults, **record})
        return decision.action

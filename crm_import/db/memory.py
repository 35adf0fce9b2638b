from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from ..models.candidate import EntityKind
from .storage import EntityId, StorageError

"""In-memory transactional storage.

Used by the CLI ``--dry-run`` mode and by the test-suite. A transaction
snapshots every table on entry and restores the snapshot if the block
raises, which gives the same all-or-nothing behaviour as the database.
"""

__all__ = [
    "MemoryStorage",
]


class MemoryStorage:
    def __init__(self, unique_fields: Mapping[EntityKind, Iterable[str]] | None = None) -> None:
        self.tables: dict[EntityKind, dict[int, dict[str, Any]]] = {k: {} for k in EntityKind}
        # 一意制約のシミュレーション (重複時 StorageError)
        self.unique_fields = {k: tuple(v) for k, v in (unique_fields or {}).items()}
        self._next_id = 1
        self._depth = 0
        self.commits = 0
        self.rollbacks = 0

    def rows(self, kind: EntityKind) -> list[dict[str, Any]]:
        return [dict(r, id=i) for i, r in self.tables[kind].items()]

    def count(self, kind: EntityKind) -> int:
        return len(self.tables[kind])

    def find_by_dedup_key(
        self, kind: EntityKind, key_fields: Sequence[str], values: Sequence[Any]
    ) -> EntityId | None:
        wanted = dict(zip(key_fields, values, strict=True))
        for entity_id, record in self.tables[kind].items():
            if all(record.get(f) == v for f, v in wanted.items()):
                return entity_id
        return None

    def _check_unique(self, kind: EntityKind, record: Mapping[str, Any], skip_id: int | None = None) -> None:
        for name in self.unique_fields.get(kind, ()):
            value = record.get(name)
            if value is None:
                continue
            for entity_id, existing in self.tables[kind].items():
                if entity_id != skip_id and existing.get(name) == value:
                    raise StorageError(
                        f'duplicate key value violates unique constraint "{kind.value}_{name}_key"'
                    )

    def insert(self, kind: EntityKind, record: Mapping[str, Any]) -> EntityId:
        self._check_unique(kind, record)
        entity_id = self._next_id
        self._next_id += 1
        self.tables[kind][entity_id] = dict(record)
        return entity_id

    def update(self, kind: EntityKind, entity_id: EntityId, record: Mapping[str, Any]) -> None:
        if entity_id not in self.tables[kind]:
            raise StorageError(f"{kind.value} {entity_id} not found")
        merged = {**self.tables[kind][entity_id], **record}
        self._check_unique(kind, merged, skip_id=entity_id)
        self.tables[kind][entity_id] = merged

    @contextmanager
    def transaction(self) -> Iterator[MemoryStorage]:
        snapshot = (copy.deepcopy(self.tables), self._next_id)
        self._depth += 1
        try:
            yield self
        except BaseException:
            self.tables, self._next_id = snapshot
            self.rollbacks += 1
            raise
        else:
            self.commits += 1
        finally:
            self._depth -= 1

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

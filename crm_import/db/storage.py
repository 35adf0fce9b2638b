from __future__ import annotations

from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from ..models.candidate import EntityKind

"""Storage collaborator interface consumed by the import pipeline.

Every call made by the pipeline happens inside ``transaction()``; the
implementation commits when the block exits normally and rolls back when it
raises. No locking beyond the store's own transaction isolation is assumed.
"""

__all__ = [
    "EntityId",
    "Storage",
    "StorageError",
]

EntityId = Any


class StorageError(Exception):
    """Raised by storage implementations for any failed read or write."""


@runtime_checkable
class Storage(Protocol):
    def find_by_dedup_key(
        self, kind: EntityKind, key_fields: Sequence[str], values: Sequence[Any]
    ) -> EntityId | None:
        """Return the id of the first entity whose ``key_fields`` equal ``values``."""
        ...

    def insert(self, kind: EntityKind, record: Mapping[str, Any]) -> EntityId:
        ...

    def update(self, kind: EntityKind, entity_id: EntityId, record: Mapping[str, Any]) -> None:
        ...

    def transaction(self) -> AbstractContextManager[Any]:
        ...

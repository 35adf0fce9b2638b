from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from ..models.candidate import EntityKind
from .storage import EntityId, StorageError

"""PostgreSQL storage over a psycopg2 cursor.

Transaction boundaries are explicit (BEGIN / COMMIT / ROLLBACK on the cursor)
so the caller's connection can stay in a single session for the whole job.
Table names come from the entity configuration; identifiers are quoted.
"""

try:  # pragma: no cover - psycopg2 is a runtime dependency
    from psycopg2 import sql
except Exception:  # pragma: no cover
    sql = None  # type: ignore

__all__ = [
    "PostgresStorage",
]

logger = logging.getLogger(__name__)


class PostgresStorage:
    """``Storage`` implementation backed by a psycopg2 cursor.

    Parameters
    ----------
    cursor: psycopg2 cursor on a connection with ``autocommit = False``
    tables: entity kind -> table name
    id_column: primary key column (``RETURNING`` target)
    """

    def __init__(
        self,
        cursor: Any,
        tables: Mapping[EntityKind, str],
        *,
        id_column: str = "id",
        touch_column: str | None = "updated_at",
    ) -> None:
        if sql is None:
            raise StorageError("psycopg2 not available")
        self._cursor = cursor
        self._tables = dict(tables)
        self._id_column = id_column
        self._touch_column = touch_column

    def _table(self, kind: EntityKind) -> Any:
        try:
            return sql.Identifier(self._tables[kind])
        except KeyError as e:
            raise StorageError(f"no table configured for {kind.value}") from e

    def _execute(self, query: Any, params: Sequence[Any] | None = None) -> None:
        try:
            self._cursor.execute(query, params)
        except Exception as e:
            raise StorageError(str(e)) from e

    def find_by_dedup_key(
        self, kind: EntityKind, key_fields: Sequence[str], values: Sequence[Any]
    ) -> EntityId | None:
        if len(key_fields) != len(values):
            raise ValueError("key_fields and values length mismatch")
        where = sql.SQL(" AND ").join(
            sql.SQL("{} = %s").format(sql.Identifier(f)) for f in key_fields
        )
        query = sql.SQL("SELECT {} FROM {} WHERE {} LIMIT 1").format(
            sql.Identifier(self._id_column), self._table(kind), where
        )
        self._execute(query, list(values))
        row = self._cursor.fetchone()
        return None if row is None else row[0]

    def insert(self, kind: EntityKind, record: Mapping[str, Any]) -> EntityId:
        if not record:
            raise StorageError(f"refusing to insert empty {kind.value} record")
        columns = list(record)
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING {}").format(
            self._table(kind),
            sql.SQL(",").join(sql.Identifier(c) for c in columns),
            sql.SQL(",").join(sql.Placeholder() for _ in columns),
            sql.Identifier(self._id_column),
        )
        self._execute(query, [record[c] for c in columns])
        row = self._cursor.fetchone()
        if row is None:
            raise StorageError(f"insert into {self._tables[kind]} returned no id")
        return row[0]

    def update(self, kind: EntityKind, entity_id: EntityId, record: Mapping[str, Any]) -> None:
        assignments = [sql.SQL("{} = %s").format(sql.Identifier(c)) for c in record]
        params = list(record.values())
        if self._touch_column and self._touch_column not in record:
            assignments.append(sql.SQL("{} = now()").format(sql.Identifier(self._touch_column)))
        if not assignments:
            return
        query = sql.SQL("UPDATE {} SET {} WHERE {} = %s").format(
            self._table(kind),
            sql.SQL(", ").join(assignments),
            sql.Identifier(self._id_column),
        )
        self._execute(query, [*params, entity_id])

    @contextmanager
    def transaction(self) -> Iterator[PostgresStorage]:
        self._execute("BEGIN")
        try:
            yield self
        except BaseException:
            try:
                self._cursor.execute("ROLLBACK")
            except Exception:
                # 元の例外を優先して伝播させる
                logger.warning("rollback failed", exc_info=True)
            raise
        self._execute("COMMIT")

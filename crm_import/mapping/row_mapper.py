from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import tzinfo
from typing import Any

from ..config.entities import EntityFieldConfig
from ..models.candidate import CandidateRecord, Mapped, MappedRow, StructuralError
from .coercion import CoercionError, coerce_value
from .normalizer import normalize_columns

"""Row mapper: raw spreadsheet row -> candidate record or structural error.

All checks here run before any batch transaction is opened, so a row that
fails them never touches storage.
"""

__all__ = [
    "RelationshipResolutionError",
    "map_row",
    "map_rows",
]

logger = logging.getLogger(__name__)

OWNER_PAIR_MESSAGE = "Both owner name and phone are required if owner data is provided"


class RelationshipResolutionError(Exception):
    """Related-entity data on a row is incomplete or ambiguous."""


def _check_owner_link(values: Mapping[str, Any], config: EntityFieldConfig) -> None:
    link = config.owner_link
    if link is None:
        return
    has_name = link.name_field in values
    has_phone = link.phone_field in values
    if has_name != has_phone:
        raise RelationshipResolutionError(OWNER_PAIR_MESSAGE)


def map_row(
    raw_row: Mapping[str, Any],
    row_index: int,
    config: EntityFieldConfig,
    *,
    tz: str | tzinfo | None = None,
) -> MappedRow:
    """Normalize headers, coerce values and apply the required-field policy."""
    raw_values = normalize_columns(raw_row, config.alias_table)
    values: dict[str, Any] = {}
    invalid: dict[str, Any] = {}

    for spec in config.fields:
        if spec.name not in raw_values:
            continue
        raw = raw_values[spec.name]
        try:
            coerced = coerce_value(raw, spec.field_type, tz=tz)
        except CoercionError:
            if spec.name in config.required:
                invalid[spec.name] = raw
            else:
                logger.debug("row %d: dropping unparseable %s=%r", row_index, spec.name, raw)
            continue
        if coerced is not None:
            values[spec.name] = coerced

    for spec in config.fields:
        if spec.name in values:
            continue
        for source in spec.fallback_from:
            if source in values:
                values[spec.name] = values[source]
                break

    missing = [name for name in config.required if name not in values and name not in invalid]
    if missing:
        return StructuralError(row=row_index, message=f"Missing required fields: {', '.join(missing)}")
    if invalid:
        message = "; ".join(f"Invalid value for {name}: {raw!r}" for name, raw in invalid.items())
        return StructuralError(row=row_index, message=message)

    try:
        _check_owner_link(values, config)
    except RelationshipResolutionError as e:
        return StructuralError(row=row_index, message=str(e))

    return Mapped(CandidateRecord(kind=config.kind, row=row_index, values=values))


def map_rows(
    rows: Iterable[Mapping[str, Any]],
    config: EntityFieldConfig,
    *,
    tz: str | tzinfo | None = None,
) -> list[MappedRow]:
    """Map every row, numbering data rows from 1 in input order."""
    return [map_row(row, i, config, tz=tz) for i, row in enumerate(rows, start=1)]

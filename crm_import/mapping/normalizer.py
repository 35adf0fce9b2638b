from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

"""Header normalization: resolve arbitrary header text to canonical field names.

Matching removes every whitespace character and lower-cases both sides, so
"Next Follow Up", "next follow up" and "NextFollowUp" are the same header.
"""

__all__ = [
    "normalize_header",
    "normalize_columns",
    "resolve_headers",
]

_WHITESPACE = re.compile(r"\s+")


def normalize_header(text: Any) -> str:
    return _WHITESPACE.sub("", str(text)).lower()


def _index_row(row: Mapping[str, Any]) -> dict[str, Any]:
    # 同じ正規化キーが複数ある場合は値のある最初の列を採用
    index: dict[str, Any] = {}
    for header, value in row.items():
        key = normalize_header(header)
        if index.get(key) is None:
            index[key] = value
    return index


def normalize_columns(
    row: Mapping[str, Any], alias_table: Mapping[str, Sequence[str]]
) -> dict[str, Any]:
    """Map a raw row onto canonical fields using ``alias_table``.

    For each canonical field the aliases are tried in order and the first one
    whose header is present with a non-None value wins. A header feeds at most
    one field: once taken, later fields listing it in their aliases skip it.
    Fields without any matching header are left out of the result.
    """
    index = _index_row(row)
    taken: set[str] = set()
    out: dict[str, Any] = {}
    for canonical, aliases in alias_table.items():
        for alias in aliases:
            key = normalize_header(alias)
            if key in taken:
                continue
            value = index.get(key)
            if value is not None:
                out[canonical] = value
                taken.add(key)
                break
    return out


def resolve_headers(
    headers: Sequence[str], alias_table: Mapping[str, Sequence[str]]
) -> dict[str, str | None]:
    """Report which header (if any) feeds each canonical field.

    Used by the CLI ``--inspect-data`` mode; the import itself works per row.
    """
    by_key: dict[str, str] = {}
    for h in headers:
        by_key.setdefault(normalize_header(h), h)
    taken: set[str] = set()
    resolved: dict[str, str | None] = {}
    for canonical, aliases in alias_table.items():
        resolved[canonical] = None
        for alias in aliases:
            key = normalize_header(alias)
            hit = by_key.get(key)
            if hit is not None and key not in taken:
                resolved[canonical] = hit
                taken.add(key)
                break
    return resolved

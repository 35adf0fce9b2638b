from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta, tzinfo
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd

"""Value coercion from raw spreadsheet cells to semantic field types.

Date handling accepts, in priority order:
  (a) a native date/datetime produced by the spreadsheet reader
  (b) a spreadsheet serial day count (epoch 1899-12-30, 86_400_000 ms per day)
  (c) an ISO-like string
  (d) ``DD-MM-YYYY[ HH:MM]`` with ``/`` accepted as separator
Anything else is "not set". The epoch and day length must not change:
previously imported data was converted with exactly these constants.
"""

__all__ = [
    "FieldType",
    "CoercionError",
    "SERIAL_EPOCH",
    "MS_PER_DAY",
    "resolve_timezone",
    "coerce_string",
    "coerce_decimal",
    "coerce_datetime",
    "coerce_value",
    "to_iso",
]

SERIAL_EPOCH = datetime(1899, 12, 30, tzinfo=UTC)
MS_PER_DAY = 24 * 60 * 60 * 1000
# 文字列のシリアル値として扱う最大桁数 (それ以上は電話番号等の可能性)
SERIAL_STRING_MAX_LEN = 5

_NUMERIC = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_DMY = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})(?:\s+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?)?$")


class FieldType(Enum):
    STRING = "string"
    DECIMAL = "decimal"
    DATETIME = "datetime"


class CoercionError(ValueError):
    """Raised when a raw cell value cannot be converted to its field type."""

    def __init__(self, raw: Any, field_type: FieldType, reason: str | None = None) -> None:
        self.raw = raw
        self.field_type = field_type
        msg = f"cannot convert {raw!r} to {field_type.value}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


def resolve_timezone(name: str | tzinfo | None) -> tzinfo:
    if name is None:
        return UTC
    if isinstance(name, tzinfo):
        return name
    if name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError as e:
        raise ValueError(f"unknown timezone: {name}") from e


def _is_missing(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip() == ""
    try:
        return bool(pd.isna(raw))
    except (TypeError, ValueError):
        return False


def _is_number(raw: Any) -> bool:
    return isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool)


def coerce_string(raw: Any) -> str | None:
    if _is_missing(raw):
        return None
    if isinstance(raw, float) and raw.is_integer():
        # 9876543210.0 -> "9876543210" (電話番号列が float 化されたケース)
        return str(int(raw))
    if isinstance(raw, datetime):
        return to_iso(raw) if raw.tzinfo else raw.isoformat()
    return str(raw).strip()


def _canonical_decimal(d: Decimal) -> str:
    if d == d.to_integral_value():
        # 28 桁を超える整数も丸めずにそのまま
        return format(d.to_integral_value(), "f")
    return format(d.normalize(), "f")


def coerce_decimal(raw: Any) -> str | None:
    """Return the canonical decimal string for ``raw`` (e.g. 7500000.0 -> "7500000")."""
    if _is_missing(raw):
        return None
    if _is_number(raw):
        text = str(raw)
    else:
        text = str(raw).strip().replace(",", "").replace(" ", "")
        if not _NUMERIC.match(text):
            raise CoercionError(raw, FieldType.DECIMAL, "not a number")
    try:
        d = Decimal(text)
    except InvalidOperation as e:
        raise CoercionError(raw, FieldType.DECIMAL, "not a number") from e
    if not d.is_finite():
        raise CoercionError(raw, FieldType.DECIMAL, "not a finite number")
    return _canonical_decimal(d)


def _localize(value: datetime, tz: tzinfo) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(UTC)


def _from_serial(serial: float) -> datetime | None:
    try:
        return SERIAL_EPOCH + timedelta(milliseconds=serial * MS_PER_DAY)
    except OverflowError:
        return None


def _from_dmy(text: str, tz: tzinfo) -> datetime | None:
    m = _DMY.match(text.replace("/", "-"))
    if m is None:
        return None
    dd, mm, yyyy, hh, mi, ss = m.groups()
    try:
        value = datetime(int(yyyy), int(mm), int(dd), int(hh or 0), int(mi or 0), int(ss or 0))
    except ValueError:
        return None
    return _localize(value, tz)


def coerce_datetime(raw: Any, tz: str | tzinfo | None = None) -> datetime | None:
    """Coerce a raw cell to an aware UTC datetime, or None if it is not a date."""
    if _is_missing(raw):
        return None
    zone = resolve_timezone(tz)

    # (a) native
    if isinstance(raw, pd.Timestamp):
        raw = raw.to_pydatetime()
    if isinstance(raw, datetime):
        return _localize(raw, zone)
    if isinstance(raw, date):
        return _localize(datetime(raw.year, raw.month, raw.day), zone)

    # (b) spreadsheet serial
    if _is_number(raw):
        return _from_serial(float(raw))
    text = str(raw).strip()
    if _NUMERIC.match(text) and len(text) <= SERIAL_STRING_MAX_LEN:
        return _from_serial(float(text))

    # (c) ISO-like
    try:
        return _localize(datetime.fromisoformat(text), zone)
    except ValueError:
        pass

    # (d) DD-MM-YYYY[ HH:MM]
    return _from_dmy(text, zone)


def coerce_value(raw: Any, field_type: FieldType, *, tz: str | tzinfo | None = None) -> Any:
    """Dispatch on ``field_type``. Returns None for "not set"."""
    if field_type is FieldType.STRING:
        return coerce_string(raw)
    if field_type is FieldType.DECIMAL:
        return coerce_decimal(raw)
    if field_type is FieldType.DATETIME:
        return coerce_datetime(raw, tz)
    raise ValueError(f"unsupported field type: {field_type}")  # pragma: no cover


def to_iso(value: datetime) -> str:
    """Deterministic ISO8601 rendering in UTC with a 'Z' suffix."""
    return _localize(value, UTC).isoformat().replace("+00:00", "Z")

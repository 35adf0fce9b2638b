from __future__ import annotations

from datetime import UTC, date, datetime

import pandas as pd
import pytest

from crm_import.mapping.coercion import (
    MS_PER_DAY,
    SERIAL_EPOCH,
    CoercionError,
    FieldType,
    coerce_datetime,
    coerce_decimal,
    coerce_string,
    coerce_value,
    to_iso,
)


def test_serial_constants() -> None:
    assert SERIAL_EPOCH == datetime(1899, 12, 30, tzinfo=UTC)
    assert MS_PER_DAY == 86_400_000


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("17-11-2025 12:30", "2025-11-17T12:30:00Z"),
        (45000, "2023-03-15T00:00:00Z"),
        ("2025-11-17T00:00:00Z", "2025-11-17T00:00:00Z"),
    ],
)
def test_sample_dates_coerce_and_serialize_stably(raw, expected) -> None:
    first = coerce_datetime(raw)
    second = coerce_datetime(raw)
    assert first is not None
    assert to_iso(first) == expected
    assert to_iso(first) == to_iso(second)


def test_native_datetime_has_priority() -> None:
    value = datetime(2024, 5, 1, 9, 15)
    assert coerce_datetime(value) == datetime(2024, 5, 1, 9, 15, tzinfo=UTC)


def test_pandas_timestamp_and_date() -> None:
    assert coerce_datetime(pd.Timestamp("2024-05-01 10:00")) == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
    assert coerce_datetime(date(2024, 5, 1)) == datetime(2024, 5, 1, tzinfo=UTC)


def test_serial_as_short_numeric_string() -> None:
    assert coerce_datetime("45000") == datetime(2023, 3, 15, tzinfo=UTC)


def test_fractional_serial_keeps_time_of_day() -> None:
    assert coerce_datetime(45000.5) == datetime(2023, 3, 15, 12, 0, tzinfo=UTC)


def test_slash_separated_day_first() -> None:
    assert coerce_datetime("17/11/2025") == datetime(2025, 11, 17, tzinfo=UTC)


def test_naive_values_use_configured_timezone() -> None:
    got = coerce_datetime("17-11-2025 05:30", "Asia/Kolkata")
    assert got == datetime(2025, 11, 17, 0, 0, tzinfo=UTC)


@pytest.mark.parametrize("raw", [None, "", "   ", "soon", "31-02-2025", float("nan")])
def test_unparseable_or_empty_dates_are_absent(raw) -> None:
    assert coerce_datetime(raw) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        (7500000, "7500000"),
        (7500000.0, "7500000"),
        ("7500000", "7500000"),
        ("75,00,000", "7500000"),
        (" 1500.50 ", "1500.5"),
        (0.1, "0.1"),
        ("-12.250", "-12.25"),
    ],
)
def test_decimal_canonical_string(raw, expected) -> None:
    assert coerce_decimal(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "12 lakh", "1e5", float("inf")])
def test_decimal_rejects_garbage(raw) -> None:
    with pytest.raises(CoercionError) as exc:
        coerce_decimal(raw)
    assert exc.value.raw == raw


def test_decimal_empty_is_absent() -> None:
    assert coerce_decimal("") is None
    assert coerce_decimal(None) is None


def test_string_coercion() -> None:
    assert coerce_string("  Alice ") == "Alice"
    assert coerce_string(9876543210) == "9876543210"
    assert coerce_string(9876543210.0) == "9876543210"
    assert coerce_string(12.5) == "12.5"
    assert coerce_string("") is None
    assert coerce_string(None) is None


def test_coerce_value_dispatch() -> None:
    assert coerce_value(" x ", FieldType.STRING) == "x"
    assert coerce_value("10", FieldType.DECIMAL) == "10"
    assert coerce_value(45000, FieldType.DATETIME) == datetime(2023, 3, 15, tzinfo=UTC)


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ValueError):
        coerce_datetime("2025-01-01", "Mars/Olympus")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (1e30, "1" + "0" * 30),
        ("1" * 30, "1" * 30),
        ("123,456,789,012,345,678,901,234,567,890", "123456789012345678901234567890"),
    ],
)
def test_decimal_beyond_context_precision(raw, expected) -> None:
    assert coerce_decimal(raw) == expected

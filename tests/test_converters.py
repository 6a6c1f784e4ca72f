"""Unit tests for the conversion routine registry."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

import numpy as np
import pytest

from sheetbind.converters import (
    UnmarshalParameters,
    get_marshal_func,
    get_unmarshal_func,
    unmarshal_bool,
    unmarshal_date,
    unmarshal_datetime,
    unmarshal_float,
    unmarshal_int,
    unmarshal_str,
)
from sheetbind.document import Cell

PARAMS = UnmarshalParameters()


class Money:
    """Parses ``"12.30 CNY"`` style text."""

    def __init__(self, amount: Decimal, currency: str) -> None:
        self.amount = amount
        self.currency = currency

    @classmethod
    def from_text(cls, text: str) -> "Money":
        amount, currency = text.split()
        return cls(Decimal(amount), currency)

    def to_text(self) -> str:
        return f"{self.amount} {self.currency}"


class Flag:
    """Implements both capabilities; the Excel-specific one must win."""

    def __init__(self, source: str) -> None:
        self.source = source

    @classmethod
    def unmarshal_excel(cls, cell: Cell, params: UnmarshalParameters) -> "Flag":
        return cls("excel")

    @classmethod
    def from_text(cls, text: str) -> "Flag":
        return cls("text")

    def marshal_excel(self) -> object:
        return f"<{self.source}>"


@pytest.mark.parametrize("raw", ["1", "t", "T", "TRUE", "true", "True", True])
def test_bool_true_tokens(raw: object) -> None:
    assert unmarshal_bool(Cell(raw), PARAMS) is True


@pytest.mark.parametrize("raw", ["0", "f", "FALSE", "false", False])
def test_bool_false_tokens(raw: object) -> None:
    assert unmarshal_bool(Cell(raw), PARAMS) is False


def test_bool_rejects_unknown_token() -> None:
    with pytest.raises(ValueError):
        unmarshal_bool(Cell("yes"), PARAMS)


def test_int_accepts_native_and_text_values() -> None:
    assert unmarshal_int(Cell(42), PARAMS) == 42
    assert unmarshal_int(Cell(3.0), PARAMS) == 3
    assert unmarshal_int(Cell("-17"), PARAMS) == -17


@pytest.mark.parametrize("raw", ["1.5", "", "abc", 2.5])
def test_int_rejects_malformed_values(raw: object) -> None:
    with pytest.raises(ValueError):
        unmarshal_int(Cell(raw), PARAMS)


def test_float_parses_text() -> None:
    assert unmarshal_float(Cell("2.25"), PARAMS) == 2.25
    assert unmarshal_float(Cell(7), PARAMS) == 7.0
    with pytest.raises(ValueError):
        unmarshal_float(Cell("two"), PARAMS)


def test_sized_ints_enforce_range() -> None:
    int8 = get_unmarshal_func(np.int8)
    uint8 = get_unmarshal_func(np.uint8)

    assert int8(Cell("127"), PARAMS) == np.int8(127)
    with pytest.raises(OverflowError):
        int8(Cell("128"), PARAMS)
    with pytest.raises(OverflowError):
        uint8(Cell(-1), PARAMS)


def test_sized_float_overflow_is_an_error() -> None:
    float32 = get_unmarshal_func(np.float32)

    assert float32(Cell("1.5"), PARAMS) == np.float32(1.5)
    with pytest.raises(OverflowError):
        float32(Cell("1e40"), PARAMS)


def test_str_trims_only_when_configured() -> None:
    assert unmarshal_str(Cell("  a b "), PARAMS) == "  a b "
    assert unmarshal_str(Cell("  a b "), UnmarshalParameters(trim_space=True)) == "a b"
    assert unmarshal_str(Cell(3.0), PARAMS) == "3"


def test_datetime_from_native_serial_and_text() -> None:
    assert unmarshal_datetime(Cell(datetime(2023, 5, 6, 7, 8)), PARAMS) == datetime(2023, 5, 6, 7, 8)
    assert unmarshal_datetime(Cell(44927), PARAMS) == datetime(2023, 1, 1)
    assert unmarshal_datetime(Cell("44927"), PARAMS) == datetime(2023, 1, 1)


def test_datetime_uses_1904_epoch() -> None:
    params = UnmarshalParameters(date1904=True)

    assert unmarshal_datetime(Cell(1), params) == datetime(1904, 1, 2)


def test_datetime_from_time_and_duration_cells() -> None:
    assert unmarshal_datetime(Cell(time(9, 30)), PARAMS) == datetime(1899, 12, 30, 9, 30)
    assert unmarshal_datetime(Cell(timedelta(hours=30)), PARAMS) == datetime(1899, 12, 31, 6, 0)
    assert unmarshal_datetime(Cell(time(9, 30)), UnmarshalParameters(date1904=True)) == datetime(1904, 1, 1, 9, 30)
    assert unmarshal_date(Cell(time(23, 0)), PARAMS) == date(1899, 12, 30)


def test_datetime_fallback_patterns_in_order() -> None:
    params = UnmarshalParameters(fallback_date_formats=("%Y-%m-%d", "%d/%m/%Y"))

    assert unmarshal_datetime(Cell("2023-02-01"), params) == datetime(2023, 2, 1)
    assert unmarshal_datetime(Cell("01/02/2023"), params) == datetime(2023, 2, 1)
    with pytest.raises(ValueError):
        unmarshal_datetime(Cell("Feb 1st"), params)


def test_date_truncates_datetime() -> None:
    assert unmarshal_date(Cell(datetime(2023, 1, 1, 10, 30)), PARAMS) == date(2023, 1, 1)


def test_resolution_order_and_optional_unwrapping() -> None:
    assert get_unmarshal_func(Optional[int]) is unmarshal_int
    assert get_unmarshal_func(str | None) is unmarshal_str
    assert get_unmarshal_func(datetime) is unmarshal_datetime
    assert get_unmarshal_func(Optional[date]) is unmarshal_date


@pytest.mark.parametrize("annotation", [list[int], dict, int | str, Optional[list[str]], object])
def test_unsupported_annotations_have_no_routine(annotation: object) -> None:
    assert get_unmarshal_func(annotation) is None


def test_excel_unmarshaler_takes_precedence() -> None:
    routine = get_unmarshal_func(Flag)

    assert routine(Cell("x"), PARAMS).source == "excel"


def test_text_capabilities() -> None:
    money = get_unmarshal_func(Money)(Cell("12.30 CNY"), PARAMS)
    assert money.amount == Decimal("12.30")
    assert money.currency == "CNY"

    assert get_unmarshal_func(Decimal)(Cell("1.10"), PARAMS) == Decimal("1.10")


def test_marshal_functions() -> None:
    assert get_marshal_func(Decimal)(Decimal("1.10")) == "1.10"
    assert get_marshal_func(Money)(Money(Decimal("2"), "USD")) == "2 USD"
    assert get_marshal_func(Flag)(Flag("a")) == "<a>"
    assert get_marshal_func(np.int16)(np.int16(5)) == 5
    assert get_marshal_func(Optional[datetime])(datetime(2024, 1, 1)) == datetime(2024, 1, 1)
    assert get_marshal_func(list[int])([1, 2]) == "[1, 2]"

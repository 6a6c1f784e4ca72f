"""Conversion routines between cells and typed field values."""

# Module responsibilities:
# - Resolve, once per field, the routine that turns a cell into the field's type (and back).
# - Keep the built-in routines strict: malformed or out-of-range input raises, never truncates.

from __future__ import annotations

import math
import re
import typing
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from fractions import Fraction
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Protocol, Tuple

import numpy as np
from openpyxl.utils.datetime import CALENDAR_MAC_1904, CALENDAR_WINDOWS_1900, from_excel

from .descriptor import split_optional
from .document import Cell


@dataclass(frozen=True)
class UnmarshalParameters:
    """Settings shared by every routine of one decode pass."""

    trim_space: bool = False
    date1904: bool = False
    fallback_date_formats: Tuple[str, ...] = ()

    @property
    def epoch(self) -> datetime:
        return CALENDAR_MAC_1904 if self.date1904 else CALENDAR_WINDOWS_1900


UnmarshalFunc = Callable[[Cell, UnmarshalParameters], Any]
MarshalFunc = Callable[[Any], Any]


class ExcelUnmarshaler(Protocol):
    """Types that build themselves from a cell. Takes precedence over every built-in."""

    @classmethod
    def unmarshal_excel(cls, cell: Cell, params: UnmarshalParameters) -> Any: ...


class ExcelMarshaler(Protocol):
    """Types that render themselves into a native cell value."""

    def marshal_excel(self) -> object: ...


class TextUnmarshaler(Protocol):
    """Types parseable from the cell's text."""

    @classmethod
    def from_text(cls, text: str) -> Any: ...


class TextMarshaler(Protocol):
    def to_text(self) -> str: ...


TEXT_TYPES: Tuple[type, ...] = (Decimal, uuid.UUID, Fraction)

_TRUE_TOKENS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_TOKENS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INT_PATTERN = re.compile(r"[+-]?\d+")


def unmarshal_bool(cell: Cell, params: UnmarshalParameters) -> bool:
    if isinstance(cell.raw, bool):
        return cell.raw
    text = cell.value
    if text in _TRUE_TOKENS:
        return True
    if text in _FALSE_TOKENS:
        return False
    raise ValueError(f"invalid boolean {text!r}")


def unmarshal_int(cell: Cell, params: UnmarshalParameters) -> int:
    raw = cell.raw
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError(f"invalid integer {raw!r}: has a fractional part")
        return int(raw)
    text = cell.value
    if not _INT_PATTERN.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    return int(text)


def unmarshal_float(cell: Cell, params: UnmarshalParameters) -> float:
    raw = cell.raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw)
    text = cell.value
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"invalid number {text!r}") from None


def unmarshal_str(cell: Cell, params: UnmarshalParameters) -> str:
    if params.trim_space:
        return cell.value.strip()
    return cell.value


def sized_int(kind: type) -> UnmarshalFunc:
    """Routine for a fixed-width numpy integer kind with range checking."""

    bounds = np.iinfo(kind)

    def unmarshal(cell: Cell, params: UnmarshalParameters) -> Any:
        value = unmarshal_int(cell, params)
        if value < bounds.min or value > bounds.max:
            raise OverflowError(f"value {value} out of range for {bounds.dtype}")
        return kind(value)

    unmarshal.__name__ = f"unmarshal_{bounds.dtype}"
    return unmarshal


def sized_float(kind: type) -> UnmarshalFunc:
    """Routine for a fixed-width numpy float kind; overflow to infinity is an error."""

    def unmarshal(cell: Cell, params: UnmarshalParameters) -> Any:
        value = unmarshal_float(cell, params)
        with np.errstate(over="ignore"):
            narrowed = kind(value)
        if math.isinf(narrowed) and not math.isinf(value):
            raise OverflowError(f"value {value} out of range for {np.dtype(kind)}")
        return narrowed

    unmarshal.__name__ = f"unmarshal_{np.dtype(kind)}"
    return unmarshal


def _serial_to_datetime(serial: float, params: UnmarshalParameters) -> datetime:
    value = from_excel(serial, epoch=params.epoch)
    if isinstance(value, time):
        return datetime.combine(params.epoch.date(), value)
    return value


def unmarshal_datetime(cell: Cell, params: UnmarshalParameters) -> datetime:
    """Native date cell first, then a numeric serial, then each fallback pattern."""

    raw = cell.raw
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, time.min)
    # Time-only and duration cells carry no date; place them on the epoch.
    if isinstance(raw, time):
        return datetime.combine(params.epoch.date(), raw)
    if isinstance(raw, timedelta):
        return params.epoch + raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return _serial_to_datetime(raw, params)

    text = cell.value.strip()
    try:
        return _serial_to_datetime(float(text), params)
    except (ValueError, OverflowError):
        pass
    for pattern in params.fallback_date_formats:
        try:
            return datetime.strptime(text, pattern)
        except ValueError:
            continue
    raise ValueError(f"cannot parse {text!r} as a date")


def unmarshal_date(cell: Cell, params: UnmarshalParameters) -> date:
    if isinstance(cell.raw, date) and not isinstance(cell.raw, datetime):
        return cell.raw
    return unmarshal_datetime(cell, params).date()


def text_unmarshaler(kind: type) -> UnmarshalFunc:
    parse = getattr(kind, "from_text", None) or kind

    def unmarshal(cell: Cell, params: UnmarshalParameters) -> Any:
        return parse(cell.value)

    unmarshal.__name__ = f"unmarshal_{kind.__name__}"
    return unmarshal


def excel_unmarshaler(kind: type) -> UnmarshalFunc:
    def unmarshal(cell: Cell, params: UnmarshalParameters) -> Any:
        return kind.unmarshal_excel(cell, params)

    unmarshal.__name__ = f"unmarshal_{kind.__name__}"
    return unmarshal


DEFAULT_UNMARSHAL_FUNCS: Mapping[type, UnmarshalFunc] = MappingProxyType(
    {
        bool: unmarshal_bool,
        int: unmarshal_int,
        float: unmarshal_float,
        str: unmarshal_str,
        **{kind: sized_int(kind) for kind in (np.int8, np.int16, np.int32, np.int64)},
        **{kind: sized_int(kind) for kind in (np.uint8, np.uint16, np.uint32, np.uint64)},
        **{kind: sized_float(kind) for kind in (np.float16, np.float32, np.float64)},
    }
)


def get_unmarshal_func(annotation: Any) -> Optional[UnmarshalFunc]:
    """Return the routine for a field annotated with *annotation*, or ``None``.

    ``X | None`` resolves to the routine of ``X``: values are immutable, so the
    routine's fresh result is what gets attached to the field.
    """

    kind, _ = split_optional(annotation)
    if typing.get_origin(kind) is not None or not isinstance(kind, type):
        return None
    if callable(getattr(kind, "unmarshal_excel", None)):
        return excel_unmarshaler(kind)
    if kind is datetime:
        return unmarshal_datetime
    if kind is date:
        return unmarshal_date
    if callable(getattr(kind, "from_text", None)) or kind in TEXT_TYPES:
        return text_unmarshaler(kind)
    return DEFAULT_UNMARSHAL_FUNCS.get(kind)


def _identity(value: Any) -> Any:
    return value


def _marshal_excel(value: Any) -> Any:
    return value.marshal_excel()


def _to_text(value: Any) -> str:
    return value.to_text()


def _numpy_item(value: Any) -> Any:
    return value.item()


def marshal_value(value: Any) -> Any:
    """Fallback for values of types without a resolved routine."""

    if value is None or isinstance(value, (bool, int, float, str, date, time, Decimal)):
        return value
    return str(value)


def get_marshal_func(annotation: Any) -> MarshalFunc:
    """Return the routine rendering a field value into a native cell value."""

    kind, _ = split_optional(annotation)
    if typing.get_origin(kind) is not None or not isinstance(kind, type):
        return marshal_value
    if callable(getattr(kind, "marshal_excel", None)):
        return _marshal_excel
    if kind in (datetime, date):
        return _identity
    if callable(getattr(kind, "to_text", None)):
        return _to_text
    if kind in TEXT_TYPES:
        return str
    if issubclass(kind, np.generic):
        return _numpy_item
    if kind in (bool, int, float, str):
        return _identity
    return marshal_value


__all__ = [
    "DEFAULT_UNMARSHAL_FUNCS",
    "ExcelMarshaler",
    "ExcelUnmarshaler",
    "MarshalFunc",
    "TEXT_TYPES",
    "TextMarshaler",
    "TextUnmarshaler",
    "UnmarshalFunc",
    "UnmarshalParameters",
    "get_marshal_func",
    "get_unmarshal_func",
    "marshal_value",
    "unmarshal_bool",
    "unmarshal_date",
    "unmarshal_datetime",
    "unmarshal_float",
    "unmarshal_int",
    "unmarshal_str",
]

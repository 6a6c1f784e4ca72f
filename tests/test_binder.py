"""Unit tests for the column binder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from sheetbind.binder import bind_columns, bound_count
from sheetbind.converters import unmarshal_bool, unmarshal_str
from sheetbind.descriptor import column, describe
from sheetbind.errors import NoDestinationFieldError, NoUnmarshalerError
from sheetbind.schema import ReadConfig


@dataclass
class Member:
    name: str = column("name", default="")
    active: bool = column("active", default=False)
    level: Optional[int] = column("level", default=None)


@dataclass
class Tagged:
    name: str = column("name", default="")
    tags: List[str] = column("tags", default_factory=list)


def test_plan_is_aligned_with_columns() -> None:
    plan = bind_columns(["active", "unknown", "name"], describe(Member), ReadConfig())

    assert len(plan) == 3
    assert plan[0].field.name == "active"
    assert plan[0].unmarshal is unmarshal_bool
    assert plan[1] is None
    assert plan[2].column_index == 2
    assert plan[2].unmarshal is unmarshal_str


@pytest.mark.parametrize(
    "headers",
    [
        ["name", "active", "level"],
        ["level", "x", "y"],
        ["", "name", "", "active"],
        [],
    ],
)
def test_bound_count_is_header_tag_intersection(headers: list[str]) -> None:
    descriptor = describe(Member)
    plan = bind_columns(headers, descriptor, ReadConfig())

    assert bound_count(plan) == len(set(headers) & set(descriptor.tag_map))


def test_unknown_column_fails_when_not_skipped() -> None:
    config = ReadConfig(skip_unknown_columns=False)

    with pytest.raises(NoDestinationFieldError) as excinfo:
        bind_columns(["name", "remark"], describe(Member), config)

    assert excinfo.value.header == "remark"
    assert excinfo.value.column_index == 1
    assert '"remark" at index 1' in str(excinfo.value)


def test_unsupported_type_fails_by_default() -> None:
    with pytest.raises(NoUnmarshalerError) as excinfo:
        bind_columns(["name", "tags"], describe(Tagged), ReadConfig())

    assert excinfo.value.header == "tags"
    assert excinfo.value.column_index == 1


def test_unsupported_type_skipped_when_configured() -> None:
    plan = bind_columns(["name", "tags"], describe(Tagged), ReadConfig(skip_unknown_types=True))

    assert plan[1] is None
    assert bound_count(plan) == 1

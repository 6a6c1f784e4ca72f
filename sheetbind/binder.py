"""Reconcile a header row with a record type into a per-column binding plan."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .converters import UnmarshalFunc, get_unmarshal_func
from .descriptor import FieldDescriptor, RecordDescriptor
from .errors import NoDestinationFieldError, NoUnmarshalerError
from .schema import ReadConfig
from .utils.log import get_logger

logger = get_logger("binder")


@dataclass(frozen=True)
class ColumnBinding:
    """A column bound to a destination field and its conversion routine."""

    column_index: int
    header: str
    field: FieldDescriptor
    unmarshal: UnmarshalFunc


# One entry per column; None marks a skipped column.
BindingPlan = Tuple[Optional[ColumnBinding], ...]


def bind_columns(headers: Sequence[str], descriptor: RecordDescriptor, config: ReadConfig) -> BindingPlan:
    """Build the binding plan for *headers* against *descriptor*.

    Raises:
        NoDestinationFieldError: A header has no tagged field and unknown
            columns are not skipped.
        NoUnmarshalerError: The tagged field's type has no conversion routine
            and unknown types are not skipped.
    """

    plan = []
    for column_index, header in enumerate(headers):
        field = descriptor.tag_map.get(header)
        if field is None:
            if not config.skip_unknown_columns:
                raise NoDestinationFieldError(header, column_index)
            if header:
                logger.debug("Skipping column %r at index %d: no matching field", header, column_index)
            plan.append(None)
            continue

        unmarshal = get_unmarshal_func(field.annotation)
        if unmarshal is None:
            if not config.skip_unknown_types:
                raise NoUnmarshalerError(header, column_index)
            logger.warning(
                "Skipping column %r at index %d: unsupported type %r",
                header,
                column_index,
                field.annotation,
            )
            plan.append(None)
            continue

        plan.append(ColumnBinding(column_index=column_index, header=header, field=field, unmarshal=unmarshal))
    return tuple(plan)


def bound_count(plan: BindingPlan) -> int:
    return sum(1 for binding in plan if binding is not None)


__all__ = ["BindingPlan", "ColumnBinding", "bind_columns", "bound_count"]

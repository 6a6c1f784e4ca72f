"""Encode typed records into worksheet rows."""

# Module responsibilities:
# - Project records onto flat cell values, mirroring the decode special cases in reverse.
# - Describe boolean and drop-list columns as list validations for the workbook writer.
# - Provide file/stream entry points plus a plain string-grid writer.

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Iterable, List, Optional, Protocol, Sequence, Union

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from .converters import MarshalFunc, get_marshal_func
from .descriptor import FieldDescriptor, RecordDescriptor, describe
from .document import ColumnConstraint, SheetWriter, Target
from .errors import RecordTypeError
from .schema import WriteConfig, lookup_display
from .utils.log import get_logger

logger = get_logger("writer")


class WriteConfigurable(Protocol):
    """Records that adjust the default write configuration themselves."""

    def write_configure(self, config: WriteConfig) -> None: ...


@dataclass(frozen=True)
class HeaderColumn:
    """One output column: its field, header text and optional list constraint."""

    field: FieldDescriptor
    header: str
    constraint: Optional[ColumnConstraint]
    marshal: MarshalFunc


def resolve_write_config(records: Sequence[Any], config: Optional[WriteConfig] = None) -> WriteConfig:
    """Explicit config wins; otherwise defaults adjusted by the first record's hook."""

    if config is not None:
        return config
    config = WriteConfig()
    if records:
        hook = getattr(records[0], "write_configure", None)
        if callable(hook):
            hook(config)
    return config


def _bool_constraint(field: FieldDescriptor, config: WriteConfig) -> ColumnConstraint:
    if config.localized_bool:
        true_token, false_token = config.bool_tokens
        return ColumnConstraint(
            choices=(true_token, false_token),
            allow_blank=field.optional,
            error_message=f"应该为 {true_token}或{false_token}",
        )
    return ColumnConstraint(
        choices=("TRUE", "FALSE"),
        allow_blank=field.optional,
        error_message="should be TRUE or FALSE",
    )


def project_header(descriptor: RecordDescriptor, config: WriteConfig) -> List[HeaderColumn]:
    """Return the output columns of *descriptor* in declaration order."""

    columns = []
    for field in descriptor.visible_fields(config.skip_untagged):
        constraint = None
        if field.is_kind(bool):
            constraint = _bool_constraint(field, config)
        elif field.is_kind(str) and field.tag is not None:
            entries = config.drop_lists.get(field.tag)
            if entries:
                choices = tuple(entry.value for entry in entries)
                constraint = ColumnConstraint(
                    choices=choices,
                    allow_blank=field.optional,
                    error_message=f"应该为 {'、'.join(choices)} 中之一",
                )
        columns.append(
            HeaderColumn(
                field=field,
                header=field.header,
                constraint=constraint,
                marshal=get_marshal_func(field.annotation),
            )
        )
    return columns


def project_row(record: Any, columns: Sequence[HeaderColumn], config: WriteConfig) -> List[object]:
    """Flatten one record into the cell values of a row."""

    values: List[object] = []
    for column in columns:
        field = column.field
        value = getattr(record, field.name)
        if value is None:
            values.append("" if config.skip_nil_pointer else None)
            continue
        if field.is_kind(bool):
            if config.localized_bool:
                true_token, false_token = config.bool_tokens
                values.append(true_token if value else false_token)
            else:
                values.append(bool(value))
            continue
        if field.is_kind(str) and field.tag is not None:
            entries = config.drop_lists.get(field.tag)
            if entries:
                values.append(lookup_display(entries, value))
                continue
        values.append(column.marshal(value))
    return values


def _render(records: Sequence[Any], config: Optional[WriteConfig], record_type: Optional[type]) -> SheetWriter:
    if record_type is None:
        if not records:
            raise RecordTypeError("record_type is required when writing an empty record sequence")
        record_type = type(records[0])
    config = resolve_write_config(records, config)
    descriptor = describe(record_type, config.tag_name)
    columns = project_header(descriptor, config)

    writer = SheetWriter()
    writer.add_sheet(config.sheet_name)
    writer.append_row([column.header for column in columns])
    for record in records:
        writer.append_row(project_row(record, columns, config), date_format=config.date_format)

    last_row = writer.rows_written
    if last_row > 1:
        for position, column in enumerate(columns, start=1):
            if column.constraint is None:
                continue
            letter = get_column_letter(position)
            writer.add_constraint(column.constraint, f"{letter}2:{letter}{last_row}")

    logger.info(
        "Records encoded",
        extra={"sheet": config.sheet_name, "record_type": record_type.__name__, "records": len(records)},
    )
    return writer


def new_workbook(
    records: Iterable[Any],
    config: Optional[WriteConfig] = None,
    record_type: Optional[type] = None,
) -> Workbook:
    """Return an in-memory workbook holding *records* under a header row."""

    return _render(list(records), config, record_type).workbook


def write_to(
    stream: BinaryIO,
    records: Iterable[Any],
    config: Optional[WriteConfig] = None,
    record_type: Optional[type] = None,
) -> None:
    """Write *records* as a workbook into a binary stream."""

    _render(list(records), config, record_type).save(stream)


def write_file(
    path: Union[str, Path],
    records: Iterable[Any],
    config: Optional[WriteConfig] = None,
    record_type: Optional[type] = None,
) -> Path:
    """Write *records* as a workbook to *path* and return the path."""

    target = Path(path)
    _render(list(records), config, record_type).save(target)
    logger.info("Workbook written", extra={"path": str(target)})
    return target


def _write_grid(target: Target, rows: Iterable[Sequence[str]]) -> None:
    writer = SheetWriter()
    writer.add_sheet("Sheet1")
    for row in rows:
        writer.append_row([str(cell) for cell in row])
    writer.save(target)


def write_rows(path: Union[str, Path], rows: Iterable[Sequence[str]]) -> Path:
    """Write a plain grid of strings to ``Sheet1`` of a new workbook."""

    target = Path(path)
    _write_grid(target, rows)
    return target


def write_rows_to(stream: BinaryIO, rows: Iterable[Sequence[str]]) -> None:
    """Stream variant of :func:`write_rows`."""

    _write_grid(stream, rows)


__all__ = [
    "HeaderColumn",
    "WriteConfigurable",
    "new_workbook",
    "project_header",
    "project_row",
    "resolve_write_config",
    "write_file",
    "write_rows",
    "write_rows_to",
    "write_to",
]

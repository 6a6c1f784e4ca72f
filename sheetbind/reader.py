"""Decode worksheet rows into typed records."""

# Module responsibilities:
# - Validate the sheet layout, bind the header row once and materialize every data row.
# - Apply the per-field special cases (nullable blanks, localized booleans, drop-lists).
# - Govern conversion failures with the configured ignore/abort/collect policy.

from __future__ import annotations

from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar, Union

import pandas as pd

from .binder import BindingPlan, ColumnBinding, bind_columns, bound_count
from .converters import UnmarshalParameters
from .descriptor import RecordDescriptor, describe
from .document import EMPTY_CELL, Cell, Document, Source
from .errors import (
    ContentError,
    DataStartRowIndexOutOfRangeError,
    FieldError,
    HeaderRowIndexOutOfRangeError,
    SheetIndexOutOfRangeError,
)
from .schema import ErrorPolicy, ReadConfig, lookup_key
from .utils.log import get_logger

logger = get_logger("reader")

T = TypeVar("T")
RowFilter = Callable[[T], bool]

# Marks a special case that produced no value; the field keeps its zero value.
_ABSENT = object()
# Marks a cell the special cases did not handle.
_UNHANDLED = object()


class ReadConfigurable(Protocol):
    """Record types that adjust the default read configuration themselves."""

    @classmethod
    def read_configure(cls, config: ReadConfig) -> None: ...


def resolve_read_config(record_type: type, config: Optional[ReadConfig] = None) -> ReadConfig:
    """Explicit config wins; otherwise fresh defaults adjusted by the type's hook."""

    if config is not None:
        return config
    config = ReadConfig()
    hook = getattr(record_type, "read_configure", None)
    if callable(hook):
        hook(config)
    return config


class RowMaterializer:
    """Turns data rows into records for one decode pass.

    Owns the collected field errors of that pass; never shared between passes.
    """

    def __init__(
        self,
        descriptor: RecordDescriptor,
        plan: BindingPlan,
        config: ReadConfig,
        params: UnmarshalParameters,
    ) -> None:
        self.descriptor = descriptor
        self.plan = [binding for binding in plan if binding is not None]
        self.config = config
        self.params = params
        self.errors: List[FieldError] = []

    def materialize(self, row_index: int, cells: Sequence[Cell]) -> Any:
        values: Dict[str, Any] = {}
        for binding in self.plan:
            index = binding.column_index
            cell = cells[index] if index < len(cells) else EMPTY_CELL
            try:
                value = self._special_case(binding, cell)
                if value is _UNHANDLED:
                    value = binding.unmarshal(cell, self.params)
            except Exception as exc:  # noqa: BLE001 - custom routines may raise anything
                self._handle_error(FieldError(row_index, index, binding.header, exc))
                continue
            if value is not _ABSENT:
                values[binding.field.name] = value
        return self.descriptor.build(values)

    def _special_case(self, binding: ColumnBinding, cell: Cell) -> Any:
        field = binding.field
        text = cell.value
        if field.optional and self.config.nil_on_empty and text == "":
            return _ABSENT
        if field.is_kind(bool):
            true_token, false_token = self.config.bool_tokens
            if text == true_token:
                return True
            if text == false_token:
                return False
        elif field.is_kind(str):
            entries = self.config.drop_lists.get(binding.header)
            if entries:
                key = lookup_key(entries, text)
                if key is not None:
                    return key
        return _UNHANDLED

    def _handle_error(self, error: FieldError) -> None:
        policy = self.config.error_policy
        if policy is ErrorPolicy.IGNORE:
            logger.debug("Ignoring conversion failure: %s", error)
            return
        if policy is ErrorPolicy.ABORT:
            raise error
        self.errors.append(error)
        if 0 < self.config.max_errors <= len(self.errors):
            raise ContentError(self.errors, limit_reached=True)


def _keep(record: Any, filters: Sequence[Optional[RowFilter]]) -> bool:
    for row_filter in filters:
        if row_filter is not None and not row_filter(record):
            return False
    return True


def read_document(
    document: Document,
    record_type: type,
    filters: Sequence[Optional[RowFilter]] = (),
    config: Optional[ReadConfig] = None,
) -> List[Any]:
    """Decode the configured sheet of an opened *document* into records.

    Raises:
        SheetIndexOutOfRangeError, HeaderRowIndexOutOfRangeError,
        DataStartRowIndexOutOfRangeError: The configured layout does not fit.
        NoDestinationFieldError, NoUnmarshalerError: A column cannot be bound.
        FieldError: First conversion failure under the abort policy.
        ContentError: Conversion failures collected under the collect policy.
    """

    config = resolve_read_config(record_type, config)
    descriptor = describe(record_type, config.tag_name)

    if not 0 <= config.sheet_index < document.sheet_count:
        raise SheetIndexOutOfRangeError(config.sheet_index, document.sheet_count)
    sheet = document.sheet(config.sheet_index)
    if not 0 <= config.header_row_index < sheet.max_row:
        raise HeaderRowIndexOutOfRangeError(config.header_row_index, sheet.max_row)
    if not 0 <= config.data_start_row_index < sheet.max_row:
        raise DataStartRowIndexOutOfRangeError(config.data_start_row_index, sheet.max_row)

    headers = sheet.header(config.header_row_index)
    plan = bind_columns(headers, descriptor, config)
    logger.debug(
        "Bound %d of %d columns for %s",
        bound_count(plan),
        len(plan),
        record_type.__name__,
    )

    params = UnmarshalParameters(
        trim_space=config.trim_space,
        date1904=document.date1904,
        fallback_date_formats=tuple(config.fallback_date_formats),
    )
    materializer = RowMaterializer(descriptor, plan, config, params)

    records: List[Any] = []
    for row_index, cells in sheet.iter_rows(start=config.data_start_row_index):
        if config.skip_blank_rows and all(cell.is_blank for cell in cells):
            continue
        record = materializer.materialize(row_index, cells)
        if _keep(record, filters):
            records.append(record)

    if materializer.errors:
        raise ContentError(materializer.errors, limit_reached=False)

    logger.info(
        "Sheet decoded",
        extra={"sheet": sheet.title, "record_type": record_type.__name__, "records": len(records)},
    )
    return records


def _read_source(source: Source, record_type: type, filters: Sequence[Optional[RowFilter]], config: Optional[ReadConfig]) -> List[Any]:
    document = Document.open(source)
    try:
        return read_document(document, record_type, filters, config)
    finally:
        document.close()


def read(stream: BinaryIO, record_type: type, *filters: Optional[RowFilter], config: Optional[ReadConfig] = None) -> List[Any]:
    """Decode records from a binary stream holding a workbook."""

    return _read_source(stream, record_type, filters, config)


def read_binary(data: bytes, record_type: type, *filters: Optional[RowFilter], config: Optional[ReadConfig] = None) -> List[Any]:
    """Decode records from an in-memory workbook."""

    return _read_source(data, record_type, filters, config)


def read_file(
    path: Union[str, Path],
    record_type: type,
    *filters: Optional[RowFilter],
    config: Optional[ReadConfig] = None,
) -> List[Any]:
    """Decode records from a workbook on disk.

    Raises:
        FileNotFoundError: When the workbook does not exist.
    """

    logger.info("Reading workbook", extra={"path": str(path), "record_type": record_type.__name__})
    return _read_source(Path(path), record_type, filters, config)


def read_frame(
    source: Source,
    record_type: type,
    *filters: Optional[RowFilter],
    config: Optional[ReadConfig] = None,
) -> pd.DataFrame:
    """Decode records and return them as a DataFrame, one column per exported field."""

    resolved = resolve_read_config(record_type, config)
    records = _read_source(source, record_type, filters, resolved)
    names = [item.name for item in describe(record_type, resolved.tag_name).fields]
    rows = [{name: getattr(record, name) for name in names} for record in records]
    return pd.DataFrame(rows, columns=names)


def walk_rows(source: Source, sheet_index: int, walk: Callable[[int, List[Cell]], None]) -> None:
    """Call ``walk(row_index, cells)`` for every row of a sheet."""

    document = Document.open(source)
    try:
        if not 0 <= sheet_index < document.sheet_count:
            raise SheetIndexOutOfRangeError(sheet_index, document.sheet_count)
        for row_index, cells in document.sheet(sheet_index).iter_rows():
            walk(row_index, cells)
    finally:
        document.close()


__all__ = [
    "ReadConfigurable",
    "RowFilter",
    "RowMaterializer",
    "read",
    "read_binary",
    "read_document",
    "read_file",
    "read_frame",
    "resolve_read_config",
    "walk_rows",
]

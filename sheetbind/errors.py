"""Custom exceptions used across sheetbind."""

from __future__ import annotations

from typing import Sequence


class SheetBindError(Exception):
    """Base error for the package."""


class ConfigError(SheetBindError):
    """Configuration related error."""


class RecordTypeError(SheetBindError, TypeError):
    """Raised when a record type cannot be described or inferred."""


class StructuralError(SheetBindError):
    """The sheet layout cannot be reconciled with the record type."""


class SheetIndexOutOfRangeError(StructuralError):
    """Raised when the configured sheet index does not exist."""

    def __init__(self, sheet_index: int, sheet_count: int) -> None:
        super().__init__(f"sheet index {sheet_index} out of range (workbook has {sheet_count} sheets)")
        self.sheet_index = sheet_index
        self.sheet_count = sheet_count


class HeaderRowIndexOutOfRangeError(StructuralError):
    """Raised when the header row index lies outside the sheet."""

    def __init__(self, row_index: int, max_row: int) -> None:
        super().__init__(f"header row index {row_index} out of range (sheet has {max_row} rows)")
        self.row_index = row_index
        self.max_row = max_row


class DataStartRowIndexOutOfRangeError(StructuralError):
    """Raised when the first data row index lies outside the sheet."""

    def __init__(self, row_index: int, max_row: int) -> None:
        super().__init__(f"data start row index {row_index} out of range (sheet has {max_row} rows)")
        self.row_index = row_index
        self.max_row = max_row


class ColumnBindingError(StructuralError):
    """A column could not be bound to a field of the record type."""

    reason = "column cannot be bound"

    def __init__(self, header: str, column_index: int) -> None:
        super().__init__(f'{self.reason} for column "{header}" at index {column_index}')
        self.header = header
        self.column_index = column_index


class NoDestinationFieldError(ColumnBindingError):
    """No field carries a tag matching the column header."""

    reason = "no destination field with matching tag"


class NoUnmarshalerError(ColumnBindingError):
    """The destination field has a type no conversion routine supports."""

    reason = "no unmarshaler"


class FieldError(SheetBindError):
    """A single cell failed to convert into its destination field.

    ``row_index`` and ``column_index`` are zero-based; the message prints the
    row as a one-based number the way spreadsheet users count rows.
    """

    def __init__(self, row_index: int, column_index: int, column_header: str, error: BaseException) -> None:
        super().__init__(
            f'error unmarshalling column "{column_header}" in row {row_index + 1}: {error}'
        )
        self.row_index = row_index
        self.column_index = column_index
        self.column_header = column_header
        self.error = error
        self.__cause__ = error


class ContentError(SheetBindError):
    """Conversion failures collected over a whole decode pass."""

    def __init__(self, field_errors: Sequence[FieldError], limit_reached: bool = False) -> None:
        self.field_errors: tuple[FieldError, ...] = tuple(field_errors)
        self.limit_reached = limit_reached
        if limit_reached:
            message = f"too many ({len(self.field_errors)}) errors reading data from Excel"
        else:
            message = f"{len(self.field_errors)} errors reading data from Excel"
        super().__init__(message)

    def __iter__(self):
        return iter(self.field_errors)

    def __len__(self) -> int:
        return len(self.field_errors)


__all__ = [
    "ColumnBindingError",
    "ConfigError",
    "ContentError",
    "DataStartRowIndexOutOfRangeError",
    "FieldError",
    "HeaderRowIndexOutOfRangeError",
    "NoDestinationFieldError",
    "NoUnmarshalerError",
    "RecordTypeError",
    "SheetBindError",
    "SheetIndexOutOfRangeError",
    "StructuralError",
]

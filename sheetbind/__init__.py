"""`sheetbind` top-level package maps spreadsheet rows to dataclass records and back."""

# Module responsibilities:
# - Re-export the decode/encode entry points, configuration containers and errors
#   so consumers have a stable API surface.

from __future__ import annotations

from .descriptor import column, describe
from .document import Cell, ColumnConstraint
from .errors import (
    ConfigError,
    ContentError,
    DataStartRowIndexOutOfRangeError,
    FieldError,
    HeaderRowIndexOutOfRangeError,
    NoDestinationFieldError,
    NoUnmarshalerError,
    RecordTypeError,
    SheetBindError,
    SheetIndexOutOfRangeError,
    StructuralError,
)
from .converters import UnmarshalParameters
from .reader import read, read_binary, read_file, read_frame, walk_rows
from .schema import (
    DropListEntry,
    ErrorPolicy,
    ReadConfig,
    WriteConfig,
    drop_list,
    load_read_config,
    load_write_config,
)
from .writer import new_workbook, write_file, write_rows, write_rows_to, write_to

__all__ = [
    "Cell",
    "ColumnConstraint",
    "ConfigError",
    "ContentError",
    "DataStartRowIndexOutOfRangeError",
    "DropListEntry",
    "ErrorPolicy",
    "FieldError",
    "HeaderRowIndexOutOfRangeError",
    "NoDestinationFieldError",
    "NoUnmarshalerError",
    "ReadConfig",
    "RecordTypeError",
    "SheetBindError",
    "SheetIndexOutOfRangeError",
    "StructuralError",
    "UnmarshalParameters",
    "WriteConfig",
    "column",
    "describe",
    "drop_list",
    "load_read_config",
    "load_write_config",
    "new_workbook",
    "read",
    "read_binary",
    "read_file",
    "read_frame",
    "walk_rows",
    "write_file",
    "write_rows",
    "write_rows_to",
    "write_to",
]

__version__ = "0.1.0"

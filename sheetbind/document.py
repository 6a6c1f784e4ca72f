"""Thin adapter over openpyxl exposing the grid surface the mapping engine needs."""

# Module responsibilities:
# - Open workbooks from bytes, streams or paths and expose sheets as rows of text-aware cells.
# - Build new workbooks row by row, including date formats and list validations.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Sequence, Tuple, Union

from openpyxl import Workbook, load_workbook
from openpyxl.utils.datetime import CALENDAR_MAC_1904
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet

from .utils.log import get_logger

logger = get_logger("document")

Source = Union[bytes, bytearray, BinaryIO, str, Path]
Target = Union[BinaryIO, str, Path]

# Excel rejects inline list formulas longer than this.
LIST_FORMULA_LIMIT = 255


def cell_text(raw: object) -> str:
    """Render a native cell value the way a spreadsheet displays it in General format."""

    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "TRUE" if raw else "FALSE"
    if isinstance(raw, float):
        if raw.is_integer():
            return str(int(raw))
        return repr(raw)
    if isinstance(raw, datetime):
        return raw.isoformat(sep=" ")
    if isinstance(raw, (date, time)):
        return raw.isoformat()
    if isinstance(raw, timedelta):
        return str(raw)
    return str(raw)


@dataclass(frozen=True)
class Cell:
    """A single cell: its native value and its text rendering."""

    raw: object = None

    @property
    def value(self) -> str:
        return cell_text(self.raw)

    @property
    def is_blank(self) -> bool:
        if self.raw is None:
            return True
        return isinstance(self.raw, str) and not self.raw.strip()


EMPTY_CELL = Cell()


class SheetView:
    """Read access to one worksheet with zero-based row and column indexes."""

    def __init__(self, worksheet: Worksheet) -> None:
        self._worksheet = worksheet
        self.title = worksheet.title
        self.max_row = worksheet.max_row or 0
        self.max_col = worksheet.max_column or 0

    def row(self, index: int) -> List[Cell]:
        """Return the cells of row *index*, padded to :attr:`max_col`."""

        for _, cells in self.iter_rows(start=index, stop=index + 1):
            return cells
        return [EMPTY_CELL] * self.max_col

    def iter_rows(self, start: int = 0, stop: Optional[int] = None) -> Iterator[Tuple[int, List[Cell]]]:
        """Yield ``(row_index, cells)`` from *start* up to *stop* (exclusive)."""

        last = self.max_row if stop is None else min(stop, self.max_row)
        if start >= last or self.max_col == 0:
            return
        rows = self._worksheet.iter_rows(
            min_row=start + 1,
            max_row=last,
            max_col=self.max_col,
            values_only=True,
        )
        for offset, values in enumerate(rows):
            cells = [Cell(value) for value in values]
            if len(cells) < self.max_col:
                cells.extend([EMPTY_CELL] * (self.max_col - len(cells)))
            yield start + offset, cells

    def header(self, index: int) -> List[str]:
        """Return the text of every cell in row *index*."""

        return [cell.value for cell in self.row(index)]


class Document:
    """An opened workbook."""

    def __init__(self, workbook: Workbook) -> None:
        self._workbook = workbook

    @classmethod
    def open(cls, source: Source) -> "Document":
        """Open *source* (bytes, binary stream or filesystem path).

        Raises:
            FileNotFoundError: When a path does not exist.
            zipfile.BadZipFile / openpyxl InvalidFileException: When the payload
                is not a workbook. Container errors propagate unchanged.
        """

        if isinstance(source, (bytes, bytearray)):
            handle: Union[BinaryIO, str, Path] = BytesIO(bytes(source))
        elif isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"Source workbook not found: {path}")
            handle = path
        else:
            # openpyxl needs a seekable handle.
            handle = BytesIO(source.read())
        workbook = load_workbook(handle, data_only=True)
        return cls(workbook)

    @property
    def sheet_count(self) -> int:
        return len(self._workbook.worksheets)

    @property
    def sheet_names(self) -> List[str]:
        return list(self._workbook.sheetnames)

    @property
    def date1904(self) -> bool:
        return self._workbook.epoch == CALENDAR_MAC_1904

    def sheet(self, index: int) -> SheetView:
        return SheetView(self._workbook.worksheets[index])

    def close(self) -> None:
        self._workbook.close()


@dataclass(frozen=True)
class ColumnConstraint:
    """Enumerated choices a column's data cells are restricted to."""

    choices: Tuple[str, ...]
    allow_blank: bool = False
    error_title: str = ""
    error_message: str = ""

    def formula(self) -> str:
        quoted = ",".join(choice.replace('"', '""') for choice in self.choices)
        return f'"{quoted}"'


class SheetWriter:
    """Build a new workbook one row at a time."""

    def __init__(self) -> None:
        self._workbook = Workbook()
        self._worksheet: Optional[Worksheet] = None
        self._rows_written = 0

    @property
    def rows_written(self) -> int:
        return self._rows_written

    def add_sheet(self, name: str) -> None:
        if self._worksheet is None:
            worksheet = self._workbook.active
            worksheet.title = name
        else:
            worksheet = self._workbook.create_sheet(title=name)
        self._worksheet = worksheet
        self._rows_written = 0

    @property
    def worksheet(self) -> Worksheet:
        if self._worksheet is None:
            raise RuntimeError("add_sheet() must be called before writing rows")
        return self._worksheet

    def append_row(self, values: Sequence[object], date_format: Optional[str] = None) -> int:
        """Append *values* as the next row and return its one-based row number."""

        worksheet = self.worksheet
        normalized = [_naive(value) for value in values]
        worksheet.append(normalized)
        self._rows_written += 1
        row_number = self._rows_written
        for column, value in enumerate(normalized, start=1):
            if isinstance(value, str) and value.startswith("="):
                # Text, not a formula.
                worksheet.cell(row=row_number, column=column).data_type = "s"
            elif date_format and isinstance(value, (date, datetime)):
                worksheet.cell(row=row_number, column=column).number_format = date_format
        return row_number

    def add_constraint(self, constraint: ColumnConstraint, cell_range: str) -> None:
        formula = constraint.formula()
        if len(formula) > LIST_FORMULA_LIMIT:
            logger.warning(
                "List validation exceeds Excel's inline formula limit",
                extra={"range": cell_range, "length": len(formula)},
            )
        validation = DataValidation(
            type="list",
            formula1=formula,
            allow_blank=constraint.allow_blank,
            showErrorMessage=True,
            errorStyle="stop",
        )
        validation.error = constraint.error_message or None
        validation.errorTitle = constraint.error_title or None
        self.worksheet.add_data_validation(validation)
        validation.add(cell_range)

    @property
    def workbook(self) -> Workbook:
        return self._workbook

    def save(self, target: Target) -> None:
        if isinstance(target, (str, Path)):
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        self._workbook.save(target)


def _naive(value: object) -> object:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


__all__ = [
    "Cell",
    "ColumnConstraint",
    "Document",
    "EMPTY_CELL",
    "SheetView",
    "SheetWriter",
    "cell_text",
]

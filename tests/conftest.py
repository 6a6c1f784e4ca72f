from __future__ import annotations

import sys
from io import BytesIO
from pathlib import Path
from typing import Callable, Iterable, Sequence

import pytest
from openpyxl import Workbook

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

WorkbookFactory = Callable[..., bytes]


def build_workbook(*sheets: Iterable[Sequence[object]], titles: Sequence[str] | None = None) -> Workbook:
    """Create a workbook holding one sheet per row iterable."""

    wb = Workbook()
    wb.remove(wb.active)
    for idx, rows in enumerate(sheets):
        title = titles[idx] if titles else f"Sheet{idx + 1}"
        ws = wb.create_sheet(title=title)
        for row in rows:
            ws.append(list(row))
    return wb


def workbook_bytes(*sheets: Iterable[Sequence[object]], titles: Sequence[str] | None = None) -> bytes:
    buffer = BytesIO()
    build_workbook(*sheets, titles=titles).save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_workbook() -> WorkbookFactory:
    """Return a factory turning row lists into serialized workbook bytes."""

    return workbook_bytes

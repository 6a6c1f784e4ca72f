"""Typer based command line entry points for sheetbind."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import typer

from sheetbind.document import Cell, Document
from sheetbind.errors import SheetBindError
from sheetbind.reader import walk_rows
from sheetbind.utils.log import get_logger, set_level

app = typer.Typer(help="Inspect workbooks the way sheetbind sees them.")


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Set logging level (e.g. DEBUG/INFO/WARNING).",
    ),
) -> None:
    """Configure logging before executing commands."""

    level_value = getattr(logging, log_level.upper(), None)
    if not isinstance(level_value, int):
        raise typer.BadParameter(f"Unknown log level: {log_level}")
    set_level(level_value)


@app.command("headers")
def headers(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="Workbook path"),
    sheet: int = typer.Option(0, "--sheet", min=0, help="Zero-based sheet index"),
    header_row: int = typer.Option(0, "--header-row", min=0, help="Zero-based header row index"),
) -> None:
    """Print the header row, one column per line, as the column binder sees it."""

    logger = get_logger("cli")
    document = Document.open(file)
    try:
        if sheet >= document.sheet_count:
            typer.secho(
                f"Sheet index {sheet} out of range (sheets: {', '.join(document.sheet_names)})",
                fg=typer.colors.RED,
            )
            raise typer.Exit(code=2)
        view = document.sheet(sheet)
        if header_row >= view.max_row:
            typer.secho(f"Header row {header_row} out of range ({view.max_row} rows)", fg=typer.colors.RED)
            raise typer.Exit(code=2)
        for index, text in enumerate(view.header(header_row)):
            typer.echo(f"{index}\t{text}")
        logger.info("Listed headers", extra={"path": str(file), "sheet": sheet})
    finally:
        document.close()


@app.command("dump")
def dump(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="Workbook path"),
    sheet: int = typer.Option(0, "--sheet", min=0, help="Zero-based sheet index"),
) -> None:
    """Print every row of a sheet tab separated, using the cells' text rendering."""

    def _emit(row_index: int, cells: List[Cell]) -> None:
        typer.echo("\t".join(cell.value for cell in cells))

    try:
        walk_rows(file, sheet, _emit)
    except SheetBindError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc


if __name__ == "__main__":
    app()

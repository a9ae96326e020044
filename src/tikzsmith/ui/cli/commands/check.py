"""Implementation of the ``tikzsmith check`` command."""

from __future__ import annotations

import shutil

import typer

from tikzsmith.adapters.latex.tools import missing_tools
from tikzsmith.core.config import Converter

from .._options import ConverterOption, EngineOption
from ..state import emit_error, get_cli_state


def check(
    engine: EngineOption = "pdflatex",
    converter: ConverterOption = Converter.INKSCAPE,
) -> None:
    """Report whether the LaTeX engine and converter can be found."""
    from rich.table import Table

    state = get_cli_state()
    table = Table(title="TikZ toolchain", show_header=True, header_style="bold")
    table.add_column("Tool")
    table.add_column("Location")
    for name in (engine, converter.value):
        location = shutil.which(name)
        table.add_row(name, location or "[red]not found[/]")
    state.console.print(table)

    missing = missing_tools(engine, converter, which=shutil.which)
    if missing:
        emit_error(f"Missing executables: {', '.join(missing)}")
        raise typer.Exit(code=1)


__all__ = ["check"]

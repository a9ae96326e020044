"""Implementation of the ``tikzsmith filter`` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import click
import typer

from tikzsmith.adapters.pandoc.filter import run

from .._options import DebugOption, VerbosityOption
from ..diagnostics import CliEmitter
from ..state import set_cli_state


def filter_document(
    target: Annotated[
        str | None,
        typer.Argument(
            metavar="FORMAT",
            help="Pandoc output format, passed by pandoc when used as a filter.",
        ),
    ] = None,
    verbose: VerbosityOption = 0,
    debug: DebugOption = False,
) -> None:
    """Read a pandoc JSON document on stdin and write the filtered one on stdout."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    emitter = CliEmitter(state)

    source = click.get_text_stream("stdin", encoding="utf-8").read()
    output = run(source, target or "", emitter=emitter, base_dir=Path.cwd())
    typer.echo(output)


__all__ = ["filter_document"]

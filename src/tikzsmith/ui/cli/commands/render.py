"""Implementation of the ``tikzsmith render`` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from tikzsmith.adapters.latex.pipeline import RenderPipeline
from tikzsmith.core.config import Converter, DocumentConfig, OutputFormat
from tikzsmith.core.exceptions import RenderError, TikzError
from tikzsmith.core.options import DiagramBlock, resolve_options

from .._options import (
    ConverterOption,
    DebugOption,
    EngineOption,
    FormatOption,
    OutputPathOption,
    SaveTexOption,
    TimeoutOption,
    VerbosityOption,
)
from ..diagnostics import CliEmitter
from ..state import emit_error, set_cli_state


def render(
    source: Annotated[
        Path,
        typer.Argument(
            metavar="FILE",
            help="TikZ snippet to render (a tikzpicture or bare TikZ commands).",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    output: OutputPathOption = None,
    output_format: FormatOption = OutputFormat.SVG,
    engine: EngineOption = "pdflatex",
    converter: ConverterOption = Converter.INKSCAPE,
    timeout: TimeoutOption = None,
    save_tex: SaveTexOption = None,
    verbose: VerbosityOption = 0,
    debug: DebugOption = False,
) -> None:
    """Render a standalone TikZ snippet into an SVG or PDF file."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    emitter = CliEmitter(state)

    config = DocumentConfig(
        format=output_format,
        engine=engine,
        converter=converter,
        timeout=timeout,
        save_tex=save_tex is not None,
        save_tex_dir=str(save_tex) if save_tex is not None else "tikz-tex",
        debug=debug,
    )
    block = DiagramBlock(text=source.read_text(encoding="utf-8"))
    pipeline = RenderPipeline(emitter=emitter)
    try:
        options = resolve_options(block, config, target=None, counter=1)
        options = options.model_copy(update={"filename": source.stem})
        result = pipeline.render(block.text, options)
    except RenderError as exc:
        emit_error(exc.describe(full_log=debug), exception=exc)
        raise typer.Exit(code=1) from exc
    except TikzError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    destination = output or source.with_suffix(options.format.extension)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(result.data)
    state.console.print(f"[green]Wrote[/] {destination}")


__all__ = ["render"]

"""Typer applications behind the ``tikzsmith`` and ``pandoc-tikzsmith`` scripts."""

from __future__ import annotations

from typing import Annotated

from rich.traceback import Traceback
import typer

from tikzsmith.version import get_version

from .commands import cache_app, check, filter_document, render
from .state import emit_error, get_cli_state


app = typer.Typer(
    help="Render TikZ code blocks of pandoc documents into SVG or PDF images.",
    context_settings={"help_option_names": ["--help"]},
    no_args_is_help=True,
)


@app.callback()
def _root(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show the version and exit.", is_eager=True),
    ] = False,
) -> None:
    if version:
        typer.echo(f"tikzsmith {get_version()}")
        raise typer.Exit()


app.command("filter")(filter_document)
app.command("render")(render)
app.command("check")(check)
app.add_typer(cache_app, name="cache")

# Pandoc invokes filters as ``<filter> <format>``, so this app has a single command.
filter_app = typer.Typer(
    help="Pandoc JSON filter rendering TikZ code blocks.",
    add_completion=False,
)
filter_app.command()(filter_document)


def _run(application: typer.Typer) -> None:
    try:
        application()
    except (typer.Exit, SystemExit):
        raise
    except KeyboardInterrupt as exc:
        emit_error("Interrupted.", exception=exc)
        raise typer.Exit(code=130) from exc
    except Exception as exc:  # pragma: no cover - last-resort reporting
        state = get_cli_state()
        if not state.debug:
            emit_error(str(exc) or type(exc).__name__, exception=exc)
        else:
            state.err_console.print(
                Traceback.from_exception(
                    type(exc), exc, exc.__traceback__, show_locals=state.verbosity > 1
                )
            )
        raise typer.Exit(code=1) from exc


def main() -> None:
    """Run the ``tikzsmith`` command line."""
    _run(app)


def filter_main() -> None:
    """Run ``pandoc-tikzsmith``, the bare filter script."""
    _run(filter_app)


__all__ = ["app", "filter_app", "filter_main", "main"]

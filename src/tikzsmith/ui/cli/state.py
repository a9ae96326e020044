"""Console and verbosity settings shared by the command handlers."""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
import sys
from typing import Literal

import click
from rich.console import Console
from rich.text import Text


Level = Literal["info", "warning", "error"]

_LEVEL_STYLES: dict[str, str] = {"warning": "yellow", "error": "red"}


@dataclass(slots=True)
class CLIState:
    """Verbosity and debug switches set by the global options.

    Consoles are rebuilt whenever ``sys.stdout``/``sys.stderr`` have been
    swapped, which happens under ``CliRunner``.
    """

    verbosity: int = 0
    debug: bool = False
    _out: Console | None = field(default=None, init=False, repr=False)
    _err: Console | None = field(default=None, init=False, repr=False)

    @property
    def console(self) -> Console:
        """Console writing command results to stdout."""
        if self._out is None or self._out.file is not sys.stdout:
            self._out = Console(file=sys.stdout)
        return self._out

    @property
    def err_console(self) -> Console:
        """Console for diagnostics; stdout may carry the pandoc document."""
        if self._err is None or self._err.file is not sys.stderr:
            self._err = Console(file=sys.stderr, highlight=False)
        return self._err


_CURRENT: ContextVar[CLIState | None] = ContextVar("tikzsmith_cli_state", default=None)


def get_cli_state(ctx: click.Context | None = None) -> CLIState:
    """Return the state attached to the click context, creating it on demand."""
    ctx = ctx or click.get_current_context(silent=True)
    if ctx is not None:
        root = ctx.find_root()
        if not isinstance(root.obj, CLIState):
            root.obj = CLIState()
        _CURRENT.set(root.obj)
        return root.obj

    state = _CURRENT.get()
    if state is None:
        state = CLIState()
        _CURRENT.set(state)
    return state


def set_cli_state(
    *,
    ctx: click.Context | None = None,
    verbosity: int | None = None,
    debug: bool | None = None,
) -> CLIState:
    state = get_cli_state(ctx)
    if verbosity is not None:
        state.verbosity = max(0, verbosity)
    if debug is not None:
        state.debug = debug
    return state


def _causes(exc: BaseException) -> list[str]:
    seen: set[int] = set()
    lines: list[str] = []
    current = exc.__cause__ or exc.__context__
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        lines.append(f"  {type(current).__name__}: {current}")
        current = current.__cause__ or current.__context__
    return lines


def render_message(
    level: Level,
    message: str,
    *,
    exception: BaseException | None = None,
) -> None:
    """Print ``message`` to stderr.

    Info messages only show with ``-v``. Warnings and errors always show; at
    ``-v`` the exception type is appended and at ``-vv`` its cause chain.
    """
    state = get_cli_state()
    console = state.err_console
    if level == "info":
        if state.verbosity:
            console.log(message)
        return

    style = _LEVEL_STYLES[level]
    text = Text.assemble((f"{level}: ", f"bold {style}"), (message, style))
    if exception is not None and state.verbosity:
        details = [f"type: {type(exception).__name__}"]
        if state.verbosity > 1:
            causes = _causes(exception)
            if causes:
                details += ["caused by:", *causes]
        text.append("\n" + "\n".join(details), style=style)
    console.print(text)


def emit_warning(message: str, *, exception: BaseException | None = None) -> None:
    render_message("warning", message, exception=exception)


def emit_error(message: str, *, exception: BaseException | None = None) -> None:
    render_message("error", message, exception=exception)


__all__ = [
    "CLIState",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "render_message",
    "set_cli_state",
]

"""Emitter printing pipeline diagnostics through the CLI consoles."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tikzsmith.core.diagnostics import format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


class CliEmitter:
    """``DiagnosticEmitter`` writing warnings and errors to stderr."""

    def __init__(self, state: CLIState | None = None, *, debug_enabled: bool | None = None) -> None:
        state = state or get_cli_state()
        self.debug_enabled = state.debug if debug_enabled is None else bool(debug_enabled)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, dict(payload))
        if message:
            render_message("info", message)


__all__ = ["CliEmitter"]

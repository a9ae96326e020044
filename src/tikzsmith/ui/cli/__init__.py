"""Public CLI exports for tikzsmith."""

from __future__ import annotations

from .app import app, filter_app, filter_main, main
from .state import emit_error, emit_warning, get_cli_state


__all__ = [
    "app",
    "emit_error",
    "emit_warning",
    "filter_app",
    "filter_main",
    "get_cli_state",
    "main",
]

"""Implementation of the ``tikzsmith cache`` commands."""

from __future__ import annotations

import typer

from tikzsmith.core.cache import CACHE_NAMESPACE
from tikzsmith.core.user_dir import configure_user_dir, get_user_dir

from .._options import CacheDirOption
from ..state import get_cli_state


app = typer.Typer(help="Inspect or clear the rendered diagram cache.")


@app.command("path")
def cache_path(cache_dir: CacheDirOption = None) -> None:
    """Print the directory holding cached diagrams."""
    user_dir = configure_user_dir(cache_root=cache_dir) if cache_dir else get_user_dir()
    state = get_cli_state()
    state.console.print(str(user_dir.cache_dir(CACHE_NAMESPACE, create=False)), soft_wrap=True)


@app.command("clear")
def cache_clear(cache_dir: CacheDirOption = None) -> None:
    """Delete every cached diagram."""
    user_dir = configure_user_dir(cache_root=cache_dir) if cache_dir else get_user_dir()
    state = get_cli_state()
    cleared = user_dir.clear_cache([CACHE_NAMESPACE])
    if cleared:
        for path in cleared:
            state.console.print(f"Removed {path}", soft_wrap=True)
    else:
        state.console.print("Cache is already empty.")


__all__ = ["app", "cache_clear", "cache_path"]

"""Location of the per-user tikzsmith cache.

Resolution order: an explicit root, ``$TIKZSMITH_CACHE_DIR``,
``$XDG_CACHE_HOME/tikzsmith`` and finally ``~/.cache/tikzsmith``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import os
from pathlib import Path
import shutil
from threading import RLock


ENV_CACHE_DIR = "TIKZSMITH_CACHE_DIR"


@dataclass(slots=True)
class TikzsmithUserDir:
    """Cache root; ``cache_is_explicit`` is false only for the home fallback."""

    cache_root: Path
    cache_is_explicit: bool = False

    @classmethod
    def resolve(cls, cache_root: str | Path | None = None) -> TikzsmithUserDir:
        if cache_root is not None:
            return cls(Path(cache_root).expanduser(), True)
        if override := os.environ.get(ENV_CACHE_DIR):
            return cls(Path(override).expanduser(), True)
        if xdg := os.environ.get("XDG_CACHE_HOME"):
            return cls(Path(xdg).expanduser() / "tikzsmith", True)
        return cls(Path.home() / ".cache" / "tikzsmith")

    def cache_dir(self, *parts: str | Path, create: bool = True) -> Path:
        target = self.cache_root.joinpath(*parts)
        if create:
            target.mkdir(parents=True, exist_ok=True)
        return target

    def clear_cache(self, namespaces: Iterable[str] | None = None) -> list[Path]:
        """Delete ``namespaces`` (or the whole root) and return what existed."""
        if namespaces is None:
            candidates = [self.cache_root]
        else:
            candidates = [self.cache_root / name for name in namespaces]
        removed = [path for path in candidates if path.exists()]
        for path in removed:
            shutil.rmtree(path)
        return removed


_lock = RLock()
_current: TikzsmithUserDir | None = None


def set_user_dir(user_dir: TikzsmithUserDir | None) -> TikzsmithUserDir | None:
    global _current
    with _lock:
        _current = user_dir
    return user_dir


def configure_user_dir(*, cache_root: str | Path | None = None) -> TikzsmithUserDir:
    """Resolve the cache root again and make it current."""
    user_dir = TikzsmithUserDir.resolve(cache_root)
    set_user_dir(user_dir)
    return user_dir


def get_user_dir() -> TikzsmithUserDir:
    """Return the current user dir.

    The implicit home fallback is re-resolved on every call so environment
    changes made after import are honoured.
    """
    with _lock:
        if _current is None or not _current.cache_is_explicit:
            fresh = TikzsmithUserDir.resolve()
            if _current is None or fresh.cache_root != _current.cache_root:
                set_user_dir(fresh)
        assert _current is not None
        return _current


@contextmanager
def user_dir_context(*, cache_root: str | Path | None = None) -> Iterator[TikzsmithUserDir]:
    """Point the cache at ``cache_root`` for the duration of the block."""
    with _lock:
        previous = _current
    try:
        yield configure_user_dir(cache_root=cache_root)
    finally:
        set_user_dir(previous)


__all__ = [
    "ENV_CACHE_DIR",
    "TikzsmithUserDir",
    "configure_user_dir",
    "get_user_dir",
    "set_user_dir",
    "user_dir_context",
]

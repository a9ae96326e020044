"""Content-addressed cache of rendered diagrams.

Entries are stored as ``<sha1>.<format>`` files. The key covers the diagram
source and every option that changes the rendered bytes, so editing a
package list or the scale produces a new entry. Entries are never evicted;
run ``tikzsmith cache clear`` to reclaim space.
"""

from __future__ import annotations

from collections.abc import Mapping
import hashlib
import json
from pathlib import Path
from typing import Any

from .config import OutputFormat
from .diagnostics import DiagnosticEmitter, ensure_emitter
from .user_dir import get_user_dir


CACHE_NAMESPACE = "diagrams"


def _normalise(value: Any) -> Any:
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(k): _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(item) for item in value]
    return value


def cache_key(source: str, options: Mapping[str, Any] | None = None) -> str:
    """Return the SHA-1 digest identifying ``source`` rendered with ``options``."""
    digest = hashlib.sha1(usedforsecurity=False)
    digest.update(source.encode("utf-8"))
    if options:
        serialised = json.dumps(_normalise(dict(options)), sort_keys=True, separators=(",", ":"))
        digest.update(b"\0")
        digest.update(serialised.encode("utf-8"))
    return digest.hexdigest()


class DiagramCache:
    """Disk-backed store for rendered diagram artifacts."""

    def __init__(
        self,
        root: Path | None = None,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._explicit_root = Path(root).expanduser() if root is not None else None
        self._emitter = ensure_emitter(emitter)

    @property
    def root(self) -> Path:
        if self._explicit_root is not None:
            return self._explicit_root
        return get_user_dir().cache_dir(CACHE_NAMESPACE, create=False)

    def path_for(self, key: str, fmt: OutputFormat) -> Path:
        return self.root / f"{key}{fmt.extension}"

    def lookup(self, key: str, fmt: OutputFormat) -> bytes | None:
        """Return the cached bytes for ``key`` or ``None`` on a miss."""
        path = self.path_for(key, fmt)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            self._emitter.warning(f"Unable to read cached diagram '{path}': {exc}", exc)
            return None
        if not data:
            return None
        return data

    def store(self, key: str, fmt: OutputFormat, data: bytes) -> Path | None:
        """Persist ``data`` under ``key``; failures only produce a warning."""
        path = self.path_for(key, fmt)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as exc:
            self._emitter.warning(f"Unable to write diagram cache entry '{path}': {exc}", exc)
            return None
        return path


__all__ = ["CACHE_NAMESPACE", "DiagramCache", "cache_key"]

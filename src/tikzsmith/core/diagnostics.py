"""Reporting channel between the render pipeline and its front ends.

The filter never prints. It hands warnings, errors and structured events to
a ``DiagnosticEmitter``; the command line renders them with rich while
library callers get plain :mod:`logging` records.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Sink for warnings, errors and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Discard everything."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Forward diagnostics to a :class:`logging.Logger`.

    Tracebacks are attached only when ``debug_enabled`` is set.
    """

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def _exc_info(self, exc: BaseException | None) -> BaseException | None:
        return exc if self.debug_enabled else None

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self._logger.warning(message, exc_info=self._exc_info(exc))

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._logger.error(message, exc_info=self._exc_info(exc))

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message is None:
            self._logger.debug("diagnostic event %s: %s", name, dict(payload))
        else:
            self._logger.info(message)


def ensure_emitter(emitter: DiagnosticEmitter | None) -> DiagnosticEmitter:
    return emitter if emitter is not None else NullEmitter()


def record_event(
    emitter: DiagnosticEmitter | None,
    event: str,
    payload: Mapping[str, Any],
) -> None:
    """Send ``event`` to ``emitter``; a missing emitter drops it."""
    ensure_emitter(emitter).event(event, payload)


def _name(data: Mapping[str, Any]) -> str:
    return str(data.get("filename") or "<unnamed>")


def _render_message(data: Mapping[str, Any]) -> str:
    details = [str(data[key]) for key in ("format", "engine") if data.get(key)]
    suffix = f" ({', '.join(details)})" if details else ""
    return f"Rendering TikZ diagram: {_name(data)}{suffix}"


def _cached_message(data: Mapping[str, Any]) -> str:
    key = str(data.get("key") or "")[:12]
    return f"Reusing cached diagram: {_name(data)} ({key})"


def _failed_message(data: Mapping[str, Any]) -> str:
    return f"Diagram {_name(data)} failed during {data.get('stage') or 'resolve'}"


def _done_message(data: Mapping[str, Any]) -> str:
    counts = {key: int(data.get(key) or 0) for key in ("rendered", "cached", "failed")}
    return (
        f"TikZ diagrams: {counts['rendered']} rendered, "
        f"{counts['cached']} from cache, {counts['failed']} failed"
    )


def _kept_message(data: Mapping[str, Any]) -> str:
    return f"Kept intermediate files in {data.get('directory') or '<unknown>'}"


_EVENT_MESSAGES: dict[str, Callable[[Mapping[str, Any]], str]] = {
    "diagram_render": _render_message,
    "diagram_cached": _cached_message,
    "diagram_failed": _failed_message,
    "diagrams_done": _done_message,
    "intermediates_kept": _kept_message,
}


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a one-line summary of a known event, ``None`` for others."""
    formatter = _EVENT_MESSAGES.get(name)
    return formatter(payload) if formatter is not None else None


__all__ = [
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "ensure_emitter",
    "format_event_message",
    "record_event",
]

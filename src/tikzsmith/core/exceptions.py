"""Custom exception hierarchy for the TikZ rendering pipeline."""

from __future__ import annotations

from collections.abc import Iterable


_LOG_EXCERPT_LINES = 20


class TikzError(RuntimeError):
    """Base exception for diagram processing failures."""


class ConfigurationError(TikzError):
    """Raised when an option value is invalid or malformed."""

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        allowed: Iterable[str] | None = None,
    ) -> None:
        self.key = key
        self.allowed = tuple(allowed) if allowed is not None else ()
        if key is not None and self.allowed:
            choices = ", ".join(self.allowed)
            message = f"{message} (option '{key}' accepts: {choices})"
        super().__init__(message)


class ToolUnavailableError(TikzError):
    """Raised when a required external executable cannot be located."""

    def __init__(self, tool: str, *, hint: str | None = None) -> None:
        self.tool = tool
        self.hint = hint
        message = f"Required executable '{tool}' was not found on PATH"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)


class RenderError(TikzError):
    """Raised when a pipeline stage fails to produce its output."""

    def __init__(
        self,
        stage: str,
        message: str,
        *,
        returncode: int | None = None,
        log: str = "",
        source: str = "",
    ) -> None:
        self.stage = stage
        self.returncode = returncode
        self.log = log
        self.source = source
        super().__init__(f"[{stage}] {message}")

    def log_excerpt(self, limit: int = _LOG_EXCERPT_LINES) -> str:
        """Return the last ``limit`` non-empty lines of the captured log."""
        lines = [line for line in self.log.splitlines() if line.strip()]
        return "\n".join(lines[-limit:])

    def describe(self, *, full_log: bool = False) -> str:
        """Return a multi-line diagnostic including log and source."""
        parts = [str(self)]
        if self.returncode is not None:
            parts.append(f"exit status: {self.returncode}")
        log = self.log.strip() if full_log else self.log_excerpt()
        if log:
            parts.append("tool output:")
            parts.append(log)
        if self.source:
            parts.append("diagram source:")
            parts.append(self.source.rstrip())
        return "\n".join(parts)


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "ConfigurationError",
    "RenderError",
    "TikzError",
    "ToolUnavailableError",
    "exception_hint",
    "exception_messages",
]

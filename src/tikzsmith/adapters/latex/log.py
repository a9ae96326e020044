"""Extract the interesting parts of a LaTeX engine log."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re


_ERROR_PATTERN = re.compile(r"^! (?P<summary>.+)$")
_LINE_PATTERN = re.compile(r"^l\.(?P<line>\d+)\s?(?P<context>.*)$")
_FATAL_LINES = (
    "==> Fatal error occurred, no output PDF file produced!",
    "Emergency stop.",
)


@dataclass(slots=True)
class LatexError:
    """One ``!``-prefixed error reported by the engine."""

    summary: str
    line: int | None = None
    context: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.line is None:
            return self.summary
        return f"{self.summary} (line {self.line})"


def parse_latex_errors(log: str) -> list[LatexError]:
    """Return the errors found in ``log`` in order of appearance."""
    errors: list[LatexError] = []
    current: LatexError | None = None
    for raw in log.splitlines():
        line = raw.rstrip()
        match = _ERROR_PATTERN.match(line)
        if match:
            current = LatexError(summary=match.group("summary").strip())
            errors.append(current)
            continue
        if current is None:
            continue
        located = _LINE_PATTERN.match(line)
        if located:
            current.line = int(located.group("line"))
            context = located.group("context").strip()
            if context:
                current.context.append(context)
            current = None
        elif line and line not in _FATAL_LINES and len(current.context) < 3:
            current.context.append(line.strip())
    return errors


def read_log(path: Path) -> str | None:
    """Return the log contents or ``None`` when it cannot be read."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


__all__ = ["LatexError", "parse_latex_errors", "read_log"]

"""Locate and invoke the external LaTeX engine and PDF converter."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
import shutil
import subprocess
from typing import Protocol

from tikzsmith.core.config import Converter, OutputFormat
from tikzsmith.core.exceptions import ToolUnavailableError


Which = Callable[[str], str | None]

_ENGINE_HINT = "Install a TeX distribution (TeX Live, MiKTeX) or set 'engine' in the tikz metadata."
_CONVERTER_HINTS = {
    Converter.INKSCAPE: "Install Inkscape 1.x or set 'converter: pdftocairo'.",
    Converter.PDFTOCAIRO: "Install poppler-utils or set 'converter: inkscape'.",
}


class ToolRunner(Protocol):
    """Callable executing an argument vector and returning its outcome."""

    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]: ...


def run_tool(
    argv: Sequence[str],
    *,
    cwd: Path,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute ``argv`` without a shell, capturing its output."""
    return subprocess.run(
        list(argv),
        cwd=cwd,
        check=False,
        capture_output=True,
        stdin=subprocess.DEVNULL,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout,
    )


@dataclass(frozen=True, slots=True)
class Toolchain:
    """Resolved executables for one render."""

    engine: str
    converter: Converter
    converter_path: str

    def engine_command(self, tex_file: Path, output_dir: Path) -> list[str]:
        return [
            self.engine,
            "-interaction=nonstopmode",
            "-halt-on-error",
            f"-output-directory={output_dir}",
            tex_file.name,
        ]

    def converter_command(self, pdf_file: Path, target: Path, fmt: OutputFormat) -> list[str]:
        match self.converter:
            case Converter.INKSCAPE:
                argv = [
                    self.converter_path,
                    "--pdf-page=1",
                    f"--export-type={fmt.value}",
                ]
                if fmt is OutputFormat.SVG:
                    argv.append("--export-plain-svg")
                argv.extend([f"--export-filename={target}", str(pdf_file)])
                return argv
            case Converter.PDFTOCAIRO:
                return [self.converter_path, f"-{fmt.value}", str(pdf_file), str(target)]
        raise ValueError(f"Unsupported converter: {self.converter}")


def resolve_toolchain(
    engine: str,
    converter: Converter,
    *,
    which: Which = shutil.which,
) -> Toolchain:
    """Return the executables for ``engine`` and ``converter``."""
    engine_path = which(engine)
    if engine_path is None:
        raise ToolUnavailableError(engine, hint=_ENGINE_HINT)
    converter_path = which(converter.value)
    if converter_path is None:
        raise ToolUnavailableError(converter.value, hint=_CONVERTER_HINTS[converter])
    return Toolchain(engine=engine_path, converter=converter, converter_path=converter_path)


def missing_tools(
    engine: str,
    converter: Converter,
    *,
    which: Which = shutil.which,
) -> list[str]:
    """Return the names of the executables that cannot be found."""
    return [name for name in (engine, converter.value) if which(name) is None]


__all__ = [
    "ToolRunner",
    "Toolchain",
    "Which",
    "missing_tools",
    "resolve_toolchain",
    "run_tool",
]

"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from tikzsmith.core.config import Converter, OutputFormat


TOOLCHAIN_PANEL = "Toolchain"
OUTPUT_PANEL = "Output"
DIAGNOSTICS_PANEL = "Diagnostics"

EngineOption = Annotated[
    str,
    typer.Option(
        "--engine",
        "-e",
        help="LaTeX engine executable used to typeset diagrams.",
        rich_help_panel=TOOLCHAIN_PANEL,
    ),
]

ConverterOption = Annotated[
    Converter,
    typer.Option(
        "--converter",
        "-c",
        case_sensitive=False,
        help="Tool converting the engine PDF into the final image.",
        rich_help_panel=TOOLCHAIN_PANEL,
    ),
]

TimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--timeout",
        min=0.1,
        help="Seconds allowed for each external tool invocation.",
        rich_help_panel=TOOLCHAIN_PANEL,
    ),
]

FormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        case_sensitive=False,
        help="Image format to produce.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

OutputPathOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        dir_okay=False,
        resolve_path=True,
        help="Destination file. Defaults to the input path with the format suffix.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

SaveTexOption = Annotated[
    Path | None,
    typer.Option(
        "--save-tex",
        file_okay=False,
        help="Keep the generated LaTeX sources and engine artifacts in this directory.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

CacheDirOption = Annotated[
    Path | None,
    typer.Option(
        "--cache-dir",
        file_okay=False,
        help="Cache root overriding TIKZSMITH_CACHE_DIR and XDG_CACHE_HOME.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

VerbosityOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase diagnostics verbosity (repeatable).",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks and complete engine logs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]


__all__ = [
    "DIAGNOSTICS_PANEL",
    "OUTPUT_PANEL",
    "TOOLCHAIN_PANEL",
    "CacheDirOption",
    "ConverterOption",
    "DebugOption",
    "EngineOption",
    "FormatOption",
    "OutputPathOption",
    "SaveTexOption",
    "TimeoutOption",
    "VerbosityOption",
]

"""LaTeX toolchain integration."""

from __future__ import annotations

from .pipeline import RenderPipeline, RenderResult
from .template import StandaloneTemplate
from .tools import Toolchain, missing_tools, resolve_toolchain, run_tool


__all__ = [
    "RenderPipeline",
    "RenderResult",
    "StandaloneTemplate",
    "Toolchain",
    "missing_tools",
    "resolve_toolchain",
    "run_tool",
]

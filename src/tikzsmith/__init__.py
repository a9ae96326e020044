"""Render TikZ code blocks of pandoc documents into SVG or PDF images."""

from __future__ import annotations

from .adapters.pandoc.filter import TikzFilter, run
from .core.config import DocumentConfig, EmbedMode, OutputFormat
from .core.exceptions import ConfigurationError, RenderError, TikzError, ToolUnavailableError
from .core.options import DiagramBlock, EffectiveOptions, resolve_options
from .version import get_version


__version__ = get_version()

__all__ = [
    "ConfigurationError",
    "DiagramBlock",
    "DocumentConfig",
    "EffectiveOptions",
    "EmbedMode",
    "OutputFormat",
    "RenderError",
    "TikzError",
    "TikzFilter",
    "ToolUnavailableError",
    "__version__",
    "get_version",
    "resolve_options",
    "run",
]

"""Standalone LaTeX wrapper rendered around each diagram."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
import re
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template

from tikzsmith.core.options import EffectiveOptions


TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
DEFAULT_TEMPLATE = "standalone.tex"
DEFAULT_CLASS_OPTIONS: dict[str, str] = {"border": "2pt"}

_PICTURE_PATTERN = re.compile(r"\\begin\{(?:tikzpicture|circuitikz)\}|\\tikz\b")


def needs_picture_environment(body: str) -> bool:
    """Return True when ``body`` holds bare TikZ commands."""
    return _PICTURE_PATTERN.search(body) is None


def _class_options(overrides: Mapping[str, str]) -> str:
    options = dict(DEFAULT_CLASS_OPTIONS)
    options.update(overrides)
    parts = ["tikz"]
    for key, value in options.items():
        parts.append(key if value in ("", "true") else f"{key}={value}")
    return ",".join(parts)


class StandaloneTemplate:
    """Render a diagram body into a complete standalone document.

    The template exposes named slots (class options, TikZ libraries,
    additional packages, header includes, scale and body). Slot values are
    LaTeX and are injected verbatim; the body is never escaped.
    """

    def __init__(self, template_dir: Path = TEMPLATE_DIR, name: str = DEFAULT_TEMPLATE) -> None:
        self.env = Environment(
            block_start_string=r"\BLOCK{",
            block_end_string=r"}",
            variable_start_string=r"\VAR{",
            variable_end_string=r"}",
            comment_start_string=r"\COMMENT{",
            comment_end_string=r"}",
            loader=FileSystemLoader(template_dir),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
            undefined=StrictUndefined,
        )
        self.name = name
        self._template: Template | None = None

    @property
    def template(self) -> Template:
        if self._template is None:
            self._template = self.env.get_template(self.name)
        return self._template

    def context(self, body: str, options: EffectiveOptions) -> dict[str, Any]:
        header_includes = options.header_includes.splitlines() if options.header_includes else []
        return {
            "class_options": _class_options(options.user_options),
            "libraries": options.libraries or "",
            "additional_packages": options.additional_packages or "",
            "header_includes": [line for line in header_includes if line.strip()],
            "scale": options.scale or "",
            "wrap": needs_picture_environment(body),
            "body": body.rstrip("\n"),
        }

    def render(self, body: str, options: EffectiveOptions) -> str:
        return self.template.render(**self.context(body, options))


__all__ = ["DEFAULT_CLASS_OPTIONS", "StandaloneTemplate", "needs_picture_environment"]

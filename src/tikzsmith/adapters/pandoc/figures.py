"""Build the pandoc AST nodes replacing a diagram code block.

Nodes are plain pandoc JSON structures built with the ``pandocfilters``
constructors. ``Figure`` needs pandoc 3 and has no constructor upstream.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
import shutil
import subprocess
from typing import Any

from pandocfilters import Image, Plain, RawInline, Space, Span, Str, attributes, elt

from tikzsmith.adapters.embedding import EmbeddedImage
from tikzsmith.core.config import EmbedMode
from tikzsmith.core.diagnostics import DiagnosticEmitter, ensure_emitter
from tikzsmith.core.options import EffectiveOptions


Node = dict[str, Any]

Figure = elt("Figure", 3)


def parse_markdown(text: str, *, timeout: float | None = None) -> list[Node]:
    """Parse ``text`` as Markdown into pandoc blocks.

    Requires the ``pandoc`` executable; without it the text is returned as a
    single ``Plain`` block of words. Errors from pandoc propagate.
    """
    pandoc = shutil.which("pandoc")
    if pandoc is None:
        return [Plain(text_inlines(text))]
    completed = subprocess.run(
        [pandoc, "--from=markdown", "--to=json"],
        input=text,
        capture_output=True,
        check=True,
        text=True,
        encoding="utf-8",
        timeout=timeout,
    )
    return list(json.loads(completed.stdout).get("blocks", []))


def text_inlines(text: str | None) -> list[Node]:
    """Return ``text`` as a list of ``Str``/``Space`` inlines."""
    inlines: list[Node] = []
    for word in (text or "").split():
        if inlines:
            inlines.append(Space())
        inlines.append(Str(word))
    return inlines


def caption_blocks(
    text: str,
    *,
    timeout: float | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> list[Node]:
    try:
        parsed = parse_markdown(text, timeout=timeout)
    except (OSError, subprocess.SubprocessError, ValueError) as exc:
        ensure_emitter(emitter).warning(
            f"Caption {text!r} could not be parsed as Markdown, using plain text: {exc}", exc
        )
        parsed = []
    blocks = [block for block in parsed if isinstance(block, Mapping)]
    if not blocks:
        return [Plain(text_inlines(text))]
    # Captions are short; keep paragraphs as Plain so writers do not add spacing.
    return [Plain(block["c"]) if block.get("t") == "Para" else block for block in blocks]


def _attr(identifier: str, classes: list[str], values: Mapping[str, str]) -> list[Any]:
    return attributes({"id": identifier, "classes": classes, **values})


def image_inline(
    embedded: EmbeddedImage,
    options: EffectiveOptions,
    *,
    identifier: str = "",
    classes: list[str] | None = None,
) -> Node:
    if embedded.mode is EmbedMode.RAW:
        raw = RawInline("html", embedded.markup or "")
        if not (identifier or classes or embedded.attributes):
            return raw
        return Span(_attr(identifier, classes or [], embedded.attributes), [raw])
    return Image(
        _attr(identifier, classes or [], embedded.attributes),
        text_inlines(options.alt),
        [embedded.url or "", ""],
    )


def build_node(
    embedded: EmbeddedImage,
    options: EffectiveOptions,
    *,
    emitter: DiagnosticEmitter | None = None,
) -> Node:
    """Return a captioned ``Figure`` or a bare image wrapped in ``Plain``."""
    if options.caption:
        image = image_inline(embedded, options)
        return Figure(
            _attr(options.fig_id or "", list(options.fig_classes), options.fig_attributes),
            [None, caption_blocks(options.caption, timeout=options.timeout, emitter=emitter)],
            [Plain([image])],
        )
    image = image_inline(
        embedded,
        options,
        identifier=options.fig_id or "",
        classes=list(options.fig_classes),
    )
    return Plain([image])


__all__ = [
    "Figure",
    "build_node",
    "caption_blocks",
    "image_inline",
    "parse_markdown",
    "text_inlines",
]

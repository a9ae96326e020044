"""Pandoc filter replacing ``tikz`` code blocks with rendered images."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pandocfilters import walk

from tikzsmith.adapters.embedding import embed
from tikzsmith.adapters.latex.pipeline import RenderPipeline, RenderResult
from tikzsmith.core.cache import DiagramCache, cache_key
from tikzsmith.core.config import DocumentConfig, ErrorPolicy
from tikzsmith.core.diagnostics import (
    DiagnosticEmitter,
    LoggingEmitter,
    record_event,
)
from tikzsmith.core.exceptions import (
    ConfigurationError,
    RenderError,
    TikzError,
    exception_hint,
)
from tikzsmith.core.options import (
    DIAGRAM_CLASS,
    DiagramBlock,
    EffectiveOptions,
    resolve_options,
)

from .figures import Node, build_node
from .meta import document_meta, meta_value


METADATA_KEY = "tikz"


class TikzFilter:
    """Per-document driver for the diagram pipeline.

    It owns the filename counter, the cache handle and the render pipeline.
    Every ``prepare`` starts over from the constructor arguments and the new
    document's metadata, so one instance can filter several documents.
    """

    def __init__(
        self,
        *,
        config: DocumentConfig | None = None,
        pipeline: RenderPipeline | None = None,
        cache: DiagramCache | None = None,
        emitter: DiagnosticEmitter | None = None,
        base_dir: Path | None = None,
    ) -> None:
        self.emitter = emitter or LoggingEmitter()
        self.config = config
        self._config_override = config
        self.pipeline = pipeline or RenderPipeline(emitter=self.emitter)
        self.cache = cache
        self._cache_override = cache
        self.base_dir = base_dir
        self.enabled = True
        self.prepared = False
        self.counter = 0
        self.rendered = 0
        self.cached = 0
        self.failed = 0

    def prepare(self, meta: dict[str, Any]) -> None:
        """Read and remove the ``tikz`` metadata entry."""
        raw = meta.pop(METADATA_KEY, None)

        self.counter = 0
        self.rendered = self.cached = self.failed = 0
        self.enabled = True
        self.cache = self._cache_override
        config = self._config_override
        if config is None:
            try:
                config = DocumentConfig.from_metadata(meta_value(raw))
            except ConfigurationError as exc:
                self.emitter.error(f"Ignoring tikz diagrams: {exc}", exc)
                self.enabled = False
                config = DocumentConfig()

        if config.cache and config.save_tex:
            self.emitter.warning(
                "Both 'cache' and 'save-tex' are enabled; intermediate files are not kept "
                "while the cache is active."
            )
            config = config.model_copy(update={"save_tex": False})
        self.config = config

        if self.cache is None and config.cache:
            self.cache = DiagramCache(config.cache_dir, emitter=self.emitter)
        if config.debug:
            self.emitter.debug_enabled = True
        self.prepared = True

    def action(self, key: str, value: Any, fmt: str, meta: dict[str, Any]) -> Node | list | None:
        """``pandocfilters`` action: replace diagram code blocks."""
        if key != "CodeBlock":
            return None
        [[identifier, classes, keyvals], text] = value
        if DIAGRAM_CLASS not in classes:
            return None
        if not self.prepared:
            self.prepare(meta)
        if not text.strip() or not self.enabled:
            return None

        self.counter += 1
        block = DiagramBlock(
            text=text,
            attributes={str(name): str(val) for name, val in keyvals},
            identifier=identifier or None,
            classes=tuple(classes),
        )
        return self.process(block, target=fmt)

    def finalize(self) -> None:
        total = self.rendered + self.cached + self.failed
        if total:
            record_event(
                self.emitter,
                "diagrams_done",
                {"rendered": self.rendered, "cached": self.cached, "failed": self.failed},
            )

    def apply(self, doc: dict[str, Any], target: str = "") -> dict[str, Any]:
        """Filter a decoded pandoc JSON document in place and return it."""
        meta = document_meta(doc)
        self.prepare(meta)
        doc["blocks"] = walk(doc.get("blocks", []), self.action, target, meta)
        self.finalize()
        return doc

    def process(self, block: DiagramBlock, *, target: str | None) -> Node | list | None:
        """Return the replacement node for ``block``, ``None`` or ``[]`` on failure."""
        assert self.config is not None
        try:
            options = resolve_options(block, self.config, target=target, counter=self.counter)
        except ConfigurationError as exc:
            return self._fail(block, None, exc)

        try:
            result = self.render(block, options)
            embedded = embed(result, options, base_dir=self.base_dir)
            return build_node(embedded, options, emitter=self.emitter)
        except (TikzError, OSError) as exc:
            return self._fail(block, options, exc)

    def render(self, block: DiagramBlock, options: EffectiveOptions) -> RenderResult:
        """Return the diagram bytes from the cache or the render pipeline."""
        key = cache_key(block.text, options.render_options())
        cache = self.cache if options.cache else None
        if cache is not None:
            data = cache.lookup(key, options.format)
            if data is not None:
                self.cached += 1
                record_event(
                    self.emitter, "diagram_cached", {"filename": options.filename, "key": key}
                )
                return RenderResult(data=data, format=options.format)

        record_event(
            self.emitter,
            "diagram_render",
            {
                "filename": options.filename,
                "format": options.format.value,
                "engine": options.engine,
            },
        )
        result = self.pipeline.render(block.text, options)
        self.rendered += 1
        if cache is not None:
            cache.store(key, options.format, result.data)
        return result

    def _fail(
        self,
        block: DiagramBlock,
        options: EffectiveOptions | None,
        exc: BaseException,
    ) -> list | None:
        assert self.config is not None
        self.failed += 1
        policy = options.on_error if options is not None else self.config.on_error
        filename = options.filename if options is not None else None
        stage = exc.stage if isinstance(exc, RenderError) else None
        record_event(self.emitter, "diagram_failed", {"filename": filename, "stage": stage})

        if isinstance(exc, RenderError):
            detail = exc.describe(full_log=self.emitter.debug_enabled)
        else:
            hint = exception_hint(exc)
            cause = f"\ncause: {hint}" if hint and hint not in str(exc) else ""
            detail = f"{exc}{cause}\ndiagram source:\n{block.text.rstrip()}"
        label = filename or block.identifier or f"#{self.counter}"
        outcome = "removed" if policy is ErrorPolicy.DROP else "kept as code"
        message = f"TikZ diagram {label} could not be rendered ({outcome}):\n{detail}"
        self.emitter.error(message, exc)
        return [] if policy is ErrorPolicy.DROP else None


def run(
    source: str,
    target: str = "",
    *,
    emitter: DiagnosticEmitter | None = None,
    **kwargs: Any,
) -> str:
    """Filter the pandoc JSON document ``source`` and return the result as JSON."""
    doc = json.loads(source)
    driver = TikzFilter(emitter=emitter, **kwargs)
    return json.dumps(driver.apply(doc, target))


__all__ = ["METADATA_KEY", "TikzFilter", "run"]

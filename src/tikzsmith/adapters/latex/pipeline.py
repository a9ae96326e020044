"""Render TikZ sources into SVG or PDF artifacts.

Each render runs four stages in order, any failure aborting the rest:

``build``
    write the standalone wrapper document,
``typeset``
    run the LaTeX engine to obtain a PDF,
``convert``
    run the converter to obtain the requested format,
``read``
    load and sanity-check the final artifact.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
import shutil
import subprocess
import tempfile

from jinja2 import TemplateError
from slugify import slugify

from tikzsmith.core.cache import cache_key
from tikzsmith.core.config import OutputFormat
from tikzsmith.core.diagnostics import DiagnosticEmitter, ensure_emitter, record_event
from tikzsmith.core.exceptions import RenderError
from tikzsmith.core.options import EffectiveOptions

from .log import parse_latex_errors, read_log
from .template import StandaloneTemplate
from .tools import Toolchain, ToolRunner, Which, resolve_toolchain, run_tool


JOB_NAME = "tikz-image"
EXPORT_NAME = "tikz-export"


@dataclass(slots=True)
class RenderResult:
    """Bytes of a rendered diagram."""

    data: bytes
    format: OutputFormat
    kept_dir: Path | None = None

    @property
    def mime_type(self) -> str:
        return self.format.mime_type


def looks_like(data: bytes, fmt: OutputFormat) -> bool:
    """Return True when ``data`` carries the signature of ``fmt``."""
    if not data:
        return False
    if fmt is OutputFormat.PDF:
        return data.startswith(b"%PDF")
    head = data[:8192].lstrip()
    return head.startswith((b"<?xml", b"<svg", b"<!--", b"<!DOCTYPE")) and b"<svg" in head


class RenderPipeline:
    """Drive the external toolchain for one diagram at a time."""

    def __init__(
        self,
        *,
        runner: ToolRunner | None = None,
        which: Which | None = None,
        template: StandaloneTemplate | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._runner = runner or run_tool
        self._which = which or shutil.which
        self.template = template or StandaloneTemplate()
        self.emitter = ensure_emitter(emitter)

    def render(self, source: str, options: EffectiveOptions) -> RenderResult:
        """Render ``source`` with ``options``.

        Raises ``ToolUnavailableError`` before any stage runs when the engine
        or converter is missing, and ``RenderError`` tagged with the failing
        stage otherwise.
        """
        toolchain = resolve_toolchain(options.engine, options.converter, which=self._which)
        with self._workdir(source, options) as (workdir, kept):
            tex_file = self.build(source, options, workdir)
            pdf_file = self.typeset(toolchain, tex_file, workdir, options, source)
            artifact = self.convert(toolchain, pdf_file, workdir, options, source)
            data = self.read(artifact, options.format, source)
        if kept:
            record_event(self.emitter, "intermediates_kept", {"directory": str(workdir)})
        return RenderResult(data=data, format=options.format, kept_dir=workdir if kept else None)

    def build(self, source: str, options: EffectiveOptions, workdir: Path) -> Path:
        try:
            document = self.template.render(source, options)
        except TemplateError as exc:
            raise RenderError("build", f"Unable to render wrapper: {exc}", source=source) from exc
        tex_file = workdir / f"{JOB_NAME}.tex"
        tex_file.write_text(document, encoding="utf-8")
        return tex_file

    def typeset(
        self,
        toolchain: Toolchain,
        tex_file: Path,
        workdir: Path,
        options: EffectiveOptions,
        source: str,
    ) -> Path:
        pdf_file = workdir / f"{JOB_NAME}.pdf"
        pdf_file.unlink(missing_ok=True)
        argv = toolchain.engine_command(tex_file, workdir)
        result = self._execute("typeset", argv, workdir, options, source)
        if result.returncode != 0:
            log = read_log(workdir / f"{JOB_NAME}.log") or _combined_output(result)
            errors = parse_latex_errors(log)
            summary = str(errors[0]) if errors else f"{options.engine} failed"
            raise RenderError(
                "typeset",
                f"{summary} (exit status {result.returncode})",
                returncode=result.returncode,
                log=log,
                source=source,
            )
        if not pdf_file.exists():
            raise RenderError(
                "typeset",
                f"{options.engine} reported success but produced no PDF",
                returncode=result.returncode,
                log=read_log(workdir / f"{JOB_NAME}.log") or _combined_output(result),
                source=source,
            )
        return pdf_file

    def convert(
        self,
        toolchain: Toolchain,
        pdf_file: Path,
        workdir: Path,
        options: EffectiveOptions,
        source: str,
    ) -> Path:
        target = workdir / f"{EXPORT_NAME}{options.format.extension}"
        target.unlink(missing_ok=True)
        argv = toolchain.converter_command(pdf_file, target, options.format)
        result = self._execute("convert", argv, workdir, options, source)
        if result.returncode != 0:
            raise RenderError(
                "convert",
                f"{toolchain.converter.value} exited with status {result.returncode}",
                returncode=result.returncode,
                log=_combined_output(result),
                source=source,
            )
        return target

    def read(self, artifact: Path, fmt: OutputFormat, source: str) -> bytes:
        try:
            data = artifact.read_bytes()
        except FileNotFoundError as exc:
            raise RenderError(
                "read",
                f"Converter reported success but '{artifact.name}' is missing",
                source=source,
            ) from exc
        if not data:
            raise RenderError("read", f"'{artifact.name}' is empty", source=source)
        if not looks_like(data, fmt):
            raise RenderError(
                "read", f"'{artifact.name}' is not a valid {fmt.value.upper()} file", source=source
            )
        return data

    def _execute(
        self,
        stage: str,
        argv: list[str],
        workdir: Path,
        options: EffectiveOptions,
        source: str,
    ) -> subprocess.CompletedProcess[str]:
        try:
            return self._runner(argv, cwd=workdir, timeout=options.timeout)
        except subprocess.TimeoutExpired as exc:
            output = exc.output if isinstance(exc.output, str) else ""
            raise RenderError(
                stage,
                f"'{Path(argv[0]).name}' timed out after {options.timeout:g}s",
                log=output,
                source=source,
            ) from exc
        except OSError as exc:
            raise RenderError(
                stage, f"Failed to execute '{Path(argv[0]).name}': {exc}", source=source
            ) from exc

    @contextmanager
    def _workdir(self, source: str, options: EffectiveOptions) -> Iterator[tuple[Path, bool]]:
        if options.save_tex:
            name = slugify(options.filename, regex_pattern=r"[^-a-zA-Z0-9_.]+") or cache_key(
                source
            )
            directory = (Path(options.save_tex_dir) / name).resolve()
            directory.mkdir(parents=True, exist_ok=True)
            yield directory, True
            return
        with tempfile.TemporaryDirectory(prefix="tikzsmith-") as tmp:
            yield Path(tmp), False


def _combined_output(result: subprocess.CompletedProcess[str]) -> str:
    parts = [part.strip() for part in (result.stdout, result.stderr) if part and part.strip()]
    return "\n".join(parts)


__all__ = ["EXPORT_NAME", "JOB_NAME", "RenderPipeline", "RenderResult", "looks_like"]

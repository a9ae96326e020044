from pathlib import Path
import subprocess

import pytest

from conftest import FAKE_SVG
from tikzsmith.adapters.latex.pipeline import RenderPipeline, looks_like
from tikzsmith.core.config import Converter, OutputFormat
from tikzsmith.core.exceptions import RenderError, ToolUnavailableError
from tikzsmith.core.options import EffectiveOptions


BODY = "\\draw[->] (0,0) -- (1,1);"

LATEX_LOG = """This is pdfTeX, Version 3.141592653
! Undefined control sequence.
l.7 \\drwa
          (0,0) -- (1,1);
No pages of output.
"""


def test_render_svg_runs_engine_then_converter(pipeline, toolchain) -> None:
    result = pipeline.render(BODY, EffectiveOptions(filename="demo", libraries="arrows"))

    assert result.format is OutputFormat.SVG
    assert result.mime_type == "image/svg+xml"
    assert result.data == FAKE_SVG
    assert result.kept_dir is None

    engine_argv, converter_argv = toolchain.calls
    assert engine_argv[0] == "/usr/bin/pdflatex"
    assert "-interaction=nonstopmode" in engine_argv
    assert "-halt-on-error" in engine_argv
    assert engine_argv[-1] == "tikz-image.tex"
    assert converter_argv[0] == "/usr/bin/inkscape"
    assert "--pdf-page=1" in converter_argv
    assert "--export-type=svg" in converter_argv
    assert "--export-plain-svg" in converter_argv
    assert converter_argv[-1].endswith("tikz-image.pdf")

    (source,) = toolchain.sources
    assert "\\usetikzlibrary{arrows}" in source
    assert "\\begin{tikzpicture}\n" + BODY in source


def test_render_pdf_with_pdftocairo(pipeline, toolchain) -> None:
    options = EffectiveOptions(
        filename="demo", format=OutputFormat.PDF, converter=Converter.PDFTOCAIRO, engine="lualatex"
    )
    result = pipeline.render(BODY, options)

    assert result.data.startswith(b"%PDF")
    engine_argv, converter_argv = toolchain.calls
    assert engine_argv[0] == "/usr/bin/lualatex"
    assert converter_argv[:2] == ["/usr/bin/pdftocairo", "-pdf"]
    assert converter_argv[-1].endswith("tikz-export.pdf")


def test_typeset_failure_reports_latex_error(pipeline, toolchain) -> None:
    toolchain.engine_log = LATEX_LOG
    with pytest.raises(RenderError) as excinfo:
        pipeline.render(BODY, EffectiveOptions(filename="demo"))

    error = excinfo.value
    assert error.stage == "typeset"
    assert error.returncode == 1
    assert "Undefined control sequence" in str(error)
    assert "line 7" in str(error)
    assert error.source == BODY
    assert "No pages of output." in error.log
    assert toolchain.converter_calls == []


def test_missing_artifact_fails_at_read(pipeline, toolchain) -> None:
    toolchain.converter_writes = False
    with pytest.raises(RenderError) as excinfo:
        pipeline.render(BODY, EffectiveOptions(filename="demo"))
    assert excinfo.value.stage == "read"
    assert "missing" in str(excinfo.value)


def test_invalid_artifact_fails_at_read(pipeline, toolchain) -> None:
    toolchain.converter_bytes = b"Segmentation fault"
    with pytest.raises(RenderError, match="not a valid SVG") as excinfo:
        pipeline.render(BODY, EffectiveOptions(filename="demo"))
    assert excinfo.value.stage == "read"


def test_empty_artifact_fails_at_read(pipeline, toolchain) -> None:
    toolchain.converter_bytes = b""
    with pytest.raises(RenderError, match="is empty"):
        pipeline.render(BODY, EffectiveOptions(filename="demo"))


def test_missing_tool_is_reported_before_any_stage(toolchain) -> None:
    pipeline = RenderPipeline(
        runner=toolchain, which=lambda name: None if name == "inkscape" else f"/bin/{name}"
    )
    with pytest.raises(ToolUnavailableError) as excinfo:
        pipeline.render(BODY, EffectiveOptions(filename="demo"))
    assert excinfo.value.tool == "inkscape"
    assert "pdftocairo" in str(excinfo.value)
    assert toolchain.calls == []


def test_timeout_is_a_stage_failure(pipeline, toolchain) -> None:
    toolchain.timeout_stage = "convert"
    with pytest.raises(RenderError) as excinfo:
        pipeline.render(BODY, EffectiveOptions(filename="demo", timeout=5))
    assert excinfo.value.stage == "convert"
    assert "timed out after 5s" in str(excinfo.value)


def test_runner_oserror_is_a_stage_failure(toolchain) -> None:
    def broken(argv, *, cwd, timeout=None):
        raise PermissionError("denied")

    pipeline = RenderPipeline(runner=broken, which=lambda name: f"/bin/{name}")
    with pytest.raises(RenderError) as excinfo:
        pipeline.render(BODY, EffectiveOptions(filename="demo"))
    assert excinfo.value.stage == "typeset"


def test_save_tex_keeps_intermediates(tmp_path, pipeline, toolchain, emitter) -> None:
    options = EffectiveOptions(
        filename="kept demo", save_tex=True, save_tex_dir=str(tmp_path / "tex")
    )
    result = pipeline.render(BODY, options)

    assert result.kept_dir == (tmp_path / "tex" / "kept-demo").resolve()
    assert (result.kept_dir / "tikz-image.tex").exists()
    assert (result.kept_dir / "tikz-image.pdf").exists()
    assert (result.kept_dir / "tikz-export.svg").exists()
    assert ("intermediates_kept", {"directory": str(result.kept_dir)}) in emitter.events


def test_temporary_directory_is_removed(pipeline, toolchain) -> None:
    pipeline.render(BODY, EffectiveOptions(filename="demo"))
    engine_argv = toolchain.engine_calls[0]
    output_dir = engine_argv[3].split("=", 1)[1]
    assert not Path(output_dir).exists()


def test_looks_like_signatures() -> None:
    assert looks_like(FAKE_SVG, OutputFormat.SVG)
    assert looks_like(b"<svg xmlns='http://www.w3.org/2000/svg'/>", OutputFormat.SVG)
    assert not looks_like(b"%PDF-1.5", OutputFormat.SVG)
    assert looks_like(b"%PDF-1.5", OutputFormat.PDF)
    assert not looks_like(b"", OutputFormat.PDF)


def test_timeout_expired_is_not_leaked(pipeline, toolchain) -> None:
    toolchain.timeout_stage = "typeset"
    with pytest.raises(RenderError) as excinfo:
        pipeline.render(BODY, EffectiveOptions(filename="demo", timeout=1))
    assert isinstance(excinfo.value.__cause__, subprocess.TimeoutExpired)

import json
from pathlib import Path

from pandocfilters import CodeBlock
import pytest
from typer.testing import CliRunner

from conftest import FAKE_SVG, fake_which
from tikzsmith.ui.cli import app, filter_app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def fake_tools(monkeypatch: pytest.MonkeyPatch, toolchain):
    monkeypatch.setattr("tikzsmith.adapters.latex.pipeline.run_tool", toolchain)
    monkeypatch.setattr("shutil.which", fake_which)
    return toolchain


def _document() -> str:
    block = CodeBlock(["", ["tikz"], []], "\\draw (0,0) -- (2,1);")
    return json.dumps({"pandoc-api-version": [1, 23, 1], "meta": {}, "blocks": [block]})


def test_check_reports_tools(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("shutil.which", fake_which)
    result = runner.invoke(app, ["check", "--engine", "xelatex"])
    assert result.exit_code == 0, result.output
    assert "xelatex" in result.stdout
    assert "/usr/bin/inkscape" in result.stdout


def test_check_fails_when_tools_are_missing(
    runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("shutil.which", lambda name: None)
    result = runner.invoke(app, ["check", "--converter", "pdftocairo"])
    assert result.exit_code == 1
    assert "pdflatex, pdftocairo" in result.stderr


def test_cache_path_and_clear(runner: CliRunner, tmp_path: Path) -> None:
    root = tmp_path / "cache-root"
    result = runner.invoke(app, ["cache", "path", "--cache-dir", str(root)])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == str(root / "diagrams")

    entries = root / "diagrams"
    entries.mkdir(parents=True)
    (entries / "abc.svg").write_bytes(FAKE_SVG)
    result = runner.invoke(app, ["cache", "clear", "--cache-dir", str(root)])
    assert result.exit_code == 0, result.output
    assert not entries.exists()

    result = runner.invoke(app, ["cache", "clear", "--cache-dir", str(root)])
    assert "already empty" in result.stdout


def test_render_writes_image_next_to_source(runner: CliRunner, tmp_path: Path, fake_tools) -> None:
    source = tmp_path / "arrow.tex"
    source.write_text("\\draw[->] (0,0) -- (1,0);\n", encoding="utf-8")

    result = runner.invoke(app, ["render", str(source)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "arrow.svg").read_bytes() == FAKE_SVG
    assert len(fake_tools.engine_calls) == 1


def test_render_pdf_to_explicit_output(runner: CliRunner, tmp_path: Path, fake_tools) -> None:
    source = tmp_path / "arrow.tex"
    source.write_text("\\draw (0,0) circle (1);\n", encoding="utf-8")
    target = tmp_path / "out" / "figure.pdf"

    args = ["render", str(source), "--format", "pdf", "--converter", "pdftocairo"]
    result = runner.invoke(app, [*args, "-o", str(target)])
    assert result.exit_code == 0, result.output
    assert target.read_bytes().startswith(b"%PDF")
    assert fake_tools.converter_calls[0][1] == "-pdf"


def test_render_failure_exits_non_zero(runner: CliRunner, tmp_path: Path, fake_tools) -> None:
    fake_tools.engine_log = "! Undefined control sequence.\nl.4 \\oops\n"
    source = tmp_path / "broken.tex"
    source.write_text("\\oops\n", encoding="utf-8")

    result = runner.invoke(app, ["render", str(source)])
    assert result.exit_code == 1
    assert "[typeset]" in result.stderr
    assert not (tmp_path / "broken.svg").exists()


def test_filter_command_rewrites_document(runner: CliRunner, fake_tools) -> None:
    result = runner.invoke(app, ["filter", "html"], input=_document())
    assert result.exit_code == 0, result.output

    doc = json.loads(result.stdout)
    (block,) = doc["blocks"]
    assert block["t"] == "Plain"
    assert block["c"][0]["t"] == "Image"


def test_pandoc_entry_point_accepts_format_argument(
    runner: CliRunner, fake_tools, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(filter_app, ["latex"], input=_document())
    assert result.exit_code == 0, result.output

    doc = json.loads(result.stdout)
    image = doc["blocks"][0]["c"][0]
    assert image["c"][2][0] == "images/tikz-image-1.pdf"
    assert (tmp_path / "images" / "tikz-image-1.pdf").exists()


def test_version_option(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("tikzsmith ")

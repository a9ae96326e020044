from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
import subprocess
from typing import Any

import pytest

from tikzsmith.adapters.latex.pipeline import RenderPipeline
from tikzsmith.core.user_dir import user_dir_context


FAKE_PDF = b"%PDF-1.5\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"
FAKE_SVG = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b'<svg xmlns="http://www.w3.org/2000/svg" width="12pt" height="8pt" viewBox="0 0 12 8">'
    b'<path d="M0 0L12 8"/></svg>\n'
)


class RecordingEmitter:
    """Diagnostic emitter capturing everything it receives."""

    def __init__(self) -> None:
        self.debug_enabled = False
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))

    @property
    def event_names(self) -> list[str]:
        return [name for name, _ in self.events]


class FakeToolchain:
    """Stand-in for the LaTeX engine and converter executables."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.sources: list[str] = []
        self.engine_log: str | None = None
        self.converter_writes = True
        self.converter_bytes: bytes | None = None
        self.timeout_stage: str | None = None

    @property
    def engine_calls(self) -> list[list[str]]:
        return [argv for argv in self.calls if _output_directory(argv) is not None]

    @property
    def converter_calls(self) -> list[list[str]]:
        return [argv for argv in self.calls if _output_directory(argv) is None]

    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        args = list(argv)
        self.calls.append(args)
        output_dir = _output_directory(args)
        if output_dir is not None:
            return self._typeset(args, Path(cwd), Path(output_dir), timeout)
        return self._convert(args, timeout)

    def _typeset(
        self, argv: list[str], cwd: Path, output_dir: Path, timeout: float | None
    ) -> subprocess.CompletedProcess[str]:
        if self.timeout_stage == "typeset":
            raise subprocess.TimeoutExpired(argv, timeout or 1.0)
        tex_file = cwd / argv[-1]
        self.sources.append(tex_file.read_text(encoding="utf-8"))
        if self.engine_log is not None:
            (output_dir / f"{tex_file.stem}.log").write_text(self.engine_log, encoding="utf-8")
            return subprocess.CompletedProcess(argv, 1, "engine output", "")
        (output_dir / f"{tex_file.stem}.pdf").write_bytes(FAKE_PDF)
        return subprocess.CompletedProcess(argv, 0, "", "")

    def _convert(
        self, argv: list[str], timeout: float | None
    ) -> subprocess.CompletedProcess[str]:
        if self.timeout_stage == "convert":
            raise subprocess.TimeoutExpired(argv, timeout or 1.0)
        target = next(
            (Path(arg.split("=", 1)[1]) for arg in argv if arg.startswith("--export-filename=")),
            Path(argv[-1]),
        )
        if self.converter_writes:
            data = self.converter_bytes
            if data is None:
                data = FAKE_PDF if target.suffix == ".pdf" else FAKE_SVG
            target.write_bytes(data)
        return subprocess.CompletedProcess(argv, 0, "", "")


def _output_directory(argv: Sequence[str]) -> str | None:
    for arg in argv:
        if arg.startswith("-output-directory="):
            return arg.split("=", 1)[1]
    return None


def fake_which(name: str) -> str | None:
    return f"/usr/bin/{name}"


@pytest.fixture(autouse=True)
def isolated_user_dir(tmp_path: Path):
    with user_dir_context(cache_root=tmp_path / "user-cache") as user_dir:
        yield user_dir


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def pipeline(toolchain: FakeToolchain, emitter: RecordingEmitter) -> RenderPipeline:
    return RenderPipeline(runner=toolchain, which=fake_which, emitter=emitter)

"""Document-level configuration read from the ``tikz`` metadata block.

DocumentConfig

`format` (`svg | pdf`)
: Image format produced for every diagram. LaTeX-based outputs always
  receive PDF.

`folder` (`str`)
: Directory receiving linked images. Created on demand; only used when the
  embed mode resolves to `link`.

`filename` (`str`)
: Base name for diagrams without an explicit `filename`. A per-document
  counter is appended (`tikz-image-1`, `tikz-image-2`, ...).

`caption` (`str | None`)
: Default caption. A caption turns the image into a figure.

`width`, `height` (`str | None`)
: Default presentational size attached to the image.

`embed_mode` (`inline | link | raw`)
: How the image is attached to HTML output. Other outputs always link.

`cache` (`bool | path`)
: Enable the on-disk cache of rendered images. A path both enables the
  cache and sets its location.

`cache-dir` (`Path | None`)
: Explicit cache directory. Defaults to the user cache directory.

`save-tex` (`bool`)
: Keep the generated LaTeX sources and engine artifacts on disk. Disabled
  when the cache is enabled.

`save-tex-dir` (`str`)
: Directory receiving kept intermediates, one sub-directory per diagram.

`debug` (`bool`)
: Emit verbose diagnostics and full engine logs on failure.

`engine` (`str`)
: LaTeX engine executable (`pdflatex`, `lualatex`, `xelatex`, ...).

`converter` (`inkscape | pdftocairo`)
: Tool converting the engine's PDF into the final image.

`timeout` (`float | None`)
: Seconds allowed for each external tool invocation. Unlimited by default.

`on-error` (`keep | drop`)
: Keep the original code block or remove it when rendering fails.

`libraries`, `additionalPackages`, `header-includes`, `scale`
: Defaults for the matching per-diagram options.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


_TRUE_VALUES = {"1", "true", "on", "yes"}
_FALSE_VALUES = {"0", "false", "off", "no", ""}

HTML_FORMATS = frozenset(
    {
        "html",
        "html4",
        "html5",
        "chunkedhtml",
        "revealjs",
        "slidy",
        "slideous",
        "s5",
        "dzslides",
    }
)
LATEX_FORMATS = frozenset({"latex", "beamer", "context", "pdf"})

_E = TypeVar("_E", bound="_Choice")


class _Choice(str, Enum):
    """String enumeration with a total parse function."""

    @classmethod
    def choices(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)

    @classmethod
    def parse(cls: type[_E], value: Any, *, key: str) -> _E:
        """Return the member matching ``value`` or raise ``ConfigurationError``."""
        if isinstance(value, cls):
            return value
        token = str(value).strip().lower() if value is not None else ""
        for member in cls:
            if member.value == token:
                return member
        raise ConfigurationError(
            f"Invalid value '{value}'", key=key, allowed=cls.choices()
        )


class OutputFormat(_Choice):
    """Image format produced by the render pipeline."""

    SVG = "svg"
    PDF = "pdf"

    @property
    def mime_type(self) -> str:
        return "image/svg+xml" if self is OutputFormat.SVG else "application/pdf"

    @property
    def extension(self) -> str:
        return f".{self.value}"


class EmbedMode(_Choice):
    """How the rendered image is attached to the document."""

    INLINE = "inline"
    LINK = "link"
    RAW = "raw"


class Converter(_Choice):
    """External tool turning the engine PDF into the final image."""

    INKSCAPE = "inkscape"
    PDFTOCAIRO = "pdftocairo"


class ErrorPolicy(_Choice):
    """What happens to a code block whose diagram cannot be rendered."""

    KEEP = "keep"
    DROP = "drop"


def base_format(target: str | None) -> str:
    """Return the pandoc output format stripped of extensions."""
    token = (target or "").strip().lower()
    for separator in ("+", "-"):
        token = token.split(separator, 1)[0]
    return token


def is_html_target(target: str | None) -> bool:
    return base_format(target) in HTML_FORMATS


def is_latex_target(target: str | None) -> bool:
    return base_format(target) in LATEX_FORMATS


def coerce_bool(value: Any, *, key: str) -> bool:
    """Interpret metadata booleans given as YAML booleans or strings."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    token = str(value).strip().lower()
    if token in _TRUE_VALUES:
        return True
    if token in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"Invalid boolean '{value}'", key=key, allowed=("true", "false")
    )


def join_lines(value: Any) -> str | None:
    """Flatten list-valued metadata (e.g. ``header-includes``) into text."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        parts = [str(item) for item in value if item is not None]
        return "\n".join(parts) if parts else None
    text = str(value)
    return text if text.strip() else None


class DocumentConfig(BaseModel):
    """Document-wide defaults for every diagram."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    format: OutputFormat = OutputFormat.SVG
    folder: str = "images"
    filename: str = "tikz-image"
    caption: str | None = None
    width: str | None = None
    height: str | None = None
    embed_mode: EmbedMode = Field(
        default=EmbedMode.INLINE,
        validation_alias=AliasChoices("embed_mode", "embed-mode"),
    )
    cache: bool = False
    cache_dir: Path | None = Field(
        default=None, validation_alias=AliasChoices("cache_dir", "cache-dir")
    )
    save_tex: bool = Field(
        default=False, validation_alias=AliasChoices("save_tex", "save-tex")
    )
    save_tex_dir: str = Field(
        default="tikz-tex", validation_alias=AliasChoices("save_tex_dir", "save-tex-dir")
    )
    debug: bool = False
    engine: str = "pdflatex"
    converter: Converter = Converter.INKSCAPE
    timeout: float | None = Field(default=None, gt=0)
    on_error: ErrorPolicy = Field(
        default=ErrorPolicy.KEEP, validation_alias=AliasChoices("on_error", "on-error")
    )
    libraries: str | None = None
    additional_packages: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "additional_packages", "additionalPackages", "additional-packages"
        ),
    )
    header_includes: str | None = Field(
        default=None, validation_alias=AliasChoices("header_includes", "header-includes")
    )
    scale: str | None = None

    @field_validator("header_includes", "additional_packages", "libraries", mode="before")
    @classmethod
    def _flatten(cls, value: Any) -> str | None:
        return join_lines(value)

    @field_validator("scale", "width", "height", "caption", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value)

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any] | None) -> DocumentConfig:
        """Build the configuration from the raw ``tikz`` metadata mapping."""
        if metadata is None:
            return cls()
        if not isinstance(metadata, Mapping):
            raise ConfigurationError("The 'tikz' metadata entry must be a mapping.")

        data = {str(key): value for key, value in metadata.items()}
        _parse_enum(data, OutputFormat, ("format",))
        _parse_enum(data, EmbedMode, ("embed_mode", "embed-mode"))
        _parse_enum(data, Converter, ("converter",))
        _parse_enum(data, ErrorPolicy, ("on_error", "on-error"))
        for key in ("save-tex", "save_tex", "debug"):
            if key in data:
                data[key] = coerce_bool(data[key], key=key)

        if "cache" in data:
            raw_cache = data["cache"]
            if isinstance(raw_cache, str) and raw_cache.strip().lower() not in (
                _TRUE_VALUES | _FALSE_VALUES
            ):
                data["cache"] = True
                data.setdefault("cache-dir", raw_cache.strip())
            else:
                data["cache"] = coerce_bool(raw_cache, key="cache")

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(_summarise_validation_error(exc)) from exc


def _parse_enum(data: dict[str, Any], enum_cls: type[_Choice], keys: Iterable[str]) -> None:
    for key in keys:
        if key in data:
            data[key] = enum_cls.parse(data[key], key=key)


def _summarise_validation_error(exc: ValidationError) -> str:
    problems: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "tikz"
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid 'tikz' metadata: " + "; ".join(problems)


__all__ = [
    "HTML_FORMATS",
    "LATEX_FORMATS",
    "Converter",
    "DocumentConfig",
    "EmbedMode",
    "ErrorPolicy",
    "OutputFormat",
    "base_format",
    "coerce_bool",
    "is_html_target",
    "is_latex_target",
    "join_lines",
]

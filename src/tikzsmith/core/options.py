"""Per-diagram option resolution.

Options come from four layers, later layers overriding earlier ones:

1. built-in defaults,
2. the document ``tikz`` metadata (:class:`DocumentConfig`),
3. directive comments inside the diagram source (``%%| key: value``),
4. attributes declared on the fenced code block.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
import yaml

from .config import (
    Converter,
    DocumentConfig,
    EmbedMode,
    ErrorPolicy,
    OutputFormat,
    is_html_target,
    is_latex_target,
)
from .exceptions import ConfigurationError


DIAGRAM_CLASS = "tikz"
DIRECTIVE_PREFIX = "%%"

_DIRECTIVE_PATTERN = re.compile(
    r"^" + re.escape(DIRECTIVE_PREFIX) + r"\| ?(?P<key>[-_A-Za-z0-9]+):[ \t]*(?P<value>.*)$"
)
_NESTED_PATTERN = re.compile(r"^" + re.escape(DIRECTIVE_PREFIX) + r"\|   (?P<line>.*)$")
_PREFIXED_KEY = re.compile(r"^(?P<prefix>[A-Za-z]+)-(?P<name>[A-Za-z][-A-Za-z0-9]*)$")
_NESTED_KEYS = {"fig-attr"}

_ALIASES = {
    "embed-mode": "embed_mode",
    "embedMode": "embed_mode",
    "additional-packages": "additionalPackages",
    "header_includes": "header-includes",
}


@dataclass(frozen=True, slots=True)
class DiagramBlock:
    """A fenced code block as seen by the resolver."""

    text: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    identifier: str | None = None
    classes: tuple[str, ...] = (DIAGRAM_CLASS,)

    @property
    def is_diagram(self) -> bool:
        return DIAGRAM_CLASS in self.classes

    @property
    def extra_classes(self) -> tuple[str, ...]:
        return tuple(cls for cls in self.classes if cls != DIAGRAM_CLASS)


class EffectiveOptions(BaseModel):
    """Fully merged configuration driving one render."""

    model_config = ConfigDict(frozen=True)

    format: OutputFormat = OutputFormat.SVG
    embed_mode: EmbedMode = EmbedMode.INLINE
    folder: str = "images"
    filename: str
    scale: str | None = None
    libraries: str | None = None
    additional_packages: str | None = None
    header_includes: str | None = None
    user_options: dict[str, str] = Field(default_factory=dict)
    cache: bool = False
    cache_dir: Path | None = None
    save_tex: bool = False
    save_tex_dir: str = "tikz-tex"
    caption: str | None = None
    alt: str | None = None
    fig_id: str | None = None
    fig_classes: tuple[str, ...] = ()
    fig_attributes: dict[str, str] = Field(default_factory=dict)
    image_attributes: dict[str, str] = Field(default_factory=dict)
    engine: str = "pdflatex"
    converter: Converter = Converter.INKSCAPE
    timeout: float | None = None
    debug: bool = False
    on_error: ErrorPolicy = ErrorPolicy.KEEP

    @property
    def artifact_name(self) -> str:
        return f"{self.filename}{self.format.extension}"

    def render_options(self) -> dict[str, Any]:
        """Return the options that change the rendered bytes."""
        return {
            "format": self.format.value,
            "engine": self.engine,
            "converter": self.converter.value,
            "scale": self.scale,
            "libraries": self.libraries,
            "additional-packages": self.additional_packages,
            "header-includes": self.header_includes,
            "user": dict(sorted(self.user_options.items())),
        }


def parse_directives(source: str) -> dict[str, Any]:
    """Extract ``%%| key: value`` directives from a diagram source.

    A ``fig-attr`` directive is followed by indented ``%%|   key: value``
    lines which are parsed as a one-level YAML mapping.
    """
    props: dict[str, Any] = {}
    lines = source.splitlines()
    index = 0
    while index < len(lines):
        match = _DIRECTIVE_PATTERN.match(lines[index])
        index += 1
        if match is None:
            continue
        key = match.group("key")
        value = match.group("value").strip()
        if key in _NESTED_KEYS:
            nested: list[str] = []
            while index < len(lines):
                sub = _NESTED_PATTERN.match(lines[index])
                if sub is None:
                    break
                nested.append(sub.group("line"))
                index += 1
            props[key] = _parse_nested_mapping(key, "\n".join(nested) or value)
            continue
        props[key] = _unquote(value)
    return props


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _parse_nested_mapping(key: str, payload: str) -> dict[str, Any]:
    if not payload.strip():
        return {}
    try:
        loaded = yaml.safe_load(payload)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed '{key}' block: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise ConfigurationError(f"The '{key}' block must be a key/value mapping.")
    result: dict[str, Any] = {}
    for name, value in loaded.items():
        if isinstance(value, Mapping):
            raise ConfigurationError(f"The '{key}' block does not support nested mappings.")
        result[str(name)] = value
    return result


def _split_classes(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if str(item).strip()]
    return str(value).split()


def _validate_filename(value: str) -> str:
    name = value.strip()
    if not name or name.startswith(".") or "/" in name or "\\" in name:
        raise ConfigurationError(f"Invalid diagram filename '{value}'", key="filename")
    return name


def resolve_options(
    block: DiagramBlock,
    config: DocumentConfig,
    *,
    target: str | None,
    counter: int,
) -> EffectiveOptions:
    """Merge every option layer into the effective options of ``block``."""
    attribs: dict[str, Any] = {}
    for source in (parse_directives(block.text), dict(block.attributes)):
        for key, value in source.items():
            attribs[_ALIASES.get(key, key)] = value

    fig_id = block.identifier or None
    fig_classes = list(block.extra_classes)
    fig_attributes: dict[str, str] = {}
    image_attributes: dict[str, str] = {}
    user_options: dict[str, str] = {}

    nested = attribs.pop("fig-attr", None)
    if isinstance(nested, str):
        nested = _parse_nested_mapping("fig-attr", nested)
    for key, value in (nested or {}).items():
        if key == "id":
            fig_id = str(value)
        elif key in {"class", "classes"}:
            fig_classes.extend(_split_classes(value))
        else:
            fig_attributes[key] = str(value)

    known: dict[str, Any] = {}
    for name, value in attribs.items():
        match name:
            case (
                "alt"
                | "caption"
                | "filename"
                | "folder"
                | "format"
                | "embed_mode"
                | "scale"
                | "libraries"
                | "additionalPackages"
                | "header-includes"
            ):
                known[name] = value
            case "label":
                fig_id = str(value)
            case "name":
                fig_attributes["name"] = str(value)
            case _:
                prefixed = _PREFIXED_KEY.match(name)
                prefix = prefixed.group("prefix") if prefixed else None
                if prefixed and prefix == "fig":
                    key = prefixed.group("name")
                    if key == "id":
                        fig_id = str(value)
                    elif key == "class":
                        fig_classes.extend(_split_classes(value))
                    else:
                        fig_attributes[key] = str(value)
                elif prefixed and prefix in {"image", "img"}:
                    image_attributes[prefixed.group("name")] = str(value)
                elif prefixed and prefix == "opt":
                    user_options[prefixed.group("name")] = str(value)
                else:
                    image_attributes[name] = str(value)

    for dimension in ("width", "height"):
        default = getattr(config, dimension)
        if default is not None:
            image_attributes.setdefault(dimension, default)

    # Format first: the embed mode coercion depends on the final format.
    fmt = OutputFormat.parse(known.get("format", config.format), key="format")
    if is_latex_target(target):
        fmt = OutputFormat.PDF
    mode = EmbedMode.parse(known.get("embed_mode", config.embed_mode), key="embed_mode")
    if fmt is OutputFormat.PDF or not is_html_target(target):
        mode = EmbedMode.LINK

    if "filename" in known:
        filename = _validate_filename(str(known["filename"]))
    else:
        filename = _validate_filename(f"{config.filename}-{counter}")

    return EffectiveOptions(
        format=fmt,
        embed_mode=mode,
        folder=str(known.get("folder", config.folder)),
        filename=filename,
        scale=_optional_str(known.get("scale", config.scale)),
        libraries=_optional_str(known.get("libraries", config.libraries)),
        additional_packages=_optional_str(
            known.get("additionalPackages", config.additional_packages)
        ),
        header_includes=_optional_str(known.get("header-includes", config.header_includes)),
        user_options=user_options,
        cache=config.cache,
        cache_dir=config.cache_dir,
        save_tex=config.save_tex,
        save_tex_dir=config.save_tex_dir,
        caption=_optional_str(known.get("caption", config.caption)),
        alt=_optional_str(known.get("alt")),
        fig_id=fig_id,
        fig_classes=tuple(dict.fromkeys(fig_classes)),
        fig_attributes=fig_attributes,
        image_attributes=image_attributes,
        engine=config.engine,
        converter=config.converter,
        timeout=config.timeout,
        debug=config.debug,
        on_error=config.on_error,
    )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


__all__ = [
    "DIAGRAM_CLASS",
    "DiagramBlock",
    "EffectiveOptions",
    "parse_directives",
    "resolve_options",
]

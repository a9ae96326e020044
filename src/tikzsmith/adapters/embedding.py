"""Turn rendered diagrams into the payload of an output node."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path
import posixpath

from bs4 import BeautifulSoup

from tikzsmith.core.config import EmbedMode, OutputFormat
from tikzsmith.core.exceptions import ConfigurationError, RenderError
from tikzsmith.core.options import EffectiveOptions

from .latex.pipeline import RenderResult


_PRESENTATION_ATTRIBUTES = ("width", "height")


@dataclass(frozen=True, slots=True)
class EmbeddedImage:
    """Payload ready to be placed in the document tree.

    ``url`` is set for ``link`` and ``inline`` modes; ``markup`` holds the
    SVG element for ``raw`` mode.
    """

    mode: EmbedMode
    url: str | None = None
    markup: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    path: Path | None = None


def data_uri(data: bytes, mime_type: str) -> str:
    """Return a base64 ``data:`` URI for ``data``."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def link_artifact(
    result: RenderResult, options: EffectiveOptions, *, base_dir: Path
) -> tuple[Path, str]:
    """Write the artifact under ``options.folder`` and return its path and URL."""
    folder = base_dir / options.folder
    folder.mkdir(parents=True, exist_ok=True)
    target = folder / options.artifact_name
    target.write_bytes(result.data)
    return target, posixpath.join(options.folder, options.artifact_name)


def svg_markup(data: bytes, attributes: dict[str, str]) -> str:
    """Return the root ``<svg>`` element with ``attributes`` applied."""
    soup = BeautifulSoup(data, "xml")
    root = soup.find("svg")
    if root is None:
        raise RenderError("embed", "SVG artifact has no <svg> root element")
    for name in _PRESENTATION_ATTRIBUTES:
        value = attributes.get(name)
        if value:
            root[name] = value
    return str(root)


def embed(
    result: RenderResult,
    options: EffectiveOptions,
    *,
    base_dir: Path | None = None,
) -> EmbeddedImage:
    """Attach ``result`` according to the resolved embed mode."""
    attributes = dict(options.image_attributes)
    match options.embed_mode:
        case EmbedMode.LINK:
            path, url = link_artifact(result, options, base_dir=base_dir or Path.cwd())
            return EmbeddedImage(mode=EmbedMode.LINK, url=url, attributes=attributes, path=path)
        case EmbedMode.INLINE:
            return EmbeddedImage(
                mode=EmbedMode.INLINE,
                url=data_uri(result.data, result.mime_type),
                attributes=attributes,
            )
        case EmbedMode.RAW:
            if result.format is not OutputFormat.SVG:
                raise ConfigurationError(
                    "Raw embedding only supports SVG output",
                    key="embed_mode",
                    allowed=(EmbedMode.INLINE.value, EmbedMode.LINK.value),
                )
            markup = svg_markup(result.data, attributes)
            remaining = {
                key: value
                for key, value in attributes.items()
                if key not in _PRESENTATION_ATTRIBUTES
            }
            return EmbeddedImage(mode=EmbedMode.RAW, markup=markup, attributes=remaining)
    raise ConfigurationError(f"Unsupported embed mode '{options.embed_mode}'")


__all__ = ["EmbeddedImage", "data_uri", "embed", "link_artifact", "svg_markup"]

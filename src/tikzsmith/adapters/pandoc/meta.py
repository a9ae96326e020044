"""Convert pandoc ``MetaValue`` trees into plain Python values."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pandocfilters import walk


def meta_text(value: Any) -> str:
    """Flatten inlines or blocks into text, keeping raw LaTeX verbatim.

    Metadata such as ``\\usepackage{amsmath}`` reaches filters as a
    ``RawInline`` which ``pandocfilters.stringify`` would discard.
    """
    parts: list[str] = []

    def collect(key: str, val: Any, fmt: str, meta: Any) -> None:
        match key:
            case "Str":
                parts.append(val)
            case "Code" | "Math" | "RawInline" | "RawBlock":
                parts.append(val[1])
            case "Space" | "SoftBreak":
                parts.append(" ")
            case "LineBreak":
                parts.append("\n")
            case "Para" | "Plain":
                if parts and not parts[-1].endswith("\n"):
                    parts.append("\n")

    walk(value, collect, "", {})
    return "".join(parts).strip()


def meta_value(value: Any) -> Any:
    """Return the Python equivalent of a pandoc ``MetaValue``."""
    if not isinstance(value, Mapping) or "t" not in value:
        return value
    kind = value["t"]
    content = value.get("c")
    match kind:
        case "MetaMap":
            return {str(key): meta_value(item) for key, item in content.items()}
        case "MetaList":
            return [meta_value(item) for item in content]
        case "MetaBool":
            return bool(content)
        case "MetaString":
            return str(content)
        case "MetaInlines" | "MetaBlocks":
            return meta_text(content)
    return content


def document_meta(doc: dict[str, Any]) -> dict[str, Any]:
    """Return the mutable metadata mapping of a pandoc JSON document."""
    meta = doc.get("meta")
    if meta is None:
        meta = {}
        doc["meta"] = meta
    return meta


__all__ = ["document_meta", "meta_text", "meta_value"]

"""Pandoc filter entry points."""

from __future__ import annotations

from .filter import METADATA_KEY, TikzFilter, run
from .meta import meta_value


__all__ = ["METADATA_KEY", "TikzFilter", "meta_value", "run"]

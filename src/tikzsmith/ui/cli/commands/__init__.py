"""CLI command implementations exposed via ``tikzsmith.ui.cli``."""

from __future__ import annotations

from .cache import app as cache_app
from .check import check
from .filter import filter_document
from .render import render


__all__ = ["cache_app", "check", "filter_document", "render"]

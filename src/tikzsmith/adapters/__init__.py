"""Bridges between the core and external tools (LaTeX, pandoc)."""

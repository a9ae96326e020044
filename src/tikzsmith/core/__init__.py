"""Configuration, option resolution and caching independent of pandoc."""

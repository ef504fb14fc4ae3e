"""Localize remote Markdown images into a content cache and rewrite the links."""

__version__ = "0.1.0"

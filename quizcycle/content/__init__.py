"""Topic content sources feeding question generation."""

from .source import ContentSource, InMemoryContentSource, JsonContentSource

__all__ = ["ContentSource", "InMemoryContentSource", "JsonContentSource"]

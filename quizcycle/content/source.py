"""
Topic content sources.

A source maps topic names to their files (filename -> text). An empty
source is valid and simply yields no topics.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from loguru import logger


class ContentSource(Protocol):
    """Read access to segmented topic content."""

    def list_topics(self) -> set[str]:
        ...

    def content_for(self, topic: str) -> dict[str, str]:
        ...


class InMemoryContentSource:
    """Content held in a dict, mostly for tests and scripted imports."""

    def __init__(self, content: dict[str, dict[str, str]] | None = None):
        self._content = {topic: dict(files) for topic, files in (content or {}).items()}

    def add(self, topic: str, filename: str, text: str) -> None:
        self._content.setdefault(topic, {})[filename] = text

    def list_topics(self) -> set[str]:
        return {topic for topic, files in self._content.items() if files}

    def content_for(self, topic: str) -> dict[str, str]:
        return dict(self._content.get(topic, {}))


class JsonContentSource:
    """
    Content exported to a JSON file: {"topic": {"file.md": "text", ...}, ...}.

    The file is re-read on every call so external sync jobs can replace it.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, dict[str, str]]:
        if not self.path.exists():
            logger.debug(f"Content file not found: {self.path}")
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Content file must contain a JSON object: {self.path}")
        return {str(topic): {str(k): str(v) for k, v in files.items()} for topic, files in data.items()}

    def list_topics(self) -> set[str]:
        return {topic for topic, files in self._load().items() if files}

    def content_for(self, topic: str) -> dict[str, str]:
        return self._load().get(topic, {})

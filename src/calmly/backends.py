"""Key-value persistence backends for the history store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .storage import read_json_file, write_json_file

logger = logging.getLogger(__name__)


class KeyValueBackend:
    """
    Minimal durable key-value interface.

    read(key) returns the stored JSON-compatible value or None when absent.
    write(key, value) persists synchronously and may raise OSError.
    """

    def read(self, key: str) -> Any:
        raise NotImplementedError

    def write(self, key: str, value: Any) -> None:
        raise NotImplementedError


class JsonFileBackend(KeyValueBackend):
    """All keys live in one JSON object on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self, key: str) -> Any:
        return read_json_file(self.path).get(key)

    def write(self, key: str, value: Any) -> None:
        data = read_json_file(self.path)
        data[key] = value
        write_json_file(self.path, data)
        logger.debug("wrote %s to %s", key, self.path)


class MemoryBackend(KeyValueBackend):
    """
    In-process backend. Values are kept serialized (like browser
    localStorage) so tests can inspect ``raw`` or plant corrupt payloads.
    """

    def __init__(self, raw: Optional[dict[str, str]] = None):
        self.raw: dict[str, str] = dict(raw or {})
        self.writes = 0

    def read(self, key: str) -> Any:
        text = self.raw.get(key)
        if text is None:
            return None
        return json.loads(text)

    def write(self, key: str, value: Any) -> None:
        self.raw[key] = json.dumps(value)
        self.writes += 1

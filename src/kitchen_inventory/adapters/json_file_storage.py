"""JSON file-backed key-value storage."""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from kitchen_inventory.services.storage import KeyValueStorage

_logger = logging.getLogger(__name__)
_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class JsonFileStorage(KeyValueStorage):
    """Stores each key as ``<key>.json`` inside a data directory."""

    directory: Path

    @classmethod
    def create(cls, directory: str | Path) -> "JsonFileStorage":
        """Create storage rooted at a directory, creating it when missing."""
        path = Path(directory).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return cls(directory=path)

    def get(self, key: str) -> object | None:
        """Return the decoded value, or None when missing or unreadable."""
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            _logger.warning("Ignoring unreadable storage key %s", key)
            return None

    def set(self, key: str, value: object) -> None:
        """Write the value atomically via a temporary file."""
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        """Remove the file backing a key."""
        self._path(key).unlink(missing_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

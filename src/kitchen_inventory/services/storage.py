"""Durable key-value storage abstractions."""

from dataclasses import dataclass, field
from typing import Protocol


class KeyValueStorage(Protocol):
    """Interface for device-local storage of JSON values."""

    def get(self, key: str) -> object | None:
        """Return the stored value for a key, if present."""

    def set(self, key: str, value: object) -> None:
        """Store a JSON-compatible value under a key."""

    def delete(self, key: str) -> None:
        """Remove a key if present."""


@dataclass
class InMemoryStorage(KeyValueStorage):
    """Process-local storage, used when nothing needs to survive a restart."""

    values: dict[str, object] = field(default_factory=dict)

    def get(self, key: str) -> object | None:
        return self.values.get(key)

    def set(self, key: str, value: object) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)

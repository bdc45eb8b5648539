"""
Storage contract and the persisted assignment format.

A storage is a string key/value store. The registry keeps one key in it: a JSON
array of ``[experiment_name, variant_name]`` pairs.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from variantly.core.exceptions import PersistenceError


@dataclass(frozen=True)
class StorageEvent:
    """Describes a change applied to a storage."""

    key: str | None
    old_value: str | None
    new_value: str | None
    storage: "BaseStorage"


ChangeCallback = Callable[[StorageEvent], None]


class BaseStorage(ABC):
    """
    Key/value storage interface.

    Subclasses implement the raw read/write primitives; change notifications are
    delivered to the callback installed with ``bind()``.
    """

    def __init__(self) -> None:
        self._on_change: ChangeCallback | None = None

    def bind(self, on_change: ChangeCallback | None) -> None:
        """Install (or remove, with None) the change callback."""
        self._on_change = on_change

    def _notify(self, key: str | None, old_value: str | None, new_value: str | None) -> None:
        if self._on_change is not None:
            self._on_change(StorageEvent(key, old_value, new_value, self))

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the value stored under key, or None."""

    @abstractmethod
    def _write(self, key: str, value: str | None) -> None:
        """Store value under key; None deletes the key."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys."""

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Storage values must be strings, got {type(value).__name__}")
        old_value = self.get_item(key)
        self._write(key, value)
        self._notify(key, old_value, value)

    def remove_item(self, key: str) -> None:
        old_value = self.get_item(key)
        if old_value is None:
            return
        self._write(key, None)
        self._notify(key, old_value, None)

    def clear(self) -> None:
        for key in self.keys():
            self._write(key, None)
        self._notify(None, None, None)

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get_item(key) is not None


def dump_assignments(assignments: dict[str, str]) -> str:
    """Serialize experiment -> variant assignments as an ordered list of pairs."""
    return json.dumps([[name, variant] for name, variant in assignments.items()], separators=(",", ":"))


def load_assignments(raw: str) -> dict[str, str]:
    """
    Decode persisted assignments.

    Entries that are not two-element ``[str, str]`` pairs are skipped. A payload
    that is valid JSON but not a list yields no assignments.

    Raises:
        PersistenceError: If raw is not valid JSON.
    """
    try:
        entries: Any = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Invalid persisted experiments: {e}", raw_value=raw) from e

    assignments: dict[str, str] = {}
    if not isinstance(entries, list):
        return assignments

    for entry in entries:
        if isinstance(entry, list) and len(entry) == 2:
            name, variant = entry
            if isinstance(name, str) and isinstance(variant, str):
                assignments[name] = variant

    return assignments

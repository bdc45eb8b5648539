"""In-memory storage, scoped to the lifetime of the process."""

from __future__ import annotations

from variantly.storage.base import BaseStorage


class MemoryStorage(BaseStorage):
    """Dict-backed storage."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__()
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def _write(self, key: str, value: str | None) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)

    def __repr__(self) -> str:
        return f"MemoryStorage(keys={len(self._data)})"

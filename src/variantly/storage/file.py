"""
File-backed storage.

Persists a JSON object of string keys to string values. Reads always go to disk so
that writes made by other processes are visible; ``refresh()`` turns those writes
into change notifications.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import structlog

from variantly.core.exceptions import StorageError
from variantly.storage.base import BaseStorage

logger = structlog.get_logger()


class FileStorage(BaseStorage):
    """Storage persisted to a single JSON file."""

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path).expanduser()
        self._snapshot: dict[str, str] | None = None

    def _read(self) -> dict[str, str]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Cannot read storage file: {e}", path=str(self.path)) from e

        if not text.strip():
            return {}

        try:
            data = json.loads(text)
        except ValueError as e:
            raise StorageError(f"Storage file is not valid JSON: {e}", path=str(self.path)) from e

        if not isinstance(data, dict):
            raise StorageError("Storage file must contain a JSON object", path=str(self.path))

        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _dump(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".variantly-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write storage file: {e}", path=str(self.path)) from e

        self._snapshot = dict(data)

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def _write(self, key: str, value: str | None) -> None:
        data = self._read()
        if value is None:
            if key not in data:
                return
            del data[key]
        else:
            data[key] = value
        self._dump(data)

    def keys(self) -> list[str]:
        return list(self._read())

    def clear(self) -> None:
        self._dump({})
        self._notify(None, None, None)

    def refresh(self) -> bool:
        """
        Check the file for writes made by other processes.

        The first call only records the current content. Later calls compare
        against the last content seen (read or written by this instance) and
        fire one change notification per modified key.

        Returns:
            True if an external change was detected
        """
        current = self._read()
        previous = self._snapshot
        self._snapshot = dict(current)

        if previous is None or previous == current:
            return False

        changed = sorted(set(previous) | set(current))
        logger.debug("Storage file changed externally", path=str(self.path), keys=changed)
        for key in changed:
            if previous.get(key) != current.get(key):
                self._notify(key, previous.get(key), current.get(key))
        return True

    def __repr__(self) -> str:
        return f"FileStorage(path={str(self.path)!r})"

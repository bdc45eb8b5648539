"""
Process-level host environment.

Plays the role a browser window plays for client-side experiments: it owns the
well-known local (persistent) and session (in-memory) storages, an optional
process-wide analytics client, and a small event target. Every write to one of
its storages is broadcast as a ``"storage"`` event, so registries sharing a
runtime observe each other's assignments the way browser tabs do.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

import structlog

from variantly.core.config import get_settings
from variantly.storage.base import BaseStorage, StorageEvent
from variantly.storage.file import FileStorage
from variantly.storage.memory import MemoryStorage

logger = structlog.get_logger()

EventListener = Callable[..., Any]

STORAGE_EVENT = "storage"


class Runtime:
    """Host environment shared by experiment registries."""

    def __init__(
        self,
        local_storage: BaseStorage | None = None,
        session_storage: BaseStorage | None = None,
        analytics: Any | None = None,
    ):
        """
        Initialize the runtime.

        Args:
            local_storage: Persistent storage; defaults to a FileStorage at the
                configured path, created on first use
            session_storage: Process-lifetime storage; defaults to MemoryStorage
            analytics: Process-wide analytics client
        """
        self._listeners: dict[str, list[EventListener]] = defaultdict(list)
        self._local_storage: BaseStorage | None = None
        self.analytics = analytics

        if local_storage is not None:
            self._attach_storage(local_storage)
            self._local_storage = local_storage

        self.session_storage = self._attach_storage(
            session_storage if session_storage is not None else MemoryStorage()
        )

    def _attach_storage(self, storage: BaseStorage) -> BaseStorage:
        storage.bind(self._handle_storage_write)
        return storage

    @property
    def local_storage(self) -> BaseStorage:
        if self._local_storage is None:
            path = get_settings().storage.path
            self._local_storage = self._attach_storage(FileStorage(path))
            logger.debug("Local storage initialized", path=str(path))
        return self._local_storage

    def is_browser_storage(self, storage: BaseStorage) -> bool:
        """True if storage is one of the runtime's well-known storages."""
        return storage is self._local_storage or storage is self.session_storage

    def _handle_storage_write(self, event: StorageEvent) -> None:
        self.dispatch_event(STORAGE_EVENT, event)

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        self._listeners[event_type].append(listener)

    def remove_event_listener(self, event_type: str, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def dispatch_event(self, event_type: str, *args: Any) -> None:
        # Snapshot: listeners may detach while the event is being delivered
        for listener in list(self._listeners.get(event_type, [])):
            listener(*args)

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, []))


_runtime: Runtime | None = None


def get_runtime() -> Runtime:
    """Get the process-wide runtime."""
    global _runtime
    if _runtime is None:
        _runtime = Runtime()
    return _runtime


def configure_runtime(
    local_storage: BaseStorage | None = None,
    session_storage: BaseStorage | None = None,
    analytics: Any | None = None,
) -> Runtime:
    """Replace the process-wide runtime."""
    global _runtime
    _runtime = Runtime(
        local_storage=local_storage,
        session_storage=session_storage,
        analytics=analytics,
    )
    return _runtime


def reset_runtime() -> None:
    """Drop the process-wide runtime; the next get_runtime() builds a new one."""
    global _runtime
    _runtime = None

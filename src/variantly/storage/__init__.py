"""
Storage backends for persisted experiment assignments.
"""

from variantly.storage.base import (
    BaseStorage,
    StorageEvent,
    dump_assignments,
    load_assignments,
)
from variantly.storage.memory import MemoryStorage
from variantly.storage.file import FileStorage

__all__ = [
    "BaseStorage",
    "StorageEvent",
    "dump_assignments",
    "load_assignments",
    "MemoryStorage",
    "FileStorage",
]

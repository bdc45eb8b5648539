"""Core components: settings and exceptions."""

from variantly.core.config import PERSIST_KEY, Settings, get_settings, reload_settings
from variantly.core.exceptions import PersistenceError, StorageError, VariantlyError

__all__ = [
    "PERSIST_KEY",
    "Settings",
    "get_settings",
    "reload_settings",
    "PersistenceError",
    "StorageError",
    "VariantlyError",
]

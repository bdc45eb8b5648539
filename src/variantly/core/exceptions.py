"""Exceptions raised by Variantly."""

from __future__ import annotations


class VariantlyError(Exception):
    """Base exception for Variantly errors."""


class StorageError(VariantlyError):
    """Raised when a storage backend cannot be read or written."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class PersistenceError(VariantlyError):
    """Raised when persisted assignments cannot be decoded."""

    def __init__(self, message: str, raw_value: str | None = None):
        super().__init__(message)
        self.raw_value = raw_value

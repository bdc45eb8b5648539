"""Utility modules for Variantly."""

from variantly.utils.logging import setup_logging

__all__ = [
    "setup_logging",
]

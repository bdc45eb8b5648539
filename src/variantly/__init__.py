"""
Variantly - client-side experiment assignment

Weighted variant selection that sticks across sessions and processes, driven to
completion by the host application's analytics events.
"""

__version__ = "1.0.0"
__author__ = "Variantly Team"

from variantly.core.config import PERSIST_KEY
from variantly.experiments import (
    EMPTY_VARIANT,
    Experiment,
    ExperimentMap,
    Experiments,
    TrackEvent,
    Variant,
)

__all__ = [
    "PERSIST_KEY",
    "EMPTY_VARIANT",
    "Experiment",
    "ExperimentMap",
    "Experiments",
    "TrackEvent",
    "Variant",
]

"""
Experiment assignment and lifecycle.

Assign users to weighted variants, keep the assignment stable across sessions,
and report when experiments are shown and converted.
"""

from variantly.experiments.variant import EMPTY_VARIANT, Variant
from variantly.experiments.experiment import Experiment, ExperimentTracker, TrackEvent
from variantly.experiments.registry import (
    CONVERSION_EVENT,
    SHOW_EVENT,
    ExperimentMap,
    Experiments,
)

__all__ = [
    "EMPTY_VARIANT",
    "Variant",
    "Experiment",
    "ExperimentTracker",
    "TrackEvent",
    "CONVERSION_EVENT",
    "SHOW_EVENT",
    "ExperimentMap",
    "Experiments",
]

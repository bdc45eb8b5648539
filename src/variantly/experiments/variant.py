"""Experiment variants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

V = TypeVar("V")


@dataclass(frozen=True, eq=False)
class Variant(Generic[V]):
    """
    A named outcome of an experiment.

    Ratios are selection weights in [0, 1]; they are not normalized and do not
    need to sum to 1. Variants compare by identity.
    """

    name: str
    ratio: float
    value: V


# Reserved "no treatment" variant. Never part of a configured list, but always
# a valid selection and override target.
EMPTY_VARIANT: Variant[Any] = Variant("__undefined__", 1, None)

"""
Single experiment state machine.

An experiment starts inert, becomes active when a variant is locked in by
``activate()``, and ends when ``complete()`` is called. Completion is terminal.
"""

from __future__ import annotations

import random
from typing import Any, Callable, Generic, Sequence, TypeVar

from pydantic import BaseModel, Field

from variantly.experiments.variant import EMPTY_VARIANT, Variant

V = TypeVar("V")


class TrackEvent(BaseModel):
    """An analytics event delivered to experiment trackers."""

    type: str = "track"
    name: str
    properties: dict[str, Any] = Field(default_factory=dict)


ExperimentTracker = Callable[[TrackEvent, "Experiment[Any]"], None]
StateFactory = Callable[[], dict[str, Any]]


class Experiment(Generic[V]):
    """
    A feature experiment with weighted variants.

    Example:
        def track(event, experiment):
            if event.name == "sign_up":
                experiment.complete()

        experiment = Experiment(
            name="sign_up_vs_send",
            variants=[Variant("sign_up", 0.5, "Sign up"), Variant("send", 0.5, "Send")],
            track=track,
        )
    """

    def __init__(
        self,
        name: str,
        variants: Sequence[Variant[V]],
        track: ExperimentTracker,
        initial_state: StateFactory | None = None,
    ):
        """
        Initialize the experiment.

        Args:
            name: Name reported to analytics
            variants: Values available for the experiment
            track: Called with each analytics event while the experiment is
                active; may call ``set_state`` and ``complete`` on the experiment
            initial_state: Factory for the state attached to the conversion report
        """
        self._name = name
        self._variants = variants
        self._tracker = track
        self._initial_state = initial_state

        self._active = False
        self._completed = False
        self._active_variant: Variant[V] | None = None
        self.state: dict[str, Any] | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> V | None:
        """Value of the selected variant, None before activation."""
        if self._active_variant is None:
            return None
        return self._active_variant.value

    @property
    def variant(self) -> Variant[Any]:
        """Selected variant, or the empty variant before activation."""
        return self._active_variant or EMPTY_VARIANT

    def is_active(self) -> bool:
        return self._active

    def is_completed(self) -> bool:
        return self._completed

    def activate(self, force_variant: str | None = None) -> None:
        """
        Lock in a variant and start the experiment.

        No-op when the experiment is already active or completed. A variant named
        by force_variant is selected without drawing randomness; an unknown name
        falls back to weighted random selection. Exceptions raised by the state
        factory propagate and leave the experiment inert.
        """
        if self._active or self._completed:
            return

        if callable(self._initial_state):
            self.state = self._initial_state()
        else:
            self.state = {}

        variant: Variant[Any] | None = None
        if force_variant:
            variant = self.get_variant(force_variant)

        if variant is None:
            variant = self.get_random_variant()

        self._active = True
        self._active_variant = variant

    def get_random_variant(self) -> Variant[Any]:
        """
        Pick a variant by weight.

        Walks the variants in declaration order; the first whose cumulative range
        contains the draw wins. Draws beyond the sum of ratios select the empty
        variant.
        """
        variants = self.get_all_variants()
        if not variants:
            return EMPTY_VARIANT

        draw = random.random()
        offset = 0.0
        for variant in variants:
            if draw < offset + variant.ratio:
                return variant
            offset += variant.ratio

        return EMPTY_VARIANT

    def get_variant(self, name: str) -> Variant[Any] | None:
        """Find a variant by name; the empty variant's name always resolves."""
        if name == EMPTY_VARIANT.name:
            return EMPTY_VARIANT

        return next((v for v in self.get_all_variants() if v.name == name), None)

    def get_all_variants(self) -> list[Variant[V]]:
        """Copy of the configured variants; empty if the configuration is malformed."""
        if not isinstance(self._variants, (list, tuple)):
            return []
        return list(self._variants)

    def set_state(self, patch: dict[str, Any]) -> None:
        """Shallow-merge patch into the state while the experiment is running."""
        if patch and self._active and not self._completed:
            self.state = {**(self.state or {}), **patch}

    def complete(self) -> None:
        """Finish the experiment. Terminal."""
        self._active = False
        self._completed = True

    def track(self, event: TrackEvent) -> None:
        """Forward an event to the tracker while the experiment is running."""
        if self._active and not self._completed:
            self._tracker(event, self)

    def __repr__(self) -> str:
        if self._completed:
            status = "completed"
        elif self._active:
            status = "active"
        else:
            status = "inert"
        return (
            f"Experiment(name={self._name!r}, status={status}, "
            f"variant={self.variant.name!r}, state={self.state!r})"
        )

"""
Experiment registry.

Resolves and persists variant assignments, fans analytics events out to active
experiments and reports ``experiment_show`` / ``experiment_conversion`` events.
Failures inside a single experiment are contained: the experiment is completed
and logged, and neither the host nor other experiments are affected.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, TypeVar

import structlog

from variantly.core.config import PERSIST_KEY, get_settings
from variantly.core.exceptions import PersistenceError, StorageError
from variantly.core.runtime import STORAGE_EVENT, Runtime, get_runtime
from variantly.experiments.experiment import Experiment, TrackEvent
from variantly.experiments.variant import EMPTY_VARIANT
from variantly.storage.base import BaseStorage, StorageEvent, dump_assignments, load_assignments

logger = structlog.get_logger()

V = TypeVar("V")

SHOW_EVENT = "experiment_show"
CONVERSION_EVENT = "experiment_conversion"

ExperimentMap = Mapping[str, Experiment[Any]]


class Experiments:
    """
    Registry of running experiments.

    Example:
        experiments = Experiments(
            {"avatar_sign_up_test": sign_up_experiment},
            storage=MemoryStorage(),
            analytics=analytics,
        )
        label = experiments.get_current_value_for("avatar_sign_up_test", "Sign up")
        ...
        experiments.detach()
    """

    def __init__(
        self,
        experiments: ExperimentMap,
        storage: BaseStorage | None = None,
        analytics: Any | None = None,
        runtime: Runtime | None = None,
        persist_key: str | None = None,
    ):
        """
        Initialize the registry.

        Args:
            experiments: Experiment id -> experiment
            storage: Where assignments are persisted; defaults to the runtime's
                local storage
            analytics: Client with ``on``/``off``/``track``; defaults to the
                runtime's analytics client
            runtime: Host environment; defaults to the process-wide runtime
            persist_key: Storage key for assignments; defaults to settings
        """
        self._experiments = dict(experiments or {})
        self._runtime = runtime or get_runtime()
        self.storage = storage if storage is not None else self._runtime.local_storage
        self._analytics = analytics
        self.persist_key = persist_key or get_settings().storage.persist_key or PERSIST_KEY

        # Set right before our own write so its storage event is not mistaken
        # for a change made by another registry
        self._local_storage_change = False
        # Insertion-ordered set
        self._active_experiments: dict[Experiment[Any], None] = {}
        self._variant_for_experiments: dict[str, str] = {}
        # Assignments recorded but not yet written
        self._unsaved = False
        # Guards registry state; never held across analytics or storage calls
        self._lock = threading.RLock()
        # Serializes storage writes so they land in the order they were taken
        self._write_lock = threading.RLock()

        self._subscribed_analytics = self.analytics
        if self._subscribed_analytics is not None:
            self._subscribed_analytics.on("track", self.handle_track_event)
        else:
            logger.warning(
                "Analytics is not present, experiments will not generate any report",
                experiments=list(self._experiments),
            )

        self.load_persisted()

        self._storage_listening = self._runtime.is_browser_storage(self.storage)
        if self._storage_listening:
            self._runtime.add_event_listener(STORAGE_EVENT, self.handle_storage_change)

    @property
    def analytics(self) -> Any | None:
        if self._analytics is not None:
            return self._analytics
        return self._runtime.analytics

    @property
    def active_experiments(self) -> list[Experiment[Any]]:
        with self._lock:
            return list(self._active_experiments)

    @property
    def assignments(self) -> dict[str, str]:
        """Persisted experiment name -> variant name."""
        return dict(self._variant_for_experiments)

    # Persistence
    #
    # self._lock is never held across storage.set_item or analytics.track; both
    # call back into every registry on the same runtime or analytics client.

    def persist(self) -> None:
        with self._write_lock:
            with self._lock:
                self._unsaved = False
                payload = dump_assignments(self._variant_for_experiments)
                if self._storage_listening:
                    self._local_storage_change = True
            try:
                self.storage.set_item(self.persist_key, payload)
            except StorageError as e:
                with self._lock:
                    self._local_storage_change = False
                logger.error("Experiments cannot be persisted", error=str(e), path=e.path)

    def persist_variant(self, experiment_name: str, variant_name: str) -> None:
        with self._lock:
            self._assign(experiment_name, variant_name)
        self._flush()

    def _assign(self, experiment_name: str, variant_name: str) -> None:
        # Caller holds self._lock
        if self._variant_for_experiments.get(experiment_name) != variant_name:
            self._variant_for_experiments[experiment_name] = variant_name
            self._unsaved = True

    def _flush(self) -> None:
        """Persist assignments recorded since the last write, if any."""
        with self._write_lock:
            with self._lock:
                if not self._unsaved:
                    return
            self.persist()

    def load_persisted(self) -> None:
        """Merge persisted assignments into memory; corrupt data is logged and ignored."""
        with self._lock:
            try:
                persisted = self.storage.get_item(self.persist_key)
            except StorageError as e:
                logger.error("Persisted experiments cannot be read", error=str(e), path=e.path)
                return

            if not persisted:
                return

            try:
                assignments = load_assignments(persisted)
            except PersistenceError as e:
                logger.error(
                    "Persisted experiments cannot be loaded",
                    error=str(e),
                    raw_value=e.raw_value,
                )
                return

            self._variant_for_experiments.update(assignments)

    def handle_storage_change(self, event: StorageEvent | None = None) -> None:
        with self._lock:
            if event is not None and event.key not in (None, self.persist_key):
                return

            if self._local_storage_change:
                self._local_storage_change = False
            else:
                self.load_persisted()

    # Event tracking

    def emit(self, event: TrackEvent) -> None:
        """
        Deliver an event to every active experiment.

        Experiments activated by a tracker while the event is being delivered
        receive it too.
        """
        delivered: set[Experiment[Any]] = set()
        while True:
            with self._lock:
                pending = [e for e in self._active_experiments if e not in delivered]
            if not pending:
                return

            for experiment in pending:
                delivered.add(experiment)
                with self._lock:
                    # Completed and reported by a nested emit during this pass
                    if experiment not in self._active_experiments:
                        continue

                try:
                    experiment.track(event)
                except Exception as e:
                    experiment.set_state({"error_message": str(e)})
                    experiment.complete()
                    logger.error(
                        "Experiment track failed",
                        experiment=experiment.name,
                        instance=repr(experiment),
                        event_name=event.name,
                        error=str(e),
                        error_type=type(e).__name__,
                        exc_info=True,
                    )

                self.check_complete_experiment(experiment)

    def handle_track_event(self, name: str, properties: dict[str, Any] | None = None) -> None:
        self.emit(TrackEvent(type="track", name=name, properties=properties or {}))

    # Reporting

    def activate_experiment(self, experiment: Experiment[Any]) -> None:
        with self._lock:
            started = self._start(experiment)
        if started:
            self._report_show(experiment)

    def _start(self, experiment: Experiment[Any]) -> bool:
        # Caller holds self._lock
        persisted_variant = self._variant_for_experiments.get(experiment.name)

        try:
            experiment.activate(persisted_variant)
        except Exception as e:
            experiment.complete()
            logger.error(
                "Experiment activation failed",
                experiment=experiment.name,
                instance=repr(experiment),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

        if not experiment.is_active():
            return False

        self._assign(experiment.name, experiment.variant.name)
        self._active_experiments[experiment] = None
        return True

    def _report_show(self, experiment: Experiment[Any]) -> None:
        self._flush()

        analytics = self.analytics
        if analytics is not None and experiment.variant is not EMPTY_VARIANT:
            analytics.track(
                SHOW_EVENT,
                {"experiment": experiment.name, "variation": experiment.variant.name},
            )

    def check_complete_experiment(self, experiment: Experiment[Any]) -> None:
        """Report the conversion of a completed experiment, once."""
        with self._lock:
            if not experiment.is_completed() or experiment not in self._active_experiments:
                return

            del self._active_experiments[experiment]
            report = {
                "experiment": experiment.name,
                "variation": experiment.variant.name,
                **(experiment.state or {}),
            }

        analytics = self.analytics
        if analytics is not None:
            analytics.track(CONVERSION_EVENT, report)

    # Host API

    def get_experiment(self, experiment_id: str) -> Experiment[Any] | None:
        return self._experiments.get(experiment_id)

    def get_current_value_for(self, experiment_id: str, default_value: V) -> V:
        """
        Value of the experiment's variant, activating it on first use.

        Returns default_value for unknown experiments, failed activations and
        the empty variant.
        """
        experiment = self._experiments.get(experiment_id)
        if experiment is None:
            return default_value

        with self._lock:
            started = not experiment.is_active() and self._start(experiment)
        if started:
            self._report_show(experiment)

        if experiment.value is not None:
            return experiment.value

        return default_value

    def get_all_values_for(self, experiment_id: str) -> list[Any]:
        experiment = self._experiments.get(experiment_id)
        if experiment is None:
            return []

        return [v.value for v in experiment.get_all_variants() if v.value is not None]

    def detach(self) -> None:
        """Release analytics and storage subscriptions. Safe to call repeatedly."""
        with self._lock:
            analytics, self._subscribed_analytics = self._subscribed_analytics, None
            storage_listening, self._storage_listening = self._storage_listening, False

        if analytics is not None:
            analytics.off("track", self.handle_track_event)
        if storage_listening:
            self._runtime.remove_event_listener(STORAGE_EVENT, self.handle_storage_change)

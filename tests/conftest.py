"""Pytest fixtures for tests."""

from unittest.mock import MagicMock

import pytest
import structlog

from variantly.analytics import Analytics
from variantly.core.config import get_settings
from variantly.core.runtime import Runtime, reset_runtime
from variantly.experiments import Experiment, Experiments, TrackEvent, Variant
from variantly.storage import MemoryStorage

SIGN_UP_EVENT = "sign_up_event"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep settings and the default runtime away from the user's home directory."""
    monkeypatch.setenv("VARIANTLY_STORAGE_PATH", str(tmp_path / "storage.json"))
    get_settings.cache_clear()
    reset_runtime()
    yield
    reset_runtime()
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def runtime() -> Runtime:
    """Runtime whose local storage lives in memory."""
    return Runtime(local_storage=MemoryStorage())


@pytest.fixture
def analytics() -> MagicMock:
    """Real analytics client wrapped in a spy."""
    return MagicMock(wraps=Analytics())


def sign_up_track(event: TrackEvent, experiment: Experiment) -> None:
    if event.type == "track" and event.name == SIGN_UP_EVENT:
        experiment.complete()


def failing_state() -> dict:
    raise RuntimeError("example error on initialState")


def failing_track(event: TrackEvent, experiment: Experiment) -> None:
    raise RuntimeError("example error on track")


def build_experiment_map() -> dict[str, Experiment]:
    return {
        "avatar_sign_up_test": Experiment(
            name="sign_up_vs_send",
            variants=[
                Variant("sign_up", 0.5, "Sign up"),
                Variant("send", 0.5, "Send"),
            ],
            track=sign_up_track,
        ),
        "fail_on_activation": Experiment(
            name="failed_state",
            variants=[Variant("variant", 1, "Variant Value")],
            initial_state=failing_state,
            track=lambda event, experiment: None,
        ),
        "fail_on_track": Experiment(
            name="failed_track",
            variants=[Variant("variant", 1, "Variant Value")],
            track=failing_track,
        ),
    }


@pytest.fixture
def make_experiments(runtime, analytics):
    """Factory building a registry over the standard experiment map."""
    created: list[Experiments] = []

    def factory(storage=None, analytics_client=analytics, experiments=None) -> Experiments:
        registry = Experiments(
            experiments if experiments is not None else build_experiment_map(),
            storage=storage if storage is not None else runtime.local_storage,
            analytics=analytics_client,
            runtime=runtime,
        )
        created.append(registry)
        return registry

    yield factory

    for registry in created:
        registry.detach()

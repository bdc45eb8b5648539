"""Tests for the host runtime."""

from unittest.mock import MagicMock

from variantly.core.runtime import (
    STORAGE_EVENT,
    Runtime,
    configure_runtime,
    get_runtime,
    reset_runtime,
)
from variantly.storage import FileStorage, MemoryStorage


class TestRuntime:
    """Tests for Runtime."""

    def test_default_storages(self, tmp_path):
        runtime = Runtime()

        assert isinstance(runtime.session_storage, MemoryStorage)
        assert isinstance(runtime.local_storage, FileStorage)
        assert runtime.local_storage.path == tmp_path / "storage.json"
        assert runtime.local_storage is runtime.local_storage

    def test_is_browser_storage(self, runtime):
        assert runtime.is_browser_storage(runtime.local_storage)
        assert runtime.is_browser_storage(runtime.session_storage)
        assert not runtime.is_browser_storage(MemoryStorage())

    def test_keeps_empty_custom_storages(self):
        session = MemoryStorage()
        runtime = Runtime(session_storage=session)
        assert runtime.session_storage is session

    def test_storage_writes_are_broadcast(self, runtime):
        listener = MagicMock()
        runtime.add_event_listener(STORAGE_EVENT, listener)

        runtime.local_storage.set_item("key", "value")
        runtime.session_storage.set_item("other", "value")

        assert listener.call_count == 2
        event = listener.call_args_list[0].args[0]
        assert event.key == "key"
        assert event.new_value == "value"
        assert event.storage is runtime.local_storage

    def test_unrelated_storage_is_not_broadcast(self, runtime):
        listener = MagicMock()
        runtime.add_event_listener(STORAGE_EVENT, listener)

        MemoryStorage().set_item("key", "value")

        listener.assert_not_called()

    def test_remove_event_listener(self, runtime):
        listener = MagicMock()
        runtime.add_event_listener(STORAGE_EVENT, listener)
        runtime.remove_event_listener(STORAGE_EVENT, listener)
        runtime.remove_event_listener(STORAGE_EVENT, listener)
        runtime.remove_event_listener("never_registered", listener)

        runtime.dispatch_event(STORAGE_EVENT, None)

        listener.assert_not_called()
        assert runtime.listener_count(STORAGE_EVENT) == 0

    def test_listener_may_detach_during_dispatch(self, runtime):
        calls = []

        def first(*args):
            calls.append("first")
            runtime.remove_event_listener(STORAGE_EVENT, first)

        def second(*args):
            calls.append("second")

        runtime.add_event_listener(STORAGE_EVENT, first)
        runtime.add_event_listener(STORAGE_EVENT, second)

        runtime.dispatch_event(STORAGE_EVENT)
        runtime.dispatch_event(STORAGE_EVENT)

        assert calls == ["first", "second", "second"]


class TestProcessRuntime:
    """Tests for the process-wide runtime helpers."""

    def test_get_runtime_is_cached(self):
        assert get_runtime() is get_runtime()

    def test_configure_runtime(self):
        local = MemoryStorage()
        analytics = MagicMock()

        runtime = configure_runtime(local_storage=local, analytics=analytics)

        assert get_runtime() is runtime
        assert runtime.local_storage is local
        assert runtime.analytics is analytics

    def test_reset_runtime(self):
        first = get_runtime()
        reset_runtime()
        assert get_runtime() is not first

from __future__ import annotations

import threading
import time
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import pytest

from lib_log_audit.adapters import FileSink, MemorySink, RestSink, RichConsoleSink
from lib_log_audit.application.ports import SinkPort
from lib_log_audit.runtime import SinkConfigurationError, SinkFactory, register_backend, registered_backends, unregister_backend

from ..fakes import RecordingSink


@pytest.fixture
def counting_backend() -> Iterator[list[Mapping[str, Any]]]:
    built: list[Mapping[str, Any]] = []

    def builder(options: Mapping[str, Any]) -> SinkPort:
        time.sleep(0.01)
        built.append(options)
        return RecordingSink()

    register_backend("counting", builder, required=("target",))
    try:
        yield built
    finally:
        unregister_backend("counting")


def test_concurrent_first_use_builds_exactly_once(counting_backend: list[Mapping[str, Any]]) -> None:
    factory = SinkFactory("counting", {"target": "x"})
    barrier = threading.Barrier(16)
    results: list[SinkPort] = []
    results_lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        sink = factory.get_or_create()
        with results_lock:
            results.append(sink)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(counting_backend) == 1
    assert len(results) == 16
    assert all(sink is results[0] for sink in results)


def test_missing_required_option_fails_before_building(counting_backend: list[Mapping[str, Any]]) -> None:
    with pytest.raises(SinkConfigurationError, match="counting sink requires option 'target'"):
        SinkFactory("counting", {"target": "  "})
    assert counting_backend == []


@pytest.mark.parametrize(
    "backend, options, missing",
    [
        ("console", {"template": ""}, "template"),
        ("file", {}, "path"),
        ("rest", {"url": None}, "url"),
    ],
)
def test_builtin_backends_validate_eagerly(backend: str, options: dict[str, Any], missing: str) -> None:
    with pytest.raises(SinkConfigurationError, match=repr(missing)):
        SinkFactory(backend, options)


def test_unknown_backend_lists_alternatives() -> None:
    with pytest.raises(SinkConfigurationError, match="unknown sink backend 'kafka'.*console"):
        SinkFactory("kafka")


def test_factory_does_not_build_until_first_use(counting_backend: list[Mapping[str, Any]]) -> None:
    factory = SinkFactory("counting", {"target": "x"})
    assert factory.created is False
    assert counting_backend == []
    factory()
    assert factory.created is True


def test_builder_failure_is_latched() -> None:
    calls: list[int] = []

    def builder(options: Mapping[str, Any]) -> SinkPort:
        calls.append(1)
        raise OSError("permission denied")

    factory = SinkFactory(builder=builder)
    for _ in range(3):
        with pytest.raises(SinkConfigurationError, match="construction failed: permission denied"):
            factory.get_or_create()
    assert calls == [1]
    assert factory.backend == "custom"


def test_builtin_builders_produce_expected_sinks(tmp_path: Path) -> None:
    assert isinstance(SinkFactory("console", {"template": "${event}"}).get_or_create(), RichConsoleSink)
    assert isinstance(SinkFactory("file", {"path": str(tmp_path / "a.jsonl")}).get_or_create(), FileSink)
    assert isinstance(SinkFactory("memory", {"max_records": 3}).get_or_create(), MemorySink)
    rest = SinkFactory("rest", {"url": "https://collector.example", "method": "PUT"}).get_or_create()
    assert isinstance(rest, RestSink)
    assert rest.method == "PUT"
    rest.close()


def test_decorate_wraps_built_sink() -> None:
    wrapped: list[SinkPort] = []

    def decorate(sink: SinkPort) -> SinkPort:
        wrapped.append(sink)
        return MemorySink()

    factory = SinkFactory("memory", decorate=decorate)
    assert isinstance(factory.get_or_create(), MemorySink)
    assert len(wrapped) == 1


def test_sink_created_diagnostic() -> None:
    events: list[tuple[str, dict[str, Any]]] = []
    SinkFactory("memory", diagnostic=lambda name, payload: events.append((name, payload))).get_or_create()
    assert events == [("sink_created", {"backend": "memory", "sink": "MemorySink"})]


def test_close_prevents_rebuilding() -> None:
    closed: list[bool] = []

    class Closing(RecordingSink):
        def close(self) -> None:
            closed.append(True)

    factory = SinkFactory(builder=lambda options: Closing())
    factory.get_or_create()
    factory.close()

    assert closed == [True]
    with pytest.raises(SinkConfigurationError, match="closed"):
        factory.get_or_create()


def test_backend_names_are_case_insensitive() -> None:
    register_backend("  Null ", lambda options: MemorySink(max_records=1))
    try:
        assert "null" in registered_backends()
        assert isinstance(SinkFactory("NULL").get_or_create(), MemorySink)
    finally:
        unregister_backend("null")
    assert "null" not in registered_backends()


def test_blank_backend_name_is_rejected() -> None:
    with pytest.raises(ValueError):
        register_backend(" ", lambda options: MemorySink())

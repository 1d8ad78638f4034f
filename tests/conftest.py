from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from lib_log_audit import runtime
from lib_log_audit.domain import LogRecord
from lib_log_audit.runtime._state import clear_runtime

from .fakes import FIXED_NOW, FixedClock, RecordingSink


@pytest.fixture(autouse=True)
def _reset_runtime() -> Iterator[None]:
    yield
    if runtime.is_initialised():
        try:
            runtime.shutdown()
        finally:
            clear_runtime()


@pytest.fixture(autouse=True)
def _isolate_audit_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    import os

    for name in list(os.environ):
        if name.startswith("AUDIT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_record() -> Callable[..., LogRecord]:
    def factory(**overrides: Any) -> LogRecord:
        values: dict[str, Any] = {"occurred_at": FIXED_NOW, "event": "order.create", "business_type": "ORDER"}
        values.update(overrides)
        return LogRecord(**values)

    return factory


@pytest.fixture
def captured_runtime(recording_sink: RecordingSink, fixed_clock: FixedClock) -> RecordingSink:
    """Initialise the runtime with a recording sink and a fixed clock."""

    runtime.init(sink=recording_sink, clock=fixed_clock)
    return recording_sink

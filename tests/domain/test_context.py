from __future__ import annotations

import asyncio
import threading

from lib_log_audit.domain import CaptureContext, ContextBinder, Principal


def test_binder_is_empty_until_bound() -> None:
    assert ContextBinder().current() is None


def test_nested_bind_inherits_and_overrides() -> None:
    binder = ContextBinder()
    with binder.bind(request="req-1", principal=Principal(id="1"), trace_id="t-1", extra={"tenant": "acme"}):
        with binder.bind(trace_id="t-2", extra={"feature": "checkout"}) as inner:
            assert inner.request == "req-1"
            assert inner.principal == Principal(id="1")
            assert inner.trace_id == "t-2"
            assert inner.extra == {"tenant": "acme", "feature": "checkout"}
        assert binder.current().trace_id == "t-1"
    assert binder.current() is None


def test_none_overrides_keep_parent_values() -> None:
    context = CaptureContext(trace_id="keep")
    assert context.merge(trace_id=None).trace_id == "keep"


def test_clear_removes_frames() -> None:
    binder = ContextBinder()
    with binder.bind(trace_id="x"):
        binder.clear()
        assert binder.current() is None


def test_bound_frames_are_isolated_between_threads() -> None:
    binder = ContextBinder()
    seen: list[object] = []

    def worker() -> None:
        seen.append(binder.current())

    with binder.bind(trace_id="main"):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

    assert seen == [None]


def test_bound_frames_follow_asyncio_tasks() -> None:
    binder = ContextBinder()

    async def handler(trace_id: str) -> str | None:
        with binder.bind(trace_id=trace_id):
            await asyncio.sleep(0)
            current = binder.current()
            return None if current is None else current.trace_id

    async def main() -> list[str | None]:
        return list(await asyncio.gather(handler("a"), handler("b")))

    assert asyncio.run(main()) == ["a", "b"]

from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from lib_log_audit import runtime
from lib_log_audit.adapters import MappingRequestContext
from lib_log_audit.domain import CaptureKind, Metadata, RequestMethod, Status
from lib_log_audit.runtime import guarded_operation

from ..fakes import CHROME_120_WINDOWS, ExplodingSink, FixedClock, RecordingSink


def test_successful_call_records_success_and_returns_result(captured_runtime: RecordingSink) -> None:
    @runtime.audit_log("order.create", business_type="ORDER", description="create order {order_id}")
    def create_order(order_id: int) -> str:
        return f"order-{order_id}"

    assert create_order(7) == "order-7"

    (record,) = captured_runtime.records
    assert record.status is Status.SUCCESS
    assert record.event == "order.create"
    assert record.business_type == "ORDER"
    assert record.description == "create order 7"


def test_failing_call_records_failure_and_reraises(captured_runtime: RecordingSink) -> None:
    @runtime.log("order.cancel")
    def cancel_order(order_id: int) -> None:
        raise LookupError(order_id)

    with pytest.raises(LookupError):
        cancel_order(3)

    assert [record.status for record in captured_runtime.records] == [Status.FAILURE]


def test_description_can_reference_result_and_defaults(captured_runtime: RecordingSink) -> None:
    @runtime.log("report.render", description="{fmt} report with {rows} rows -> {result}")
    def render(rows: int, fmt: str = "csv", **options: Any) -> str:
        return "done"

    render(10)
    assert captured_runtime.records[0].description == "csv report with 10 rows -> done"


def test_bare_decorators_are_supported(captured_runtime: RecordingSink) -> None:
    @runtime.log
    def ping() -> str:
        return "pong"

    assert ping() == "pong"
    assert captured_runtime.records[0].event is None
    assert guarded_operation(ping).metadata == (Metadata(kind=CaptureKind.LOG),)


def test_method_declaration_overrides_class_defaults_field_by_field(captured_runtime: RecordingSink) -> None:
    @runtime.log("order.generic", business_type="ORDER", description="order operation")
    class OrderService:
        @runtime.log("order.ship")
        def ship(self, order_id: int) -> int:
            return order_id

        def refund(self, order_id: int) -> int:
            return order_id

        def _internal(self) -> str:
            return "hidden"

    service = OrderService()
    service.ship(1)
    service.refund(2)
    service._internal()

    ship, refund = captured_runtime.records
    assert (ship.event, ship.business_type, ship.description) == ("order.ship", "ORDER", "order operation")
    assert (refund.event, refund.business_type) == ("order.generic", "ORDER")
    assert guarded_operation(OrderService._internal) is None


def test_log_and_audit_stack_into_two_records(captured_runtime: RecordingSink) -> None:
    @runtime.audit_log("user.delete", business_type="USER")
    @runtime.log("user.delete.requested")
    def delete_user(user_id: int) -> None:
        return None

    guard = guarded_operation(delete_user)
    assert guard is not None
    assert [item.kind for item in guard.metadata] == [CaptureKind.LOG, CaptureKind.AUDIT]
    assert guard.mandatory is True

    delete_user(5)

    assert [record.event for record in captured_runtime.records] == ["user.delete.requested", "user.delete"]


def test_innermost_same_kind_declaration_wins(captured_runtime: RecordingSink) -> None:
    @runtime.log("outer", business_type="OUTER")
    @runtime.log("inner")
    def operation() -> None:
        return None

    operation()
    record = captured_runtime.records[0]
    assert (record.event, record.business_type) == ("inner", "OUTER")


def test_static_and_class_methods_are_guarded(captured_runtime: RecordingSink) -> None:
    class Jobs:
        @runtime.log("jobs.static")
        @staticmethod
        def run_static(value: int) -> int:
            return value

        @runtime.log("jobs.class")
        @classmethod
        def run_class(cls, value: int) -> int:
            return value

    assert Jobs.run_static(1) == 1
    assert Jobs().run_class(2) == 2
    assert [record.event for record in captured_runtime.records] == ["jobs.static", "jobs.class"]


def test_async_operations_are_captured(captured_runtime: RecordingSink) -> None:
    @runtime.audit_log("payment.capture", description="capture {amount}")
    async def capture_payment(amount: int) -> int:
        await asyncio.sleep(0)
        return amount

    @runtime.audit_log("payment.refund")
    async def refund_payment() -> None:
        raise ValueError("declined")

    async def main() -> None:
        assert await capture_payment(12) == 12
        with pytest.raises(ValueError):
            await refund_payment()

    asyncio.run(main())

    assert [(record.event, record.status) for record in captured_runtime.records] == [
        ("payment.capture", Status.SUCCESS),
        ("payment.refund", Status.FAILURE),
    ]
    assert captured_runtime.records[0].description == "capture 12"


def test_bound_request_reaches_the_record(captured_runtime: RecordingSink) -> None:
    @runtime.audit_log("order.create", business_type="ORDER")
    def create_order() -> None:
        return None

    request = MappingRequestContext(
        url="https://shop.example/orders",
        method="POST",
        headers={"User-Agent": CHROME_120_WINDOWS, "X-Forwarded-For": "8.8.8.8"},
        remote_addr="10.0.0.1",
    )
    with runtime.bind(request=request, trace_id="t-77", tenant="acme"):
        create_order()

    record = captured_runtime.records[0]
    assert record.request_method is RequestMethod.POST
    assert record.client_ip == "8.8.8.8"
    assert record.trace_id == "t-77"
    assert record.extra["tenant"] == "acme"
    assert record.browser is not None and record.browser.name == "Chrome"


def test_uninitialised_runtime_never_breaks_the_call(caplog: pytest.LogCaptureFixture) -> None:
    @runtime.audit_log("order.create")
    def create_order() -> str:
        return "created"

    with caplog.at_level(logging.ERROR):
        assert create_order() == "created"
    assert "Audit capture for" in caplog.text


def test_exploding_sink_never_breaks_the_call(fixed_clock: FixedClock, caplog: pytest.LogCaptureFixture) -> None:
    events: list[tuple[str, dict[str, Any]]] = []
    sink = ExplodingSink()
    runtime.init(sink=sink, clock=fixed_clock, diagnostic_hook=lambda name, payload: events.append((name, payload)))

    @runtime.audit_log("order.create")
    def create_order() -> str:
        return "created"

    with caplog.at_level(logging.ERROR):
        assert create_order() == "created"

    assert sink.calls == 1
    assert ("capture_failed", {"event": "order.create", "kind": "audit", "error": "sink down"}) in events


def test_failed_sink_status_does_not_change_business_outcome(fixed_clock: FixedClock) -> None:
    runtime.init(sink=RecordingSink(Status.FAILURE), clock=fixed_clock)

    @runtime.log("order.view")
    def view() -> str:
        return "page"

    assert view() == "page"


def test_declaring_on_non_callable_is_rejected() -> None:
    with pytest.raises(TypeError):
        runtime.log("x")(42)


def test_wrapper_preserves_metadata() -> None:
    @runtime.log("doc.event")
    def documented(a: int) -> int:
        """Return ``a``."""
        return a

    assert documented.__name__ == "documented"
    assert documented.__doc__ == "Return ``a``."

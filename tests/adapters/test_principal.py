from __future__ import annotations

import logging

import pytest

from lib_log_audit.adapters.principal import (
    AnonymousPrincipalResolver,
    CallablePrincipalResolver,
    ContextPrincipalResolver,
)
from lib_log_audit.domain import ContextBinder, Principal


def test_anonymous_resolver_returns_none() -> None:
    assert AnonymousPrincipalResolver().resolve() is None


def test_context_resolver_reads_bound_principal() -> None:
    binder = ContextBinder()
    resolver = ContextPrincipalResolver(binder)
    with binder.bind(principal=Principal(id="1", user_name="ada")):
        assert resolver.resolve() == Principal(id="1", user_name="ada")
    assert resolver.resolve() is None


def test_callable_resolver_accepts_principal_instances() -> None:
    principal = Principal(id="9")
    assert CallablePrincipalResolver(lambda: principal).resolve() is principal


def test_callable_resolver_maps_dictionaries() -> None:
    resolver = CallablePrincipalResolver(lambda: {"id": 42, "username": "ada", "real_name": "Ada Lovelace"})
    assert resolver.resolve() == Principal(id="42", user_name="ada", real_name="Ada Lovelace")


def test_callable_resolver_absorbs_errors(caplog: pytest.LogCaptureFixture) -> None:
    def broken() -> Principal:
        raise KeyError("session")

    with caplog.at_level(logging.WARNING):
        assert CallablePrincipalResolver(broken).resolve() is None
    assert "Principal source raised" in caplog.text


def test_callable_resolver_rejects_unsupported_values() -> None:
    assert CallablePrincipalResolver(lambda: 42).resolve() is None  # type: ignore[arg-type, return-value]

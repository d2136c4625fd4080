"""Tests for blocklistener.config_check."""

import logging

import pytest

from blocklistener.config_check import is_configured
from blocklistener.settings import get_default_settings


def _settings(**store: object) -> dict:
    s = get_default_settings()
    s["listener"]["instance_name"] = "test-sale"
    s["listener"]["environment"] = "test"
    s["graph_url"] = "https://graph.example/subgraphs/name/sale"
    s["store"].update({"user": "listener", "database": "events"})
    s["store"].update(store)
    return s


def _no_secret(name: str) -> str | None:
    return None


def _has_secret(name: str) -> str | None:
    return "pw" if name == "DBPASSWORD" else None


def test_postgres_ok_with_password() -> None:
    assert is_configured(_settings(), secret_getter=_has_secret) == (True, "ok")


def test_postgres_empty_password_is_accepted(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="blocklistener.config_check"):
        assert is_configured(_settings(), secret_getter=_no_secret) == (True, "ok")
    assert "DBPASSWORD" in caplog.text


def test_postgres_blank_password_is_accepted() -> None:
    assert is_configured(_settings(), secret_getter=lambda name: "") == (True, "ok")


def test_missing_instance_name() -> None:
    s = _settings()
    s["listener"]["instance_name"] = ""
    ok, reason = is_configured(s, secret_getter=_has_secret)
    assert ok is False
    assert "instance_name" in reason


def test_missing_graph_url() -> None:
    s = _settings()
    s["graph_url"] = ""
    ok, reason = is_configured(s, secret_getter=_has_secret)
    assert ok is False
    assert "graph_url" in reason


def test_bad_port() -> None:
    ok, reason = is_configured(_settings(port="abc"), secret_getter=_has_secret)
    assert ok is False
    assert "port" in reason


def test_unknown_backend() -> None:
    ok, reason = is_configured(_settings(backend="mysql"), secret_getter=_has_secret)
    assert ok is False
    assert "mysql" in reason


def test_sqlite_needs_no_password() -> None:
    assert is_configured(_settings(backend="sqlite"), secret_getter=_no_secret) == (True, "ok")

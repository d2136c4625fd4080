"""Tests for blocklistener.settings: defaults, YAML merge, env overrides."""

from pathlib import Path

import pytest
import yaml

from blocklistener import settings as settings_mod
from blocklistener.settings import apply_env_overrides, get_default_settings, get_setting, load_settings


@pytest.fixture(autouse=True)
def _clear_cache():
    settings_mod.reload_settings()
    yield
    settings_mod.reload_settings()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("API_URL", "GRAPH_URL", "INSTANCE_NAME", "ENVIRONMENT", "LISTENER_PLUGIN",
                "STORE_BACKEND", "DBHOST", "DBPORT", "DBUSER", "DBNAME"):
        monkeypatch.delenv(var, raising=False)


def test_defaults_when_no_file(tmp_path: Path, clean_env: None) -> None:
    s = load_settings(tmp_path)
    assert get_setting(s, "engine.poll_interval") == 10.0
    assert get_setting(s, "engine.retry_interval") == 75.0
    assert get_setting(s, "store.backend") == "postgres"


def test_yaml_merges_over_defaults(tmp_path: Path, clean_env: None) -> None:
    (tmp_path / "settings.yaml").write_text(
        yaml.safe_dump({"store": {"host": "db.internal"}, "listener": {"instance_name": "sale"}})
    )
    s = load_settings(tmp_path)
    assert get_setting(s, "store.host") == "db.internal"
    assert get_setting(s, "store.port") == 5432
    assert get_setting(s, "listener.instance_name") == "sale"


def test_env_overrides_yaml(tmp_path: Path, clean_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "settings.yaml").write_text(yaml.safe_dump({"store": {"host": "from-yaml"}}))
    monkeypatch.setenv("DBHOST", "from-env")
    monkeypatch.setenv("INSTANCE_NAME", "sale")
    s = load_settings(tmp_path)
    assert get_setting(s, "store.host") == "from-env"
    assert get_setting(s, "listener.instance_name") == "sale"


def test_invalid_yaml_falls_back_to_defaults(tmp_path: Path, clean_env: None) -> None:
    (tmp_path / "settings.yaml").write_text("store: [unclosed")
    s = load_settings(tmp_path)
    assert get_setting(s, "store.host") == "localhost"


def test_load_settings_is_cached(tmp_path: Path, clean_env: None) -> None:
    first = load_settings(tmp_path)
    (tmp_path / "settings.yaml").write_text(yaml.safe_dump({"api_url": "changed"}))
    assert load_settings(tmp_path) is first
    settings_mod.reload_settings()
    assert get_setting(load_settings(tmp_path), "api_url") == "changed"


def test_apply_env_overrides_ignores_empty_values() -> None:
    s = get_default_settings()
    apply_env_overrides(s, {"GRAPH_URL": "", "ENVIRONMENT": "prod"})
    assert get_setting(s, "graph_url") == ""
    assert get_setting(s, "listener.environment") == "prod"


def test_get_setting_missing_path_returns_default() -> None:
    assert get_setting({"a": {"b": 1}}, "a.c.d", default="x") == "x"


def test_default_settings_are_independent_copies() -> None:
    s = get_default_settings()
    s["store"]["host"] = "mutated"
    assert get_default_settings()["store"]["host"] == "localhost"

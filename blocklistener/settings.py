"""Load listener settings from config/settings.yaml, then apply environment overrides."""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml

_DEFAULTS: dict[str, Any] = {
    "listener": {
        "instance_name": "",
        "environment": "development",
        # Folder under sandbox/listeners/ holding main.py with create_listener(context)
        "plugin": "sale_listener",
        "config": {},
    },
    "api_url": "",
    "graph_url": "",
    "store": {
        "backend": "postgres",
        "sqlite_path": "sandbox/data/events.db",
        "host": "localhost",
        "port": 5432,
        "user": "",
        "database": "",
        # Secret name resolved via keyring / env, never stored in YAML
        "password_secret": "DBPASSWORD",
        "min_pool_size": 1,
        "max_pool_size": 4,
    },
    "engine": {
        "poll_interval": 10.0,
        "retry_interval": 75.0,
        "restart_delay": 5.0,
        "poll_heartbeat_cycles": 2160,
        "retry_heartbeat_cycles": 500,
    },
    "sentry": {
        "dsn_secret": "SENTRY_DSN",
    },
    "logging": {
        "file": "sandbox/logs/listener.log",
        "level": "INFO",
        "log_to_console": True,
        "max_bytes": 10485760,  # 10 MB
        "backup_count": 3,
        "library_level": "WARNING",
    },
}

# Environment variable -> dot path. Applied after settings.yaml.
_ENV_OVERRIDES: dict[str, str] = {
    "API_URL": "api_url",
    "GRAPH_URL": "graph_url",
    "INSTANCE_NAME": "listener.instance_name",
    "ENVIRONMENT": "listener.environment",
    "LISTENER_PLUGIN": "listener.plugin",
    "STORE_BACKEND": "store.backend",
    "DBHOST": "store.host",
    "DBPORT": "store.port",
    "DBUSER": "store.user",
    "DBNAME": "store.database",
}

_cached: dict[str, Any] | None = None


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base recursively. Mutates base."""
    for key, value in overlay.items():
        if value is None:
            continue
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _set_path(settings: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = settings
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def apply_env_overrides(
    settings: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Overlay recognised environment variables. Mutates and returns settings."""
    env = os.environ if environ is None else environ
    for var, path in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            _set_path(settings, path, value)
    return settings


def get_default_settings() -> dict[str, Any]:
    """Return a deep copy of default settings."""
    return _deep_copy_nested(_DEFAULTS)


def get_setting(settings: dict[str, Any], path: str, default: Any = None) -> Any:
    """Get a nested value by dot path (e.g. 'store.host')."""
    current: Any = settings
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def reload_settings() -> None:
    """Clear the settings cache."""
    global _cached
    _cached = None


def load_settings(config_dir: Path | None = None) -> dict[str, Any]:
    """Load settings: defaults <- config/settings.yaml <- environment. Cached."""
    global _cached
    if _cached is not None:
        return _cached

    if config_dir is None:
        config_dir = Path(__file__).resolve().parent.parent / "config"
    path = config_dir / "settings.yaml"

    result = get_default_settings()

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                _deep_merge(result, data)
        except (yaml.YAMLError, OSError):
            pass

    apply_env_overrides(result)
    _cached = result
    return result


def _deep_copy_nested(obj: Any) -> Any:
    """Return a deep copy of nested dicts/lists for defaults."""
    if isinstance(obj, dict):
        return {k: _deep_copy_nested(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_deep_copy_nested(x) for x in obj]
    return obj

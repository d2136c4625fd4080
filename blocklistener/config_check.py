"""Startup config validation: is there enough configuration to run a listener?"""

import logging
from typing import Any, Callable

from blocklistener import secrets
from blocklistener.settings import get_setting

logger = logging.getLogger(__name__)

_BACKENDS = ("postgres", "sqlite")


def _check_store(
    settings: dict[str, Any], secret_getter: Callable[[str], str | None]
) -> tuple[bool, str]:
    backend = get_setting(settings, "store.backend", "postgres")
    if backend not in _BACKENDS:
        return False, f"Unknown store.backend {backend!r} (expected one of {', '.join(_BACKENDS)})"
    if backend == "sqlite":
        if not get_setting(settings, "store.sqlite_path"):
            return False, "store.sqlite_path not set"
        return True, "ok"
    for key in ("host", "port", "user", "database"):
        if not get_setting(settings, f"store.{key}"):
            return False, f"store.{key} not set"
    try:
        int(get_setting(settings, "store.port"))
    except (TypeError, ValueError):
        return False, "store.port must be an integer"
    secret_name = get_setting(settings, "store.password_secret", "DBPASSWORD")
    if not secret_getter(secret_name):
        # trust or peer auth needs no password
        logger.warning("Store password secret %r is empty; connecting without a password", secret_name)
    return True, "ok"


def is_configured(
    settings: dict[str, Any],
    secret_getter: Callable[[str], str | None] = secrets.get_secret,
) -> tuple[bool, str]:
    """Check whether settings are sufficient to start a listener. Returns (ok, reason)."""
    if not get_setting(settings, "listener.instance_name"):
        return False, "listener.instance_name not set (INSTANCE_NAME)"
    if not get_setting(settings, "listener.environment"):
        return False, "listener.environment not set (ENVIRONMENT)"
    if not get_setting(settings, "listener.plugin"):
        return False, "listener.plugin not set"
    if not get_setting(settings, "graph_url"):
        return False, "graph_url not set (GRAPH_URL)"
    return _check_store(settings, secret_getter)

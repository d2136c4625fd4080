"""Entry point for the listener process: settings -> logging -> store, reporter, plugin -> engine."""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from blocklistener import secrets
from blocklistener.config_check import is_configured
from blocklistener.contract import ListenerContext
from blocklistener.engine import ListenerEngine
from blocklistener.errors import ConfigurationError
from blocklistener.events import (
    DbConfig,
    EventStore,
    ListenerIdentity,
    PostgresEventStore,
    SqliteEventStore,
)
from blocklistener.graph import GraphQLClient
from blocklistener.loader import load_listener
from blocklistener.logging_config import setup_logging
from blocklistener.reporting import ErrorReporter, create_error_reporter
from blocklistener.settings import get_setting, load_settings

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


def build_identity(settings: dict) -> ListenerIdentity:
    return ListenerIdentity(
        instance_name=get_setting(settings, "listener.instance_name"),
        environment=get_setting(settings, "listener.environment"),
    )


def build_store(settings: dict, project_root: Path = _PROJECT_ROOT) -> EventStore:
    store_cfg = settings.get("store", {})
    if store_cfg.get("backend", "postgres") == "sqlite":
        sqlite_path = store_cfg.get("sqlite_path", "sandbox/data/events.db")
        return SqliteEventStore(project_root / sqlite_path)
    password = secrets.get_secret(store_cfg.get("password_secret", "DBPASSWORD")) or ""
    db_config = DbConfig(
        host=store_cfg.get("host", "localhost"),
        port=int(store_cfg.get("port", 5432)),
        user=store_cfg.get("user", ""),
        password=password,
        database=store_cfg.get("database", ""),
    )
    return PostgresEventStore(
        db_config,
        min_pool_size=int(store_cfg.get("min_pool_size", 1)),
        max_pool_size=int(store_cfg.get("max_pool_size", 4)),
    )


def build_reporter(settings: dict) -> ErrorReporter:
    dsn = secrets.get_secret(get_setting(settings, "sentry.dsn_secret", "SENTRY_DSN"))
    return create_error_reporter(dsn, environment=get_setting(settings, "listener.environment"))


def build_engine(
    settings: dict[str, Any],
    project_root: Path = _PROJECT_ROOT,
    store: EventStore | None = None,
    reporter: ErrorReporter | None = None,
) -> ListenerEngine:
    """Validate settings, load the listener plugin and assemble the engine."""
    ok, reason = is_configured(settings)
    if not ok:
        raise ConfigurationError(reason)
    identity = build_identity(settings)
    context = ListenerContext(
        api_url=get_setting(settings, "api_url", ""),
        graph=GraphQLClient(get_setting(settings, "graph_url")),
        identity=identity,
        config=get_setting(settings, "listener.config", {}) or {},
        logger=logging.getLogger(f"blocklistener.listener.{identity.instance_name}"),
    )
    plugin = get_setting(settings, "listener.plugin")
    listener = load_listener(project_root / "sandbox" / "listeners", plugin, context)
    eng_cfg = settings.get("engine", {})
    return ListenerEngine(
        listener,
        store or build_store(settings, project_root),
        identity,
        reporter or build_reporter(settings),
        poll_interval=float(eng_cfg.get("poll_interval", 10.0)),
        retry_interval=float(eng_cfg.get("retry_interval", 75.0)),
        restart_delay=float(eng_cfg.get("restart_delay", 5.0)),
        poll_heartbeat_cycles=int(eng_cfg.get("poll_heartbeat_cycles", 2160)),
        retry_heartbeat_cycles=int(eng_cfg.get("retry_heartbeat_cycles", 500)),
    )


def _install_signal_handlers(task: "asyncio.Task[None]") -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except (NotImplementedError, RuntimeError):
            pass  # Windows: KeyboardInterrupt handles SIGINT


async def main_async() -> None:
    """Bootstrap: settings -> logging -> engine -> run until signalled."""
    settings = load_settings()
    setup_logging(_PROJECT_ROOT, settings)
    engine = build_engine(settings)
    task = asyncio.create_task(engine.run_forever())
    _install_signal_handlers(task)
    try:
        await task
    except asyncio.CancelledError:
        logger.info("%s: shutdown requested", engine.identity.app_id)


def main() -> None:
    """Synchronous entry for the listener process."""
    load_dotenv(_PROJECT_ROOT / ".env")
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        pass  # already handled in main_async via CancelledError; exit cleanly


__all__ = ["build_engine", "main"]

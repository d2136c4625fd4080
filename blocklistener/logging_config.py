"""Root logger setup for the listener process."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# httpx logs one INFO line per request; a poll every 10s would flood the log
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncpg", "aiosqlite")


def _level(name: Any, default: int = logging.INFO) -> int:
    return getattr(logging, str(name).upper(), default)


def _rotating_file(log_path: Path, cfg: dict[str, Any]) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=int(cfg.get("max_bytes", 10 * 1024 * 1024)),
        backupCount=int(cfg.get("backup_count", 3)),
        encoding="utf-8",
    )


def setup_logging(project_root: Path, settings: dict[str, Any]) -> list[logging.Handler]:
    """Replace root handlers according to settings["logging"] and return the new ones.

    Keys: level, file (relative to project_root; empty disables the file),
    max_bytes, backup_count, log_to_console (stdout), library_level.
    """
    cfg = settings.get("logging", {})
    level = _level(cfg.get("level", "INFO"))
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = []
    log_file = cfg.get("file", "sandbox/logs/listener.log")
    if log_file:
        handlers.append(_rotating_file(project_root / log_file, cfg))
    if cfg.get("log_to_console", True) or not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))

    root = logging.getLogger()
    for h in root.handlers[:]:
        root.removeHandler(h)
    root.setLevel(level)
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(formatter)
        root.addHandler(h)

    library_level = _level(cfg.get("library_level", "WARNING"), logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, library_level))
    return handlers

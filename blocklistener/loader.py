"""Load a listener plugin: sandbox/listeners/<name>/main.py exposing create_listener(context)."""

import importlib.util
import logging
import sys
from pathlib import Path

from blocklistener.contract import Listener, ListenerContext

logger = logging.getLogger(__name__)

ENTRYPOINT = "create_listener"


def load_listener(listeners_dir: Path, name: str, context: ListenerContext) -> Listener:
    """Import the plugin module from file and build its listener."""
    py_path = listeners_dir / name / "main.py"
    if not py_path.exists():
        raise FileNotFoundError(f"{py_path} not found")
    spec = importlib.util.spec_from_file_location(f"listener_{name}_main", py_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load {py_path}")
    mod = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = mod
    spec.loader.exec_module(mod)
    factory = getattr(mod, ENTRYPOINT, None)
    if factory is None:
        raise ImportError(f"{py_path} does not define {ENTRYPOINT}(context)")
    listener = factory(context)
    if not isinstance(listener, Listener):
        raise TypeError(f"{name}.{ENTRYPOINT} returned {type(listener).__name__}, not a Listener")
    logger.info("Loaded listener plugin %s", name)
    return listener

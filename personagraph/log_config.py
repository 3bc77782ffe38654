"""Loguru setup for PersonaGraph.

PERSONAGRAPH_LOG_LEVEL sets the stderr level (default INFO).
PERSONAGRAPH_LOG_MERGE and PERSONAGRAPH_LOG_STORAGE override it for the
merge/batch components and the storage backends. Files go to
PERSONAGRAPH_LOG_DIR (default ~/.personagraph/logs), DEBUG and up.
"""

import os
import sys
from contextlib import contextmanager
from pathlib import Path
from time import perf_counter

from loguru import logger

_LEVEL = os.getenv("PERSONAGRAPH_LOG_LEVEL", "INFO").upper()

# Substring of the bound component name -> level override
_OVERRIDES = {
    "merge": os.getenv("PERSONAGRAPH_LOG_MERGE", "").upper(),
    "batch": os.getenv("PERSONAGRAPH_LOG_MERGE", "").upper(),
    "db.": os.getenv("PERSONAGRAPH_LOG_STORAGE", "").upper(),
}


def _level_no(level: str) -> int | None:
    try:
        return logger.level(level).no
    except ValueError:
        return None


def _stderr_filter(record) -> bool:
    component = record["extra"].get("name", "")
    threshold = None
    for fragment, level in _OVERRIDES.items():
        if level and fragment in component:
            threshold = _level_no(level)
            if threshold is not None:
                break
    if threshold is None:
        threshold = _level_no(_LEVEL)
    return threshold is None or record["level"].no >= threshold


logger.remove()

_log_dir = Path(os.getenv("PERSONAGRAPH_LOG_DIR", str(Path.home() / ".personagraph" / "logs")))
_log_dir.mkdir(parents=True, exist_ok=True)

logger.add(
    sys.stderr,
    level=0,
    filter=_stderr_filter,
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan> - <level>{message}</level>",
    colorize=True,
)
logger.add(
    _log_dir / "personagraph_{time:YYYY-MM-DD}.log",
    level="DEBUG",
    format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} | {message}",
    rotation="10 MB",
    retention="7 days",
    compression="zip",
    enqueue=True,
)
logger.configure(extra={"name": "personagraph"})


def get_logger(name: str):
    """Logger bound to a component name, e.g. ``get_logger("db.falkor")``."""
    return logger.bind(name=name)


@contextmanager
def log_timing(operation: str, log_instance=None, level: str = "debug"):
    """Log how long the block took, in milliseconds.

    Yields a dict whose ``elapsed_ms`` is filled in on exit.
    """
    timing = {"elapsed_ms": 0.0}
    start = perf_counter()
    try:
        yield timing
    finally:
        timing["elapsed_ms"] = (perf_counter() - start) * 1000
        getattr(log_instance or logger, level)(f"{operation}: {timing['elapsed_ms']:.1f}ms")


__all__ = ["logger", "get_logger", "log_timing"]

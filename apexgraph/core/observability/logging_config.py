"""
Logging configuration for the CLI and the build pass.

Two entry points:

    setup_logging():        once, from main.py, before any graph is loaded.
                             Level: CLI flag > APEXGRAPH_LOG_LEVEL > WARNING,
                             plus optional APEXGRAPH_LOG_FILE(_LEVEL).
    apply_logger_levels():  from run_pass, once graph.yml is loaded, so a
                             graph can turn up a single part of the pass:

        config:
          log_levels:
            core.engine.executor: DEBUG   # phase timings, pool activity
            adapters.memory: INFO

Names in ``log_levels`` are relative to the ``apexgraph`` package logger
unless they already start with it.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

PACKAGE_LOGGER = "apexgraph"

# Console format per threshold. Phases run on named pools
# (apexgraph-collect_0, apexgraph-mutate_1, ...), so the debug tier
# shows the thread.
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (
        logging.DEBUG,
        "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d — %(message)s",
        "%H:%M:%S",
    ),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_FMT_WARNING = "%(message)s"

_FMT_FILE = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# The worker pools log thread start/stop chatter at DEBUG.
_POOL_LOGGERS = ("concurrent.futures",)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the console (and optional file) handler on the root logger.

    Args:
        level: Console level name.
        log_file: Optional path to a log file.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Keep the pool loggers at WARNING unless the
            console itself is at DEBUG.
    """
    console_level = parse_level(level)
    fmt, datefmt = _console_format(console_level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else console_level
        root_level = min(root_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _POOL_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def apply_logger_levels(levels: Mapping[str, str]) -> dict[str, int]:
    """Set per-logger levels from a graph's ``config.log_levels``.

    A logger set below the root level also lowers the handlers that
    would otherwise drop its records, so ``engine.executor: DEBUG``
    shows up on a WARNING console.

    Returns:
        Full logger name → numeric level actually applied. Entries with
        an unknown level name are skipped.
    """
    applied: dict[str, int] = {}
    for name, level in levels.items():
        if not is_valid_level(level):
            logging.getLogger(__name__).warning("log_levels: unknown level %r for %s", level, name)
            continue
        full = logger_name(name)
        numeric = parse_level(level)
        logging.getLogger(full).setLevel(numeric)
        applied[full] = numeric

    if applied:
        lowest = min(applied.values())
        for handler in logging.getLogger().handlers:
            if handler.level > lowest:
                handler.setLevel(lowest)
    return applied


def logger_name(name: str) -> str:
    """Full logger name for a ``log_levels`` key."""
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return name
    return f"{PACKAGE_LOGGER}.{name}"


def is_valid_level(level: str | None) -> bool:
    return bool(level) and isinstance(logging.getLevelName(level.upper()), int)


def parse_level(level: str | None) -> int:
    """Level name → numeric constant; unknown or empty means WARNING."""
    if not is_valid_level(level):
        return logging.WARNING
    return logging.getLevelName(level.upper())


def _console_format(level: int) -> tuple[str, str | None]:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return fmt, datefmt
    return _FMT_WARNING, None

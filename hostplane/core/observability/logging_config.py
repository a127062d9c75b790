"""
Logging configuration — console, optional full log, and the audit trail
of everything run as root.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Console level:
    --debug / --verbose / --quiet  >  HOSTPLANE_LOG_LEVEL  >  WARNING

Files (optional, from the environment):
    HOSTPLANE_LOG_FILE        full log at HOSTPLANE_LOG_FILE_LEVEL
                              (default: the console level)
    HOSTPLANE_AUDIT_LOG       privileged command lines and their results
                              at INFO, whatever the console level

``elevated_exec`` logs each privileged argv at INFO and its output at
DEBUG, so the audit file records what ran as root and how it ended
without capturing command output.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Mapping

ENV_LEVEL = "HOSTPLANE_LOG_LEVEL"
ENV_FILE = "HOSTPLANE_LOG_FILE"
ENV_FILE_LEVEL = "HOSTPLANE_LOG_FILE_LEVEL"
ENV_AUDIT = "HOSTPLANE_AUDIT_LOG"

AUDIT_LOGGER = "hostplane.core.services.elevated_exec"

# console format per level band: (format, datefmt)
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: (
        "%(asctime)s %(levelname)-5s %(threadName)s %(short_name)s:%(lineno)d  %(message)s",
        "%H:%M:%S",
    ),
    logging.INFO: ("%(asctime)s [%(short_name)s] %(message)s", "%H:%M:%S"),
    logging.WARNING: ("%(message)s", None),
}

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(threadName)s %(name)s:%(lineno)d  %(message)s"
_AUDIT_FORMAT = "%(asctime)s pid=%(process)d %(levelname)s %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Worker-pool internals stay at WARNING unless the console is at DEBUG
_NOISY_LOGGERS = ("concurrent.futures",)


class _ShortNameFormatter(logging.Formatter):
    """Exposes ``short_name``: the logger name without the package prefix."""

    def format(self, record: logging.LogRecord) -> str:
        record.short_name = record.name.removeprefix("hostplane.")
        return super().format(record)


def _parse_level(value: str | None, default: int = logging.WARNING) -> int:
    """Level name (``debug``) or number (``10``) → numeric level."""
    if not value:
        return default
    value = value.strip()
    if value.isdigit():
        return int(value)
    numeric = logging.getLevelName(value.upper())
    return numeric if isinstance(numeric, int) else default


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Console level from CLI flags, then the environment."""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    if quiet:
        return logging.ERROR
    env = os.environ if environ is None else environ
    return _parse_level(env.get(ENV_LEVEL))


def _console_handler(level: int) -> logging.Handler:
    band = max(b for b in _CONSOLE_FORMATS if b <= max(level, logging.DEBUG))
    fmt, datefmt = _CONSOLE_FORMATS[band]
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_ShortNameFormatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int, fmt: str) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_FILE_DATEFMT))
    return handler


def _replace_handlers(logger: logging.Logger, *handlers: logging.Handler) -> None:
    for old in list(logger.handlers):
        logger.removeHandler(old)
        if isinstance(old, logging.FileHandler):
            old.close()
    for handler in handlers:
        logger.addHandler(handler)


def setup_logging(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Configure logging for the whole process.  Safe to call again.

    Args:
        debug / verbose / quiet: CLI flags, highest precedence first.
        environ: Environment to read ``HOSTPLANE_*`` from (default: os.environ).

    Returns:
        The console level in effect.
    """
    env = os.environ if environ is None else environ
    level = resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=env)

    root = logging.getLogger()
    handlers = [_console_handler(level)]
    effective = level

    log_file = env.get(ENV_FILE)
    if log_file:
        file_level = _parse_level(env.get(ENV_FILE_LEVEL), default=level)
        handlers.append(_file_handler(log_file, file_level, _FILE_FORMAT))
        effective = min(effective, file_level)

    _replace_handlers(root, *handlers)
    root.setLevel(effective)

    audit = logging.getLogger(AUDIT_LOGGER)
    audit_file = env.get(ENV_AUDIT)
    if audit_file:
        _replace_handlers(audit, _file_handler(audit_file, logging.INFO, _AUDIT_FORMAT))
        audit.setLevel(min(effective, logging.INFO))
    else:
        _replace_handlers(audit)
        audit.setLevel(logging.NOTSET)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if level <= logging.DEBUG else logging.WARNING)

    logging.raiseExceptions = False
    return level

"""
Logging configuration — one setup call for the whole process.

Called once by the CLI root group.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    --debug  >  --verbose  >  --quiet  >  DYST_LOG_LEVEL  >  WARNING

Console output goes to stderr so that ``dyst list --json`` stays
parseable.  Optional file output via DYST_LOG_FILE / DYST_LOG_FILE_LEVEL;
the file's directory is created on demand.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from dyst.core.errors import ConfigError

# ── Format strings ──────────────────────────────────────────────

# WARNING and above: the message is all the user needs
_FMT_MINIMAL = "%(message)s"

# INFO: timestamped with module context
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG, and every file record: level and file:line
_FMT_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to WARNING with a warning.
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.

    Raises:
        ConfigError: The log file cannot be created.
    """
    numeric_level, unknown = _resolve(level)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DETAILED, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    if log_file:
        file_level, file_unknown = _resolve(log_file_level) if log_file_level else (numeric_level, [])
        unknown += file_unknown
        effective_level = min(effective_level, file_level)

        path = Path(log_file).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot open log file {path}: {e}") from e
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DETAILED, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)
    logging.raiseExceptions = False

    for name in unknown:
        logging.getLogger(__name__).warning("Unknown log level '%s'; using WARNING", name)


def _resolve(level: str | None) -> tuple[int, list[str]]:
    """``(numeric level, [name])`` where the list holds an unrecognized name."""
    if level and not isinstance(getattr(logging, level.upper(), None), int):
        return logging.WARNING, [level]
    return _parse_level(level), []


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric

"""
Logging configuration — one setup call per process.

The CLI resolves the level and calls ``setup_logging`` once. Every
module then just does ``logger = logging.getLogger(__name__)``.

Level precedence:
    --debug / --verbose / --quiet  >  APPCONSOLE_LOG_LEVEL  >  WARNING

A log file can be added with APPCONSOLE_LOG_FILE, at its own level via
APPCONSOLE_LOG_FILE_LEVEL. PowerShell output is logged under the
``appconsole.powershell`` logger and is only shown at DEBUG.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "APPCONSOLE_LOG_LEVEL"
ENV_FILE = "APPCONSOLE_LOG_FILE"
ENV_FILE_LEVEL = "APPCONSOLE_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_FMT_PLAIN = "%(message)s"

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

POWERSHELL_LOGGER = "appconsole.powershell"


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_powershell: bool = True,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console log level name.
        log_file: Optional path to a log file.
        log_file_level: Level for the file handler (defaults to ``level``).
        quiet_powershell: Keep raw PowerShell output at WARNING unless
            the console runs at DEBUG.
    """
    console_level = _parse_level(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(console_level))
    effective = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        effective = min(effective, file_level)

    root.setLevel(effective)

    ps_logger = logging.getLogger(POWERSHELL_LOGGER)
    if quiet_powershell and console_level > logging.DEBUG:
        ps_logger.setLevel(logging.WARNING)
    else:
        ps_logger.setLevel(logging.NOTSET)

    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _FMT_PLAIN, None
    for threshold in sorted(_FORMATS):
        if level <= threshold:
            fmt, datefmt = _FORMATS[threshold]
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric

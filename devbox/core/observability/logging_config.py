"""
Console and file logging for the devbox command.

``main.py`` calls :func:`setup_logging` once, before any step runs; every
module then logs through ``logging.getLogger(__name__)``.

The console level comes from the ``--debug/--verbose/--quiet`` flags, else
``DEVBOX_LOG_LEVEL``, else INFO.  ``DEVBOX_LOG_FILE`` adds a plain-text
file that keeps full detail regardless of the console level.

Console lines carry a ``[INFO]``/``[WARN]``/``[ERROR]`` tag, colored when
stderr is a terminal, so a long provisioning run can be scanned by eye.
"""

from __future__ import annotations

import logging
import sys

import click

# ── Formats ─────────────────────────────────────────────────────

# (format, datefmt) per console level; the first entry whose threshold
# is >= the configured level wins.
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(levelname)s %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(levelname)s %(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Held at WARNING unless the console is at DEBUG
_NOISY_LOGGERS = ("urllib3", "charset_normalizer")

_TAGS = {logging.WARNING: "WARN"}

_TAG_STYLES: dict[int, dict] = {
    logging.DEBUG: {"fg": "cyan"},
    logging.INFO: {"fg": "green"},
    logging.WARNING: {"fg": "yellow"},
    logging.ERROR: {"fg": "red"},
    logging.CRITICAL: {"fg": "red", "bold": True},
}


class ColorFormatter(logging.Formatter):
    """Replace ``%(levelname)s`` with a bracketed, optionally colored tag."""

    def __init__(self, fmt: str, datefmt: str | None = None, color: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.color = color

    def _tag(self, record: logging.LogRecord) -> str:
        tag = "[%s]" % _TAGS.get(record.levelno, record.levelname)
        if not self.color:
            return tag
        return click.style(tag, **_TAG_STYLES.get(record.levelno, {}))

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        record.levelname = self._tag(record)
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    color: bool | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the console handler, plus a file handler when ``log_file`` is set.

    ``color=None`` colors only when stderr is a terminal.  Existing root
    handlers are replaced, so calling this twice does not double output.
    """
    console_level = _parse_level(level)
    if color is None:
        color = sys.stderr.isatty()

    fmt, datefmt = _console_format(console_level)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(ColorFormatter(fmt, datefmt=datefmt, color=color))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root.addHandler(_file_handler(log_file, file_level))
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _console_format(level: int) -> tuple[str, str | None]:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return fmt, datefmt
    return _CONSOLE_FORMATS[-1][1], None


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown or empty names mean INFO."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO

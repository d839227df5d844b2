"""Logging initialiser for roswire applications.

Library code only ever calls ``logging.getLogger(__name__)``; applications
(and the ``roswire`` CLI) call ``init()`` once at start-up. ``init`` owns
only the handlers it installs: calling it again swaps them out, while
handlers added by the host application stay in place.

Log format (human-readable, UTC timestamps)::

    2026-03-02T10:00:00.123Z [INFO    ] roswire.connection: Connected to rosbridge: ws://localhost:9090
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 5
_HANDLER_PREFIX = "roswire:"
_FMT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"

# Dependencies that log every frame at DEBUG.
_QUIET_LOGGERS = {"websockets": "WARNING", "PIL": "WARNING"}


class _UtcFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, timezone.utc)
        return stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z"


def _level(name: str, default: int = logging.INFO) -> int:
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default


def init(
    component: str,
    log_dir: Path,
    *,
    level: str = "INFO",
    foreground: bool = False,
    log_levels: dict[str, str] | None = None,
) -> Path:
    """Route roswire logging to ``<log_dir>/<component>.log``.

    ``level`` applies to the root and ``roswire`` loggers; unknown names
    fall back to INFO. ``foreground`` also logs to stderr. ``log_levels``
    overrides single loggers, e.g. ``{"roswire.codec": "DEBUG"}``, and can
    un-silence ``websockets`` or ``PIL``. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{component}.log"

    formatter = _UtcFormatter(_FMT)
    handlers: list[logging.Handler] = [
        RotatingFileHandler(log_file, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
    ]
    if foreground:
        handlers.append(logging.StreamHandler())

    root = logging.getLogger()
    for h in list(root.handlers):
        if (h.get_name() or "").startswith(_HANDLER_PREFIX):
            root.removeHandler(h)
            h.close()
    for h in handlers:
        h.set_name(f"{_HANDLER_PREFIX}{component}:{type(h).__name__}")
        h.setFormatter(formatter)
        root.addHandler(h)

    resolved = _level(level)
    root.setLevel(resolved)
    logging.getLogger("roswire").setLevel(resolved)
    for logger_name, level_str in {**_QUIET_LOGGERS, **(log_levels or {})}.items():
        logging.getLogger(logger_name).setLevel(_level(level_str, logging.NOTSET))

    return log_file

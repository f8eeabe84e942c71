"""JSONL log for a stridetrack project.

One JSON object per line in ``.stridetrack/stridetrack.log``. The file
rotates at 5MB and keeps 3 old copies.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILENAME = "stridetrack.log"
ROTATE_BYTES = 5 * 1024 * 1024
ROTATE_BACKUPS = 3

_lock = threading.Lock()

# record attribute (set through ``extra=``) -> key in the JSON line
_EXTRA_KEYS: tuple[tuple[str, str], ...] = (
    ("tool", "tool"),
    ("route", "route"),
    ("requirement_id", "requirement_id"),
    ("kind", "kind"),
    ("args_data", "args"),
    ("duration_ms", "duration_ms"),
    ("error", "error"),
)


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, timestamped in UTC."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update({key: getattr(record, attr) for attr, key in _EXTRA_KEYS if hasattr(record, attr)})
        if record.exc_info and record.exc_info[1] is not None:
            line["exception"] = str(record.exc_info[1])
        return json.dumps(line, default=str)


def _file_handlers(logger: logging.Logger) -> list[RotatingFileHandler]:
    return [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]


def setup_logging(stride_dir: Path, *, level: int = logging.INFO) -> logging.Logger:
    """Point the ``stridetrack`` logger at *stride_dir*/stridetrack.log.

    Calling again for the same project is a no-op. Calling for another
    project closes the old file handler and opens the new one.
    """
    logger = logging.getLogger("stridetrack")
    log_path = stride_dir / LOG_FILENAME
    wanted = os.path.abspath(str(log_path))

    with _lock:
        for existing in _file_handlers(logger):
            if existing.baseFilename == wanted:
                return logger
            logger.removeHandler(existing)
            existing.close()

        handler = RotatingFileHandler(str(log_path), maxBytes=ROTATE_BYTES, backupCount=ROTATE_BACKUPS)
        handler.setFormatter(JsonLineFormatter())
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger

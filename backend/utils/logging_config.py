"""Logging setup: readable console output plus a rotating JSON file."""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _file_handler(log_dir: Path, level: int):
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(log_dir / "app.log"),
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
    except PermissionError:
        logging.warning("Cannot write to %s, file logging disabled", log_dir)
        return None
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def configure_logging(app):
    """Attach handlers to the root logger once per application.

    ``LOG_LEVEL`` sets the level (INFO by default) and ``LOG_DIR`` the
    directory of ``app.log`` (``<app root>/logs`` by default).
    """
    if app.extensions.get("logging_configured"):
        return
    app.extensions["logging_configured"] = True

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_dir = Path(os.getenv("LOG_DIR") or Path(app.root_path) / "logs")

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(console)
    file_handler = _file_handler(log_dir, level)
    if file_handler:
        root.addHandler(file_handler)
    app.logger.setLevel(level)

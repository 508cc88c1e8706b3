"""Structured logging configuration.

JSON formatter + TimedRotatingFileHandler for tracker logs.
ContextVar is NOT used: LoggerAdapter with session_id is sufficient
for a single-user, single-process client.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import uuid
from pathlib import Path

from src.config import settings

LOG_DIR = Path(__file__).resolve().parent.parent / "data" / "logs"


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter with session_id support."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "session_id": getattr(record, "session_id", ""),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(
    structured: bool = False,
    log_dir: Path | str | None = None,
) -> str:
    """Configure root logger. Returns the session_id for this run.

    Args:
        structured: If True, use JSON format for the file handler. Also enabled
            by the STRUCTURED_LOGGING env var or settings.structured_logging.
        log_dir: Override log directory. Defaults to settings.log_dir, then data/logs/.
    """
    session_id = uuid.uuid4().hex[:12]
    log_path = Path(log_dir or settings.log_dir or LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.INFO)

    # 既存ハンドラをクリア (重複防止)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(console)

    # File handler (daily rotation, 30 days retention)
    use_structured = (
        structured
        or settings.structured_logging
        or os.environ.get("STRUCTURED_LOGGING", "").lower() in ("true", "1")
    )
    file_handler = logging.handlers.TimedRotatingFileHandler(
        log_path / "bet_tracker.log",
        when="midnight",
        backupCount=30,
        encoding="utf-8",
    )
    if use_structured:
        file_handler.setFormatter(JSONFormatter())
    else:
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root.addHandler(file_handler)

    return session_id

"""
Centralized logging configuration for the catalog pipeline.

Every provider attempt, stage transition and terminal failure is logged as a
structured JSON line so a run can be reconstructed after the fact:
- Rotating file handlers (app.log, error.log, debug.log when LOG_LEVEL=DEBUG)
- Optional human-readable console output for errors
- Per-call context passed through ``extra={"extra_fields": {...}}``
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class JsonFormatter(logging.Formatter):
    """Render a log record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Structured context attached by callers
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class LoggerConfig:
    """
    Process-wide logger setup.

    Reads LOG_DIR, LOG_LEVEL and LOG_TO_CONSOLE from the environment once, on
    first use.
    """

    LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_TO_CONSOLE = os.getenv("LOG_TO_CONSOLE", "false").lower() == "true"
    MAX_BYTES = 10 * 1024 * 1024  # 10MB per file
    BACKUP_COUNT = 5

    _initialized = False

    @classmethod
    def setup_logging(cls) -> None:
        """
        Install the JSON file handlers on the root logger.
        Safe to call repeatedly; only the first call has an effect.
        """
        if cls._initialized:
            return

        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, cls.LOG_LEVEL, logging.INFO))
        root_logger.handlers.clear()

        json_formatter = JsonFormatter()
        console_formatter = logging.Formatter(
            fmt="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

        # 1. Pipeline activity (INFO and above)
        app_handler = logging.handlers.RotatingFileHandler(
            cls.LOG_DIR / "app.log",
            maxBytes=cls.MAX_BYTES,
            backupCount=cls.BACKUP_COUNT,
            encoding="utf-8",
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(json_formatter)
        root_logger.addHandler(app_handler)

        # 2. Terminal failures and provider errors
        error_handler = logging.handlers.RotatingFileHandler(
            cls.LOG_DIR / "error.log",
            maxBytes=cls.MAX_BYTES,
            backupCount=cls.BACKUP_COUNT,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(json_formatter)
        root_logger.addHandler(error_handler)

        # 3. Raw provider payload previews, relevance scores
        if cls.LOG_LEVEL == "DEBUG":
            debug_handler = logging.handlers.RotatingFileHandler(
                cls.LOG_DIR / "debug.log",
                maxBytes=cls.MAX_BYTES,
                backupCount=cls.BACKUP_COUNT,
                encoding="utf-8",
            )
            debug_handler.setLevel(logging.DEBUG)
            debug_handler.setFormatter(json_formatter)
            root_logger.addHandler(debug_handler)

        if cls.LOG_TO_CONSOLE:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.ERROR)
            console_handler.setFormatter(console_formatter)
            root_logger.addHandler(console_handler)

        cls._initialized = True

        logging.getLogger(__name__).info(
            "Logging system initialized",
            extra={
                "extra_fields": {
                    "log_level": cls.LOG_LEVEL,
                    "log_dir": str(cls.LOG_DIR),
                    "console_logging": cls.LOG_TO_CONSOLE,
                }
            },
        )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._initialized:
            cls.setup_logging()
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Example:
        >>> from utils.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.warning("Provider rate limited", extra={"extra_fields": {"provider": "groq/llama"}})
    """
    return LoggerConfig.get_logger(name)


LoggerConfig.setup_logging()

"""
JSON logging for lendmarket.

Engine modules log through ``logging.getLogger(__name__)`` with an
``extra={"event": ...}`` payload. ``setup_lending_logging`` attaches JSON
handlers to the ``lendmarket`` logger using the active network config, and
``LendingEngine.from_config`` calls it on startup.
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from . import config


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Stamps every record with time, environment, service and call site."""

    def __init__(
        self,
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
        environment: Optional[str] = None,
        service_name: str = "lendmarket",
    ):
        super().__init__(fmt=fmt)
        self.environment = environment or "production"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["environment"] = self.environment
        log_record["service"] = self.service_name
        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def setup_logging(
    name: str = "lendmarket",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    enable_console: bool = True,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Replace the handlers of logger ``name`` with JSON handlers.

    Console output goes to stdout; ``log_file`` adds a rotating file. A file
    that cannot be opened is reported and skipped.
    """
    log_level = getattr(logging, level.upper())
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers = []

    formatter = CustomJsonFormatter(environment=environment, service_name=name.split(".")[0])
    handlers: list[logging.Handler] = []

    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                logging.handlers.RotatingFileHandler(
                    filename=log_file, maxBytes=max_bytes, backupCount=backup_count
                )
            )
        except OSError as e:
            logger.warning(
                "Could not create file handler",
                extra={"event": "logging.file_handler_failed", "log_file": log_file, "error": str(e)},
            )

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def setup_lending_logging(environment: Optional[str] = None, cfg: Any = None) -> logging.Logger:
    """Configure the ``lendmarket`` logger from ``cfg`` (the active Config by default)."""
    cfg = cfg or config.Config
    return setup_logging(
        name="lendmarket",
        log_file=cfg.LOG_FILE or None,
        level=cfg.LOG_LEVEL,
        environment=environment or cfg.ENVIRONMENT,
    )

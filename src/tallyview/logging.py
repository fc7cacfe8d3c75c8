"""Configuración de logging estructurado.

English:
    Structured logging setup. Events are JSON lines on the console and in
    ``<STORAGE_PATH>/logs/tallyview.log``, rotated at midnight.
"""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, List, Optional

import structlog

LOG_FILE_NAME = "tallyview.log"
LOG_BACKUP_DAYS = 30


def _handlers(storage_path: Path) -> List[logging.Handler]:
    log_dir = storage_path / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return [
        TimedRotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            when="midnight",
            backupCount=LOG_BACKUP_DAYS,
            encoding="utf-8",
        ),
        logging.StreamHandler(),
    ]


def setup_logging(log_level: str, storage_path: Path) -> structlog.BoundLogger:
    """Configura structlog y handlers de consola/archivo.

    English: Configure structlog and console/file handlers.
    """
    level = logging.getLevelName(log_level.upper())
    logging.basicConfig(level=level, handlers=_handlers(storage_path), format="%(message)s", force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger("tallyview")


def bind_context(
    logger: structlog.BoundLogger,
    election_id: Optional[int] = None,
    position_id: Optional[int] = None,
    view: Optional[str] = None,
) -> structlog.BoundLogger:
    """Adjunta elección, posición y vista al logger.

    English: Bind election, position and view to the logger.
    """
    context: dict[str, Any] = {
        key: value
        for key, value in (("election_id", election_id), ("position_id", position_id), ("view", view))
        if value is not None
    }
    return logger.bind(**context)

"""Structured logging for the menu service."""

import logging
import sys
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from menu_app.core.config import get_settings

settings = get_settings()

ROOT_LOGGER = "menu"


class MenuJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record, tagged with the app, version and environment."""

    def add_fields(
        self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["app"] = settings.app_name
        log_record["version"] = settings.app_version
        log_record["environment"] = settings.environment

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``menu`` logger and return it.

    Engine components log through children of this logger (see
    ``get_logger``), so one handler on stdout serves the whole service.
    Calling it again replaces the handler, which lets the seeder CLI and
    tests switch format without duplicate output.
    """
    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(MenuJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            timestamp=True
        ))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(component: str) -> logging.Logger:
    """Child logger for an engine component, e.g. ``menu.calories``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


logger = setup_logging()

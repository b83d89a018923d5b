"""Logging setup: JSON lines on stdout, stamped with the current request id."""

import logging
import sys
from typing import Any

from pythonjsonlogger import jsonlogger

from catalogue.common.request_context import get_request_id
from catalogue.core.config import settings

# Third-party loggers and the level they are held at
QUIET_LOGGERS: dict[str, int] = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach the id of the HTTP request being served, if any."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = get_request_id() or "-"
        return True


class CatalogueJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record: timestamp, level, logger, event plus `extra` fields."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["function"] = record.funcName
        log_record["event"] = record.getMessage()
        log_record["env"] = settings.ENV

        log_record.pop("message", None)
        log_record.pop("asctime", None)
        log_record.pop("color_message", None)


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S")
    return CatalogueJsonFormatter("%(timestamp)s %(level)s %(logger)s", datefmt="%Y-%m-%dT%H:%M:%S")


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Install the single stdout handler on the root logger."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(log_format or settings.LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    root_logger.addHandler(handler)

    for name, logger_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(logger_level)

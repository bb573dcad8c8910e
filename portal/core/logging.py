import asyncio
import json
import logging
import os
import time
import traceback
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from portal.core.config import get_logging_config

# Attributes copied from `extra={...}` into structured records
CONTEXT_FIELDS = ("request_id", "user_id", "organization_id", "ip_address")

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024


class CustomJsonFormatter(logging.Formatter):
    """One JSON object per line, with request context when it was supplied"""

    def __init__(self, context_fields=CONTEXT_FIELDS):
        super().__init__()
        self.context_fields = tuple(context_fields)

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
        }
        payload.update({
            field: getattr(record, field)
            for field in self.context_fields
            if getattr(record, field, None) is not None
        })
        if hasattr(record, "duration"):
            payload["duration_ms"] = round(record.duration, 2)

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(*record.exc_info),
            }
        return json.dumps(payload, default=str)


class LoggerFactory:
    """Builds the application logger: console output plus optional JSON log files"""

    @staticmethod
    def _file_handler(path: str, level: int) -> logging.Handler:
        handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=5)
        handler.setLevel(level)
        handler.setFormatter(CustomJsonFormatter())
        return handler

    @classmethod
    def create_logger(cls, name: str, log_dir: Optional[str] = None, level: str = "INFO") -> logging.Logger:
        numeric_level = getattr(logging, level.upper(), logging.INFO)
        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        logger.propagate = False
        logger.handlers.clear()

        console = logging.StreamHandler()
        console.setLevel(numeric_level)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console)

        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            logger.addHandler(cls._file_handler(os.path.join(log_dir, "app.log"), numeric_level))
            logger.addHandler(cls._file_handler(os.path.join(log_dir, "error.log"), logging.ERROR))

        return logger


def log_function_call(logger: logging.Logger):
    """Log how long a service call took, and any exception it raised"""
    def decorator(func):
        name = func.__qualname__

        def finished(started: float) -> None:
            duration = (time.perf_counter() - started) * 1000
            logger.debug(f"{name} finished", extra={'duration': duration})

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    logger.error(f"{name} failed", exc_info=True)
                    raise
                finished(started)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception:
                logger.error(f"{name} failed", exc_info=True)
                raise
            finished(started)
            return result
        return sync_wrapper
    return decorator


_logging_config = get_logging_config()
logger = LoggerFactory.create_logger(
    "AcademyPortalLogger",
    log_dir=_logging_config["log_dir"],
    level=_logging_config["log_level"] or "INFO"
)

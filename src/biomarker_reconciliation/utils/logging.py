# ============================================================================
# src/biomarker_reconciliation/utils/logging.py
# ============================================================================
"""
Logging configuration and utilities for the reconciliation engine.
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Optional

# Attributes every LogRecord has; anything else was added by LogContext or extra=
_STANDARD_RECORD_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging
        format_json: Whether to use JSON format
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True
    )


def configure_from_settings(settings=None) -> None:
    """Apply LoggingSettings (environment / .env driven) to the root logger."""
    if settings is None:
        from ..config import logging_settings
        settings = logging_settings

    setup_logging(
        level=settings.LOG_LEVEL,
        log_file=settings.LOG_FILE,
        format_json=settings.LOG_FORMAT_JSON
    )


class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Context fields (run_id etc.)
        extra = {
            key: value for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith('_')
        }
        if extra:
            log_data['extra'] = extra

        return json.dumps(log_data, default=str)


class LogContext:
    """Context manager for adding context to logs."""

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = context
        self.old_factory = None

    def __enter__(self):
        self.old_factory = logging.getLogRecordFactory()
        old_factory = self.old_factory
        context = self.context

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            for key, value in context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self.old_factory)


def log_performance(logger: logging.Logger, operation: str):
    """
    Decorator to log operation performance.

    Args:
        logger: Logger instance
        operation: Operation name
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()

            try:
                result = func(*args, **kwargs)
                duration = time.perf_counter() - start
                logger.info(f"{operation} completed in {duration:.3f}s")
                return result

            except Exception as e:
                duration = time.perf_counter() - start
                logger.error(f"{operation} failed after {duration:.3f}s: {type(e).__name__}: {e}")
                raise

        return wrapper
    return decorator

"""Logging infrastructure with structured JSON logging."""

import logging
import json
import os
import threading
from datetime import datetime, timezone
from typing import Any, Optional

from rich.logging import RichHandler


# Log levels understood by the host's TF_LOG variable
TF_LOG_LEVELS = {
    'TRACE': logging.DEBUG,
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
}

CONTEXT_FIELDS = ('resource_type', 'resource_id', 'operation', 'duration')


class JSONFormatter(logging.Formatter):
    """Custom formatter that outputs logs as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for the rich console handler."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console.

        Args:
            record: The log record to format

        Returns:
            Message prefixed with the resource being worked on, if any
        """
        message = super().format(record)
        resource_id = getattr(record, 'resource_id', None)
        if resource_id:
            operation = getattr(record, 'operation', None)
            prefix = f"[{operation} {resource_id}]" if operation else f"[{resource_id}]"
            message = f"{prefix} {message}"
        return message


def resolve_log_level(log_level: Optional[str] = None) -> int:
    """Resolve a level name, falling back to the TF_LOG variable.

    Args:
        log_level: Level name (debug, info, warning, error) or None

    Returns:
        A logging level constant
    """
    name = (log_level or os.environ.get('TF_LOG') or 'WARN').upper()
    return TF_LOG_LEVELS.get(name, logging.INFO)


def setup_logging(log_level: Optional[str] = None, log_path: Optional[str] = None) -> None:
    """Setup logging infrastructure.

    Console output goes through rich. When a log path is given (or TF_LOG_PATH
    is set) every record is also written there as JSON lines.

    Args:
        log_level: Logging level (debug, info, warning, error)
        log_path: Optional JSON-lines log file
    """
    level = resolve_log_level(log_level)
    log_path = log_path or os.environ.get('TF_LOG_PATH')

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_path else level)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        level=level,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setFormatter(ConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_path:
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    # Reduce noise from boto3 and other libraries
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Name of the logger (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


_local = threading.local()
_factory_lock = threading.Lock()
_factory_installed = False


def _install_record_factory() -> None:
    """Install the record factory that reads the per-thread context stack."""
    global _factory_installed
    with _factory_lock:
        if _factory_installed:
            return
        old_factory = logging.getLogRecordFactory()

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            for context in getattr(_local, 'stack', ()):
                for key, value in context.items():
                    setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        _factory_installed = True


class LogContext:
    """Context manager for adding structured fields to logs.

    Fields are scoped to the current thread, so host callbacks running in
    parallel each see their own resource in their records.
    """

    def __init__(self, logger: logging.Logger, **kwargs: Any):
        """Initialize log context.

        Args:
            logger: Logger to add context to
            **kwargs: Key-value pairs to add to log records
        """
        self.logger = logger
        self.context = kwargs

    def __enter__(self):
        """Enter context and add fields to logger."""
        _install_record_factory()
        if not hasattr(_local, 'stack'):
            _local.stack = []
        _local.stack.append(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context and drop its fields."""
        stack = getattr(_local, 'stack', [])
        if stack and stack[-1] is self.context:
            stack.pop()

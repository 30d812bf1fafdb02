"""Logging configuration utilities."""

import logging
import logging.config
import logging.handlers
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from mailer.core.config import settings

# Attributes every LogRecord has; anything else was passed through ``extra=``.
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Chatty third-party loggers
_QUIET_LOGGERS = ('botocore', 'boto3', 's3transfer', 'urllib3', 'httpx', 'httpcore')


class JSONFormatter(logging.Formatter):
    """One JSON object per line, including any ``extra`` fields."""

    def __init__(self, service_name):
        super().__init__()
        self.service_name = service_name

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith('_'):
                log_entry[key] = value

        if record.exc_info:
            log_entry['exc_info'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def mask_email(email: str) -> str:
    """
    Mask email for logging purposes.

    Args:
        email: Email address to mask

    Returns:
        Masked email (e.g., "u***r@example.com")
    """
    if not email or '@' not in email:
        return "***@***.***"

    local, domain = email.split('@', 1)

    if len(local) <= 2:
        masked_local = local[:1] + '*'
    else:
        masked_local = local[0] + '*' * (len(local) - 2) + local[-1]

    return f"{masked_local}@{domain}"


def _log_file_path() -> Optional[str]:
    """Path of the rotating log file, or None when the directory is unusable."""
    log_directory = os.path.abspath(settings.LOG_DIRECTORY)
    try:
        os.makedirs(log_directory, exist_ok=True)
    except OSError as e:
        print(f"Cannot create log directory {log_directory}: {e}; logging to console only")
        return None
    if not os.access(log_directory, os.W_OK):
        print(f"Log directory {log_directory} is not writable; logging to console only")
        return None
    return os.path.join(log_directory, f'{settings.SERVICE_NAME}.log')


def build_logging_config(level: str, log_file: Optional[str]) -> Dict[str, Any]:
    """dictConfig for console output plus, when ``log_file`` is set, JSON file output."""
    handlers: Dict[str, Any] = {
        'console': {
            'class': 'logging.StreamHandler',
            'level': level,
            'formatter': 'simple',
            'stream': 'ext://sys.stdout',
        },
    }
    if log_file:
        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': level,
            'formatter': 'json',
            'filename': log_file,
            'maxBytes': settings.LOG_MAX_BYTES,
            'backupCount': settings.LOG_BACKUP_COUNT,
            'encoding': 'utf-8',
        }
    names = list(handlers)

    loggers: Dict[str, Any] = {
        '': {'level': level, 'handlers': names},
        'uvicorn': {'level': 'INFO', 'handlers': names, 'propagate': False},
        'uvicorn.access': {'level': 'INFO', 'handlers': names, 'propagate': False},
    }
    for name in _QUIET_LOGGERS:
        loggers[name] = {'level': 'WARNING'}

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': 'mailer.utils.logging.JSONFormatter',
                'service_name': settings.SERVICE_NAME,
            },
            'simple': {'format': _CONSOLE_FORMAT},
        },
        'handlers': handlers,
        'loggers': loggers,
    }


def setup_logging():
    """Setup application logging."""
    level = 'DEBUG' if settings.DEBUG else 'INFO'
    try:
        logging.config.dictConfig(build_logging_config(level, _log_file_path()))
    except (ValueError, TypeError, AttributeError, ImportError) as e:
        print(f"Error setting up logging configuration: {e}")
        logging.basicConfig(level=level, format=_CONSOLE_FORMAT)

"""
Structured JSON logging configuration.

Auth modules log outcomes with the principal id only. Secrets, candidate
codes, backup codes and tokens are never passed to a logger.
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from config.settings import AppSettings, get_settings

# Package loggers that share the back office handlers
LOGGER_NAMES = ('backoffice', 'core', 'config')


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        for attr in ('request_id', 'error_id', 'user', 'endpoint', 'method',
                     'status_code', 'duration_ms', 'remote_addr'):
            if hasattr(record, attr):
                log_entry[attr] = getattr(record, attr)

        return json.dumps(log_entry)


def _build_handlers(settings: AppSettings) -> list[logging.Handler]:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)

    if settings.log_format == 'json':
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    handlers: list[logging.Handler] = [console_handler]

    if settings.log_file:
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    return handlers


def configure_logging(app=None, settings: AppSettings | None = None):
    """Configure structured logging for the back office.

    Args:
        app: Optional Flask app whose logger will be updated.
        settings: Settings to read LOG_LEVEL/LOG_FORMAT/LOG_FILE from.

    Returns:
        The 'backoffice' logger.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handlers = _build_handlers(settings)

    for name in LOGGER_NAMES:
        pkg_logger = logging.getLogger(name)
        pkg_logger.setLevel(level)
        pkg_logger.handlers = list(handlers)

    logger = logging.getLogger('backoffice')

    # Sync Flask's logger
    if app is not None:
        app.logger.handlers = logger.handlers
        app.logger.setLevel(logger.level)

    return logger

"""
Database logging configuration.

This module sets up the ``sde`` logger from the ``logging`` section of the
configuration file and provides helpers the facade uses to record executed
statements and connection events.
"""

import logging
import sys
from typing import Dict, Any, Optional
from pathlib import Path

from .security import SensitiveDataFilter

LOGGER_NAME = 'sde'

DEFAULT_LOG_FILE = 'logs/sde.log'


class SafeFormatter(logging.Formatter):
    """Formatter that provides default values for the custom record fields."""

    DEFAULTS = {
        'database_context': 'db',
        'query': '',
        'params': '',
        'duration': '',
        'separator': '',
    }

    def format(self, record):
        for field, default in self.DEFAULTS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return super().format(record)


def setup_db_logging(main_config: Dict[str, Any]) -> logging.Logger:
    """
    Setup database logging based on main configuration.

    Args:
        main_config: Configuration dictionary with an optional ``logging``
            section (``level``, ``log_file``)

    Returns:
        Configured ``sde`` logger
    """
    logging_config = main_config.get('logging', {}) or {}
    log_level = str(logging_config.get('level', 'INFO')).upper()
    log_file = Path(logging_config.get('log_file', DEFAULT_LOG_FILE))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level))

    # Remove any existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    log_file.parent.mkdir(parents=True, exist_ok=True)
    sensitive_filter = SensitiveDataFilter()

    if log_level == 'DEBUG':
        # Full statement details go to the file, summaries to the console
        debug_handler = logging.FileHandler(log_file)
        debug_handler.setFormatter(SafeFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d\n'
            'Message: %(message)s'
            '%(query)s%(params)s%(duration)s%(separator)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        debug_handler.setLevel(logging.DEBUG)
        debug_handler.addFilter(sensitive_filter)
        logger.addHandler(debug_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(SafeFormatter(
            '%(asctime)s - DB - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        ))
        console_handler.setLevel(logging.INFO)
        console_handler.addFilter(sensitive_filter)
        logger.addHandler(console_handler)
    else:
        info_handler = logging.FileHandler(log_file)
        info_handler.setFormatter(SafeFormatter(
            '%(asctime)s.%(msecs)03d - [%(database_context)s] - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        info_handler.setLevel(getattr(logging, log_level))
        info_handler.addFilter(sensitive_filter)
        logger.addHandler(info_handler)

    # Prevent propagation to root logger to avoid duplicate messages
    logger.propagate = False

    return logger


def log_query(logger: logging.Logger, query: str, params: Optional[Dict[str, Any]] = None,
              duration: Optional[float] = None, level: str = 'DEBUG') -> None:
    """
    Log an executed statement with appropriate detail level.

    Args:
        logger: Database logger instance
        query: SQL statement text
        params: Bound parameters
        duration: Execution time in seconds
        level: Log level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
    """
    log_level = getattr(logging, level.upper())

    if logger.isEnabledFor(logging.DEBUG):
        extra = {
            'query': f'\nQuery: {query}',
            'params': f'\nParams: {params}' if params else '',
            'duration': f'\nDuration: {duration:.3f}s' if duration is not None else '',
            'separator': '\n' + '-' * 80
        }
        logger.log(log_level, "Statement executed", extra=extra)
    elif logger.isEnabledFor(log_level) and level.upper() in ['INFO', 'WARNING', 'ERROR']:
        if duration is not None:
            logger.log(log_level, f"Statement executed in {duration:.3f}s")
        else:
            logger.log(log_level, "Statement executed")


def log_connection_event(logger: logging.Logger, event: str, details: Optional[str] = None) -> None:
    """
    Log connection lifecycle events.

    Args:
        logger: Database logger instance
        event: Event type ('opened', 'closed', 'error')
        details: Additional event details
    """
    if event == 'error':
        logger.error(f"Connection error: {details}")
        return

    message = f"Connection {event}"
    if details:
        message += f": {details}"
    logger.info(message)


class DatabaseLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that stamps records with the database they concern.

    The ``database`` entry of ``extra`` becomes the ``database_context``
    record field used by the summary log format.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        database = self.extra.get('database', 'unknown')
        if database not in ('unknown', ':memory:'):
            # data/app.sqlite -> app
            database = Path(str(database)).stem

        kwargs.setdefault('extra', {})
        kwargs['extra']['database_context'] = database
        return msg, kwargs

    def query(self, query: str, params: Optional[Dict[str, Any]] = None,
              duration: Optional[float] = None) -> None:
        """Log an executed statement."""
        log_query(self, query, params, duration)

    def connection_event(self, event: str, details: Optional[str] = None) -> None:
        """Log a connection lifecycle event."""
        log_connection_event(self, event, details)

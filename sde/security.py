"""Log sanitisation for database credentials and bound values.

Statements and their parameters are logged at DEBUG level; this module keeps
passwords, tokens and e-mail addresses out of the log files.
"""

import re
import logging
from typing import Any, Dict, Optional

SENSITIVE_KEYS = ('password', 'passwd', 'secret', 'token', 'api_key', 'credential')

REDACTED = '***REDACTED***'


def sanitize_log_message(message: str) -> str:
    """Remove sensitive data from a log message.

    Args:
        message: Log message to sanitize

    Returns:
        Sanitized message
    """
    # key=value and key: value pairs
    message = re.sub(
        r'(password|passwd|token|secret|api_key)(["\']?\s*[=:]\s*)([^\s,}]+)',
        r'\1\2' + REDACTED,
        message,
        flags=re.IGNORECASE
    )

    # Credentials embedded in connection URLs
    message = re.sub(r'(://[^:/\s]+:)[^@\s]+@', r'\1***@', message)

    message = re.sub(
        r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}',
        '***@***.***',
        message
    )

    return message


def redact_mapping(values: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``values`` with sensitive keys masked, recursively."""
    redacted = {}
    for key, value in values.items():
        if any(sensitive in str(key).lower() for sensitive in SENSITIVE_KEYS):
            redacted[key] = REDACTED
        elif isinstance(value, dict):
            redacted[key] = redact_mapping(value)
        else:
            redacted[key] = value
    return redacted


def _sanitize_arg(arg: Any) -> Any:
    if isinstance(arg, str):
        return sanitize_log_message(arg)
    return arg


class SensitiveDataFilter(logging.Filter):
    """Logging filter that removes sensitive data."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = sanitize_log_message(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: _sanitize_arg(v) for k, v in record.args.items()}
            else:
                record.args = tuple(_sanitize_arg(arg) for arg in record.args)
        # Statement details attached through ``extra``
        for field in ('query', 'params'):
            value = getattr(record, field, None)
            if isinstance(value, str) and value:
                setattr(record, field, sanitize_log_message(value))
        return True


def setup_secure_logging(logger_name: Optional[str] = None) -> logging.Logger:
    """Attach a SensitiveDataFilter to a logger and its handlers.

    Args:
        logger_name: Name of logger (None for root logger)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(logger_name)
    sensitive_filter = SensitiveDataFilter()

    for handler in logger.handlers:
        handler.addFilter(sensitive_filter)
    logger.addFilter(sensitive_filter)

    return logger

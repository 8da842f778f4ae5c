"""Exception hierarchy for S Database Explorer.

Every error raised by the package derives from SDEError. Driver and encoder
failures are re-raised with the original diagnostic text as the message and
the original exception chained as ``__cause__``.
"""

import re
import builtins


# Suffix SQLAlchemy appends to errors that carry a documentation code
_BACKGROUND_LINK = re.compile(r'\s*\(Background on this error at: [^)]*\)\s*\Z')


class SDEError(Exception):
    """Base exception for all sde errors."""
    pass


class ConnectionError(SDEError, builtins.ConnectionError):
    """Raised when the database connection cannot be established."""
    pass


class QueryError(SDEError):
    """Raised when preparing, binding or executing a statement fails."""
    pass


class SerializationError(SDEError, ValueError):
    """Raised when a result collection cannot be encoded as JSON."""
    pass


class ConfigurationError(SDEError):
    """Raised when configuration values or files are invalid."""
    pass


def diagnostic(exc: BaseException) -> str:
    """Return the driver's own message for an exception.

    SQLAlchemy wraps DBAPI errors and decorates the message with the
    statement and a documentation link; the wrapped ``orig`` exception
    carries the text the driver produced. Errors raised by SQLAlchemy
    itself keep their message without the link.
    """
    orig = getattr(exc, 'orig', None)
    if isinstance(orig, BaseException):
        exc = orig
    return _BACKGROUND_LINK.sub('', str(exc))

"""
Placeholder normalisation for bound parameters.

Statements reach SQLAlchemy as ``text()`` constructs, which bind by name.
Callers may still write positional ``?`` markers; these are rewritten to
numbered named binds so both styles go through the same execution path.
Colons inside quoted literals and identifiers are escaped so ``text()``
leaves them as written.
"""

import re
from collections.abc import Mapping
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from .exceptions import QueryError

Parameters = Optional[Union[Mapping, Sequence[Any]]]

POSITIONAL_PREFIX = 'p'

# Quoted literals and identifiers are matched first so markers inside them are left alone
_TOKEN_PATTERN = re.compile(
    r"'(?:[^'\\]|\\.|'')*'"
    r'|"(?:[^"\\]|\\.|"")*"'
    r'|`[^`]*`'
    r'|\?'
)

# A colon text() would read as the start of a bind name
_BIND_COLON = re.compile(r'(?<![:\\]):(?=\w)')


def escape_literal(token: str) -> str:
    """Escape bind-like colons in a quoted literal or identifier."""
    return _BIND_COLON.sub(r'\\:', token)


def bind_parameters(statement: str, parameters: Parameters = None) -> Tuple[str, Dict[str, Any]]:
    """
    Prepare a statement and its parameters for named binding.

    Args:
        statement: SQL statement using ``:name`` or ``?`` placeholders
        parameters: Mapping for named placeholders, list/tuple for positional

    Returns:
        Tuple of (statement, bind parameter dictionary)

    Raises:
        QueryError: If parameters is neither a mapping nor a list/tuple, or
            the number of positional values does not match the number of
            ``?`` markers
    """
    if parameters is None or isinstance(parameters, Mapping):
        named = {str(key).lstrip(':'): value for key, value in (parameters or {}).items()}

        def escape(match):
            token = match.group(0)
            return token if token == '?' else escape_literal(token)

        return _TOKEN_PATTERN.sub(escape, statement), named

    if not isinstance(parameters, (list, tuple)):
        raise QueryError(
            f"parameters must be a mapping or a list/tuple, got {type(parameters).__name__}"
        )

    values = list(parameters)
    position = 0

    def replace(match):
        nonlocal position
        token = match.group(0)
        if token != '?':
            return escape_literal(token)
        position += 1
        return f':{POSITIONAL_PREFIX}{position}'

    rewritten = _TOKEN_PATTERN.sub(replace, statement)

    if position != len(values):
        raise QueryError(
            f"Invalid parameter number: number of bound variables ({len(values)}) "
            f"does not match number of tokens ({position})"
        )

    return rewritten, {f'{POSITIONAL_PREFIX}{index}': value for index, value in enumerate(values, 1)}

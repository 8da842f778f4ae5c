"""
S Database Explorer - a lightweight query facade over a relational database.

One SDE object owns one connection and one table prefix, builds SQL from
caller-supplied fragments, and executes it with bound parameters.
"""

from .facade import SDE
from .config import ConnectionSettings, ConfigManager, load_config
from .exceptions import (
    SDEError,
    ConnectionError,
    QueryError,
    SerializationError,
    ConfigurationError,
)
from .logging_config import setup_db_logging

__version__ = "3.0.1"
__all__ = [
    "SDE",
    "ConnectionSettings",
    "ConfigManager",
    "load_config",
    "setup_db_logging",
    "SDEError",
    "ConnectionError",
    "QueryError",
    "SerializationError",
    "ConfigurationError",
]

"""
Backend-specific statements.

Only the pieces that differ between database engines live here; every other
statement the facade issues is plain SQL built from caller fragments.
"""

from typing import Optional

# SQLAlchemy dialect name -> statement returning the connection's last generated id
LAST_INSERT_ID_QUERIES = {
    'mysql': 'SELECT LAST_INSERT_ID()',
    'mariadb': 'SELECT LAST_INSERT_ID()',
    'sqlite': 'SELECT last_insert_rowid()',
    'postgresql': 'SELECT LASTVAL()',
}

FILE_BASED_BACKENDS = ('sqlite', 'duckdb')


def backend_name(driver: str) -> str:
    """
    Get the backend part of a SQLAlchemy drivername.

    Args:
        driver: Drivername such as 'mysql+pymysql' or 'sqlite'

    Returns:
        Backend name ('mysql', 'sqlite', ...)
    """
    return driver.split('+', 1)[0].lower()


def last_insert_id_query(dialect_name: str) -> Optional[str]:
    """Statement reading the last generated id, or None if the backend has none."""
    return LAST_INSERT_ID_QUERIES.get(dialect_name.lower())


def is_file_based(driver: str) -> bool:
    """Whether the database name is a file path rather than a server-side database."""
    return backend_name(driver) in FILE_BASED_BACKENDS

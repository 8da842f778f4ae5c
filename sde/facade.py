"""
Query facade over a single SQLAlchemy connection.

The facade builds SQL statements from caller-supplied fragments and executes
them as prepared statements. Table names, column lists and WHERE/ORDER
fragments are inserted into the statement text as given; only bound values
are protected, by the driver's parameter binding.
"""

import time
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError

from .binding import Parameters, bind_parameters
from .config import ConfigManager, ConnectionSettings, DEFAULT_DRIVER
from .dialects import last_insert_id_query
from .exceptions import ConnectionError, QueryError, diagnostic
from .logging_config import DatabaseLoggerAdapter, setup_db_logging
from .serialization import to_json

logger = logging.getLogger(__name__)

Clause = Optional[Union[str, int, bool]]


def _supplied(clause: Clause) -> bool:
    """Whether an optional clause argument was given (0 counts, '' and False do not)."""
    return clause is not None and clause is not False and clause != ''


class SDE:
    """Database facade owning one connection and one fixed table prefix"""

    def __init__(self, name: str, username: str = 'root', password: str = '',
                 host: str = 'localhost', prefix: Union[str, bool, None] = False, *,
                 driver: str = DEFAULT_DRIVER, port: Optional[int] = None,
                 engine_args: Optional[Dict[str, Any]] = None):
        """
        Connect to a database

        Args:
            name: Database name, or database file path for sqlite/duckdb
            username: Database user
            password: Database password
            host: Database host
            prefix: Table prefix; 'shop' makes every table 'shop_<table>'
            driver: SQLAlchemy drivername
            port: Database port, driver default when None
            engine_args: Extra create_engine arguments

        Raises:
            ConnectionError: If the connection cannot be established
        """
        self._connect(ConnectionSettings(
            name=name,
            username=username,
            password=password,
            host=host,
            prefix=prefix,
            driver=driver,
            port=port,
            engine_args=engine_args or {},
        ))

    @classmethod
    def from_settings(cls, settings: ConnectionSettings) -> 'SDE':
        """Create a facade from validated connection settings."""
        facade = cls.__new__(cls)
        facade._connect(settings)
        return facade

    @classmethod
    def from_config(cls, config_path: Union[str, Path],
                    override_path: Optional[Union[str, Path]] = None) -> 'SDE':
        """
        Create a facade from a YAML configuration file

        The ``logging`` section, when present, configures the ``sde`` logger.

        Args:
            config_path: Base configuration file
            override_path: Optional override file merged on top
        """
        manager = ConfigManager(config_path)
        if override_path:
            manager.merge_override(override_path)
        manager.validate()

        if 'logging' in manager.merged_config:
            setup_db_logging(manager.get_config(redact_secrets=False))

        return cls.from_settings(manager.connection_settings())

    def _connect(self, settings: ConnectionSettings) -> None:
        self.settings = settings
        self.prefix = settings.table_prefix
        self.logger = DatabaseLoggerAdapter(logger, {'database': settings.name})
        self._last_result: Optional[CursorResult] = None

        url = settings.url()
        self.engine: Optional[Engine] = None
        try:
            self.engine = create_engine(url, **settings.engine_kwargs())
            # Autocommit: every statement is its own durable round trip
            self.connection: Connection = self.engine.connect().execution_options(
                isolation_level='AUTOCOMMIT'
            )
        except (SQLAlchemyError, ImportError) as e:
            if self.engine is not None:
                self.engine.dispose()
            self.logger.connection_event('error', diagnostic(e))
            raise ConnectionError(diagnostic(e)) from e

        self.logger.connection_event('opened', url.render_as_string(hide_password=True))

    # --- Operations ---

    def insert(self, table: str, column: str, values: str, parameters: Parameters = None) -> str:
        """
        Insert a row

        Args:
            table: Table name without prefix
            column: Column list fragment, e.g. 'name, email'
            values: Values fragment, e.g. ':name, :email'
            parameters: Bound parameters

        Returns:
            Id generated for the inserted row
        """
        statement = f"INSERT INTO `{self.prefix}{table}` ({column}) VALUES ({values})"

        self._execute(statement, parameters)

        return self.last()

    def select(self, column: str, table: str, condition: Clause = None, limit: Clause = None,
               order: Clause = None, offset: Clause = None,
               parameters: Parameters = None) -> List[Dict[str, Any]]:
        """
        Select rows from a table

        Clauses are appended in the order WHERE, LIMIT, ORDER BY, OFFSET,
        each only when supplied.

        Returns:
            List of row dictionaries, empty when nothing matches
        """
        statement = self._select_statement(column, table, condition, limit, order, offset)

        result = self._execute(statement, parameters)
        return [dict(row._mapping) for row in result]

    def select_df(self, column: str, table: str, condition: Clause = None, limit: Clause = None,
                  order: Clause = None, offset: Clause = None,
                  parameters: Parameters = None) -> pd.DataFrame:
        """
        Select rows from a table as a DataFrame

        Takes the same arguments as select. The frame keeps the result's
        column names when no rows match.
        """
        statement = self._select_statement(column, table, condition, limit, order, offset)

        result = self._execute(statement, parameters)
        columns = list(result.keys())
        return pd.DataFrame([tuple(row) for row in result], columns=columns)

    def update(self, table: str, set_clause: str, condition: str, parameters: Parameters = None) -> None:
        """
        Update rows matching a condition

        Args:
            table: Table name without prefix
            set_clause: SET fragment, e.g. 'name = :name'
            condition: WHERE fragment
            parameters: Bound parameters
        """
        statement = f"UPDATE {self.prefix}{table} SET {set_clause} WHERE {condition}"

        self._execute(statement, parameters)

    def remove(self, table: str, condition: str, parameters: Parameters = None) -> CursorResult:
        """
        Delete rows matching a condition

        Returns:
            Executed statement handle
        """
        statement = f"DELETE FROM {self.prefix}{table} WHERE {condition}"

        return self._execute(statement, parameters)

    def run(self, statement: str, parameters: Parameters = None) -> CursorResult:
        """
        Execute a statement verbatim; the table prefix is not applied

        Returns:
            Executed statement handle
        """
        return self._execute(statement, parameters)

    def count(self, table: str, condition: str = '', parameters: Parameters = None) -> int:
        """Number of rows in a table, optionally restricted by a condition"""
        statement = f"SELECT COUNT(*) FROM {self.prefix}{table}"

        if condition:
            statement += f" WHERE {condition}"

        return int(self._execute(statement, parameters).scalar())

    def sum(self, table: str, column: str, condition: str = '',
            parameters: Parameters = None) -> Union[int, float, Any]:
        """
        Sum of a column, optionally restricted by a condition

        Returns:
            The driver's numeric value; 0 when no rows match
        """
        statement = f"SELECT SUM({column}) FROM {self.prefix}{table}"

        if condition:
            statement += f" WHERE {condition}"

        total = self._execute(statement, parameters).scalar()
        return total if total is not None else 0

    def last(self) -> str:
        """Id generated by the most recent insert on this connection"""
        query = last_insert_id_query(self.connection.dialect.name)

        if query is not None:
            value = self._execute(query).scalar()
        elif self._last_result is not None:
            value = self._last_result.lastrowid
        else:
            value = None

        return str(value) if value is not None else '0'

    def json(self, data: Any) -> str:
        """Encode a result collection as JSON text"""
        return to_json(data)

    # --- Lifecycle ---

    @property
    def closed(self) -> bool:
        return self.connection.closed

    def close(self) -> None:
        """Close the connection and dispose of the engine"""
        if self.connection.closed:
            return
        self.connection.close()
        self.engine.dispose()
        self.logger.connection_event('closed')

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return (f"SDE(url={self.settings.url().render_as_string(hide_password=True)!r}, "
                f"prefix={self.prefix!r})")

    # --- Internals ---

    def _select_statement(self, column: str, table: str, condition: Clause, limit: Clause,
                          order: Clause, offset: Clause) -> str:
        statement = f"SELECT {column} FROM `{self.prefix}{table}`"

        if _supplied(condition):
            statement += f" WHERE {condition}"

        if _supplied(limit):
            statement += f" LIMIT {limit}"

        if _supplied(order):
            statement += f" ORDER BY {order}"

        if _supplied(offset):
            statement += f" OFFSET {offset}"

        return statement

    def _execute(self, statement: str, parameters: Parameters = None) -> CursorResult:
        """
        Prepare and execute a statement on the owned connection

        Args:
            statement: SQL with ':name' or '?' placeholders
            parameters: Mapping or list/tuple of bound values

        Returns:
            Executed statement handle

        Raises:
            QueryError: With the driver's message if anything fails
        """
        sql, params = bind_parameters(statement, parameters)

        start_time = time.time()
        try:
            result = self.connection.execute(text(sql), params)
        except SQLAlchemyError as e:
            self.logger.error(f"Statement failed: {diagnostic(e)}")
            raise QueryError(diagnostic(e)) from e

        self.logger.query(sql, params, time.time() - start_time)
        self._last_result = result
        return result

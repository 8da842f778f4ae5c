"""
Shared fixtures: facades over in-memory SQLite databases
"""

import logging

import pytest

from sde import SDE
from sde.logging_config import LOGGER_NAME

USERS_DDL = """
    CREATE TABLE {table} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT UNIQUE,
        score INTEGER DEFAULT 0
    )
"""

SEED_USERS = [
    ('Alice', 'alice@example.com', 10),
    ('Bob', 'bob@example.com', 20),
    ('Charlie', 'charlie@example.com', 30),
    ('Dana', 'dana@example.com', 40),
    ('Eve', 'eve@example.com', 50),
]


@pytest.fixture
def memory_db():
    """Facade without a prefix and no tables"""
    db = SDE(':memory:', driver='sqlite')
    yield db
    db.close()


@pytest.fixture
def shop_db():
    """Facade with prefix 'shop' and a seeded shop_users table"""
    db = SDE(':memory:', prefix='shop', driver='sqlite')
    db.run(USERS_DDL.format(table='shop_users'))
    for name, email, score in SEED_USERS:
        db.run(
            "INSERT INTO shop_users (name, email, score) VALUES (?, ?, ?)",
            [name, email, score]
        )
    yield db
    db.close()


@pytest.fixture(autouse=True)
def reset_sde_logger():
    """Undo handler changes made by setup_db_logging"""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.filters.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True

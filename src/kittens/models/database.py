"""
DuckDB access for the upload record store.

Connections are opened per unit of work and closed when it ends; no
connection outlives the request that opened it.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import duckdb

from .schema import get_schema_statements

logger = logging.getLogger(__name__)


@contextmanager
def connect(db_path: str) -> Iterator[duckdb.DuckDBPyConnection]:
    """Open a connection to db_path and close it when the block exits."""
    conn = duckdb.connect(db_path)
    try:
        yield conn
    finally:
        conn.close()


def initialize_database(db_path: str) -> None:
    """
    Create the database file and the uploads schema when missing.

    Safe to call on an existing database: every statement is IF NOT EXISTS.

    Raises:
        duckdb.Error: If the file cannot be opened or the schema applied
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    with connect(db_path) as conn:
        for statement in get_schema_statements():
            conn.execute(statement)

    logger.info(f"Upload schema ready at {db_path}")

"""Process-wide DuckDB connection."""

import logging
import threading

import duckdb

logger = logging.getLogger(__name__)

# Created on first use; readers take their own cursors from it
_connection = None
_lock = threading.Lock()


def get_duckdb_connection() -> "duckdb.DuckDBPyConnection":
    """Get or create the shared in-memory DuckDB connection."""
    global _connection
    if _connection is None:
        with _lock:
            if _connection is None:
                _connection = duckdb.connect(database=":memory:")
                logger.info("DuckDB in-memory connection initialized")
    return _connection


def close_duckdb_connection() -> None:
    """Close the shared connection; the next caller opens a fresh one."""
    global _connection
    with _lock:
        if _connection is not None:
            _connection.close()
            _connection = None
            logger.info("DuckDB connection closed")

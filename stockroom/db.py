from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

import streamlit as st

from stockroom.errors import PersistenceError
from stockroom.logger import get_logger
from stockroom.schema import SCHEMA_SQL

logger = get_logger(__name__)


class Connection(sqlite3.Connection):
    """sqlite3 connection that knows whether a `transaction()` block is open."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Shared by every Streamlit session using the cached get_conn(); concurrent
        # writers would join or roll back one another's transaction.
        self.tx_depth = 0


def connect(db_path: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False, factory=Connection)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@st.cache_resource
def get_conn(db_path: Path) -> sqlite3.Connection:
    return connect(db_path)


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()


def _in_transaction(conn: sqlite3.Connection) -> bool:
    return getattr(conn, "tx_depth", 0) > 0


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Group writes into one unit: commit on success, roll back on any error.

    Nested blocks join the outermost one. sqlite3 errors are re-raised as
    PersistenceError after the rollback; domain errors pass through unchanged.
    """
    if not isinstance(conn, Connection):
        raise TypeError("transaction() needs a connection opened with stockroom.db.connect().")

    conn.tx_depth += 1
    try:
        yield conn
    except BaseException as exc:
        conn.tx_depth -= 1
        if conn.tx_depth == 0:
            conn.rollback()
            logger.warning("Transaction rolled back: %s", exc)
        if isinstance(exc, sqlite3.Error):
            raise PersistenceError(f"Database write failed: {exc}") from exc
        raise
    else:
        conn.tx_depth -= 1
        if conn.tx_depth == 0:
            try:
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                raise PersistenceError(f"Database commit failed: {exc}") from exc


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params or ()))
    rows = cur.fetchall()
    cur.close()
    return rows


def one(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> sqlite3.Row | None:
    rows = q(conn, sql, params)
    return rows[0] if rows else None


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> int:
    cur = conn.execute(sql, tuple(params or ()))
    # Inside transaction() the outermost block commits.
    if not _in_transaction(conn):
        conn.commit()
    last = cur.lastrowid
    cur.close()
    return int(last or 0)

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

import mysql.connector

from ..core.exceptions import StorageError
from .connection import DatabaseConnection

log = logging.getLogger("adcoin_ledger.database")


def _open(conn_factory: DatabaseConnection):
    try:
        return conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StorageError(f"Database unavailable: {exc}") from exc


def _rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        # The original error is re-raised by the caller; a dead connection
        # rolls back server-side anyway.
        log.exception("Rollback failed")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True) -> Iterator[Tuple[Any, Any]]:
    conn = _open(conn_factory)
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        _rollback(conn)
        raise StorageError(f"Database error: {exc}") from exc
    except Exception:
        _rollback(conn)
        raise
    finally:
        conn.close()


@contextmanager
def db_transaction(conn_factory: DatabaseConnection) -> Iterator[Tuple[Any, Any]]:
    """One unit of work on one connection.

    Everything executed on the yielded cursor commits together or not at all.
    Row locks taken with SELECT ... FOR UPDATE are held until the block exits.
    """
    conn = _open(conn_factory)
    try:
        cur = conn.cursor(dictionary=True)
        try:
            cur.execute("SET SESSION innodb_lock_wait_timeout = %s", (conn_factory.lock_wait_timeout,))
            conn.start_transaction(isolation_level="READ COMMITTED")
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        _rollback(conn)
        raise StorageError(f"Ledger write failed: {exc}") from exc
    except Exception:
        _rollback(conn)
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])

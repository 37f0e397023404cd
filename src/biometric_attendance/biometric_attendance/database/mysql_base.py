from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector

from ..core.exceptions import PersistenceError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Open a connection + cursor; commit on success, rollback on error.

    Connector errors surface as PersistenceError.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise PersistenceError(f"Database unavailable: {exc}") from exc
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        raise PersistenceError(f"Database error: {exc}") from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def db_transaction(conn_factory: DatabaseConnection, *, isolation_level: str = "SERIALIZABLE"):
    """Like db_cursor but inside an explicit transaction at the given isolation."""
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise PersistenceError(f"Database unavailable: {exc}") from exc
    try:
        conn.start_transaction(isolation_level=isolation_level)
        cur = conn.cursor(dictionary=True)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        raise PersistenceError(f"Database error: {exc}") from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])

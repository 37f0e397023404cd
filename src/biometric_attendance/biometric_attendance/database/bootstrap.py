from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


_CREATE_OR_USE_DB = re.compile(r"(?im)^\s*(?:CREATE\s+DATABASE|USE)\b.*?;\s*$")

# Quoted literals, `--` comments, statement separators, and everything else.
_SQL_TOKEN = re.compile(r"""'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*"|--[^\n]*|;|[^'";-]+|.""", re.S)


def _iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside string literals; `--` comments are dropped."""
    buf: list[str] = []
    for token in _SQL_TOKEN.findall(sql):
        if token == ";":
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
        elif not token.startswith("--"):
            buf.append(token)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _exec_script(conn_factory: DatabaseConnection, path: str | Path) -> int:
    # Database name comes from DB_CONFIG, not from the script.
    sql = _CREATE_OR_USE_DB.sub("", Path(path).read_text(encoding="utf-8"))
    conn = conn_factory.connect()
    count = 0
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()
    return count


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    conn = conn_factory.connect(database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{conn_factory.database_name}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection, *, schema_path: str | Path) -> None:
    ensure_database_exists(conn_factory)
    count = _exec_script(conn_factory, schema_path)
    logger.info("Applied %s statements from %s to %s", count, schema_path, conn_factory.describe())


def apply_seed_sql(conn_factory: DatabaseConnection, *, seed_path: str | Path) -> None:
    count = _exec_script(conn_factory, seed_path)
    logger.info("Applied %s seed statements from %s", count, seed_path)


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()

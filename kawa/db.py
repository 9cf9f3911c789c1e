from __future__ import annotations

import sqlite3
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Union

from kawa.schema import SCHEMA_SQL
from kawa.utils import parse_date

DateLike = Union[date, str, None]


def connect(db_path: Union[Path, str]) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def get_conn(db_path: Union[Path, str]) -> sqlite3.Connection:
    conn = connect(db_path)
    ensure_schema(conn)
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> int:
    cur = conn.execute(sql, tuple(params))
    conn.commit()
    last = cur.lastrowid
    cur.close()
    return int(last or 0)


def date_range_where(date_col: str, date_from: DateLike, date_to: DateLike) -> tuple[str, tuple]:
    # Inclusive on both ends; ISO dates compare correctly as text.
    clauses, params = [], []
    if date_from is not None:
        clauses.append(f"{date_col} >= ?")
        params.append(parse_date(date_from, "From date").isoformat())
    if date_to is not None:
        clauses.append(f"{date_col} <= ?")
        params.append(parse_date(date_to, "To date").isoformat())
    where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
    return where, tuple(params)

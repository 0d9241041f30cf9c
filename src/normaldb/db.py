"""Database connection, schema bootstrap, and row iteration for normaldb."""

from __future__ import annotations

import logging
import re
import sqlite3
from collections.abc import Callable, Generator, Iterator, Sequence
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any, TypeVar

from normaldb.exceptions import SchemaError, StoreError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# Seconds a connection waits on a locked database before giving up
DEFAULT_TIMEOUT = 30.0

MEMORY = ":memory:"

# OverflowError: an int outside SQLite's 64-bit INTEGER range was bound
STORE_ERRORS = (sqlite3.Error, OverflowError)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# https://www.sqlite.org/lang_keywords.html, plus the implicit rowid aliases
SQLITE_KEYWORDS = frozenset("""
    ABORT ACTION ADD AFTER ALL ALTER ALWAYS ANALYZE AND AS ASC ATTACH
    AUTOINCREMENT BEFORE BEGIN BETWEEN BY CASCADE CASE CAST CHECK COLLATE
    COLUMN COMMIT CONFLICT CONSTRAINT CREATE CROSS CURRENT CURRENT_DATE
    CURRENT_TIME CURRENT_TIMESTAMP DATABASE DEFAULT DEFERRABLE DEFERRED
    DELETE DESC DETACH DISTINCT DO DROP EACH ELSE END ESCAPE EXCEPT EXCLUDE
    EXCLUSIVE EXISTS EXPLAIN FAIL FILTER FIRST FOLLOWING FOR FOREIGN FROM
    FULL GENERATED GLOB GROUP GROUPS HAVING IF IGNORE IMMEDIATE IN INDEX
    INDEXED INITIALLY INNER INSERT INSTEAD INTERSECT INTO IS ISNULL JOIN KEY
    LAST LEFT LIKE LIMIT MATCH MATERIALIZED NATURAL NO NOT NOTHING NOTNULL
    NULL NULLS OF OFFSET ON OR ORDER OTHERS OUTER OVER PARTITION PLAN PRAGMA
    PRECEDING PRIMARY QUERY RAISE RANGE RECURSIVE REFERENCES REGEXP REINDEX
    RELEASE RENAME REPLACE RESTRICT RETURNING RIGHT ROLLBACK ROW ROWS
    SAVEPOINT SELECT SET TABLE TEMP TEMPORARY THEN TIES TO TRANSACTION
    TRIGGER UNBOUNDED UNION UNIQUE UPDATE USING VACUUM VALUES VIEW VIRTUAL
    WHEN WHERE WINDOW WITH WITHOUT
    ROWID OID _ROWID_
""".split())


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------

def connect(db_path: str | Path = MEMORY) -> sqlite3.Connection:
    """Open an autocommit connection with normaldb PRAGMA settings."""
    db_path_str = str(db_path)
    conn = sqlite3.connect(
        db_path_str,
        timeout=DEFAULT_TIMEOUT,
        isolation_level=None,
    )
    if db_path_str != MEMORY:
        conn.execute("PRAGMA journal_mode = WAL")
    conn.row_factory = sqlite3.Row
    return conn


def open_store(
    db_path: str | Path,
    bootstrap: Callable[[sqlite3.Connection], None],
) -> sqlite3.Connection:
    """Connect and run *bootstrap*; never returns a half-initialized handle."""
    try:
        conn = connect(db_path)
    except sqlite3.Error as e:
        raise StoreError(f"cannot open {db_path}: {e}") from e
    try:
        bootstrap(conn)
    except sqlite3.Error as e:
        conn.close()
        raise SchemaError(f"cannot initialize schema in {db_path}: {e}") from e
    except BaseException:
        conn.close()
        raise
    return conn


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

def validate_identifier(name: str, kind: str = "identifier") -> str:
    """Return *name* if it is safe to interpolate as a table/column name."""
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise SchemaError(f"invalid {kind} {name!r}: must match {_IDENTIFIER_RE.pattern}")
    if name.upper() in SQLITE_KEYWORDS:
        raise SchemaError(f"invalid {kind} {name!r}: reserved SQLite keyword")
    if name.lower().startswith("sqlite_"):
        raise SchemaError(f"invalid {kind} {name!r}: 'sqlite_' prefix is reserved")
    return name


def index_name(table: str, column: str) -> str:
    return f"idx_{table}_{column}"


# ---------------------------------------------------------------------------
# Schema bootstrap
# ---------------------------------------------------------------------------

def ensure_dictionary_table(
    conn: sqlite3.Connection, table: str, column: str,
) -> None:
    """Create the value table and its index if they don't exist."""
    conn.executescript(
        f"CREATE TABLE IF NOT EXISTS {table} ({column} TEXT UNIQUE);\n"
        f"CREATE INDEX IF NOT EXISTS {index_name(table, column)} "
        f"ON {table} ({column});\n"
    )
    logger.debug("Ensured dictionary table %s(%s)", table, column)


def ensure_pairs_table(
    conn: sqlite3.Connection, table: str, left: str, right: str,
) -> None:
    """Create the pair table, its uniqueness constraint, and both indices."""
    conn.executescript(
        f"CREATE TABLE IF NOT EXISTS {table} "
        f"({left} INTEGER, {right} INTEGER, UNIQUE({left}, {right}));\n"
        f"CREATE INDEX IF NOT EXISTS {index_name(table, left)} ON {table} ({left});\n"
        f"CREATE INDEX IF NOT EXISTS {index_name(table, right)} ON {table} ({right});\n"
    )
    logger.debug("Ensured pair table %s(%s, %s)", table, left, right)


def add_columns(
    conn: sqlite3.Connection, table: str, columns: Sequence[str],
) -> None:
    """Add each nullable TEXT column, treating an existing column as success."""
    for column in columns:
        try:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} TEXT")
        except sqlite3.OperationalError as e:
            if "duplicate column name" not in str(e):
                raise
            logger.debug("Column %s.%s already exists", table, column)
        else:
            logger.debug("Added column %s.%s", table, column)


def table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    """Column names in declaration order, as reported by SQLite."""
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return [row["name"] for row in rows]


# ---------------------------------------------------------------------------
# Row iteration
# ---------------------------------------------------------------------------

def iter_rows(
    conn: sqlite3.Connection,
    sql: str,
    params: Sequence[Any],
    convert: Callable[[sqlite3.Row], _T],
) -> Iterator[_T]:
    """Lazily yield converted rows; the query runs on the first ``next()``.

    The cursor reads live table state, so rows written through the same
    connection before or during iteration may appear.  It is closed when
    the generator is exhausted, closed, collected, or fails.
    """
    cursor = None
    try:
        cursor = conn.execute(sql, params)
        for row in cursor:
            yield convert(row)
    except STORE_ERRORS as e:
        logger.warning("Query failed: %s", e)
        raise StoreError(str(e)) from e
    finally:
        if cursor is not None:
            with suppress(sqlite3.ProgrammingError):
                cursor.close()


def fill_page(
    conn: sqlite3.Connection,
    sql: str,
    params: Sequence[Any],
    dest: list,
    convert: Callable[[sqlite3.Row], Any],
) -> int:
    """Run *sql* with ``LIMIT len(dest)`` appended and fill *dest* from index 0.

    Returns the number of slots written.
    """
    capacity = len(dest)
    if capacity == 0:
        return 0
    try:
        rows = conn.execute(f"{sql} LIMIT ?", (*params, capacity)).fetchall()
    except STORE_ERRORS as e:
        logger.warning("Page query failed: %s", e)
        raise StoreError(str(e)) from e
    for i, row in enumerate(rows):
        dest[i] = convert(row)
    return len(rows)


def first_column(row: sqlite3.Row) -> Any:
    return row[0]


# ---------------------------------------------------------------------------
# Connection ownership
# ---------------------------------------------------------------------------

class TableHandle:
    """Owns one connection; shared lifecycle for Dictionary and PairIndex."""

    _conn: sqlite3.Connection
    _depth: int

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Group writes into one transaction; nested calls join the outer one."""
        self._depth += 1
        if self._depth == 1:
            self._conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._conn.rollback()
                logger.debug("Transaction rolled back")
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self._conn.commit()

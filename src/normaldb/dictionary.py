"""Dictionary: string normalization table mapping text values to ids."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

from normaldb import db as _db
from normaldb.exceptions import (
    NotFoundError,
    SchemaError,
    StoreError,
    UninitializedError,
)
from normaldb.models import DictionaryRow

logger = logging.getLogger(__name__)


def _id_value(row: sqlite3.Row) -> tuple[int, str]:
    return (row[0], row[1])


class Dictionary(_db.TableHandle):
    """Maps unique text values to stable integer ids (SQLite ``rowid``).

    The table may carry extra nullable TEXT "non-key" columns, added on
    open and written only through :meth:`notate`.

    Example::

        with Dictionary(":memory:", "genres", "genre") as genres:
            for genre in ("blues", "jazz", "punk", "bluegrass"):
                genres.create(genre)
            list(genres.search("b%s"))  # [(1, "blues"), (4, "bluegrass")]
    """

    def __init__(
        self,
        db_path: str | Path,
        table: str,
        column: str,
        nonkeys: Iterable[str] | None = None,
    ) -> None:
        self.table = _db.validate_identifier(table, "table name")
        self.column = _db.validate_identifier(column, "column name")
        nonkey_list = [
            _db.validate_identifier(name, "non-key column name")
            for name in (nonkeys or ())
        ]
        if column.casefold() in {name.casefold() for name in nonkey_list}:
            raise SchemaError(
                f"non-key column {column!r} collides with the value column"
            )

        def bootstrap(conn: sqlite3.Connection) -> None:
            _db.ensure_dictionary_table(conn, self.table, self.column)
            _db.add_columns(conn, self.table, nonkey_list)

        self._db_path = str(db_path)
        self._conn = _db.open_store(db_path, bootstrap)
        self._depth = 0

    def __repr__(self) -> str:
        return f"Dictionary({self._db_path!r}, {self.table!r}, {self.column!r})"

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def create(self, value: str) -> int:
        """Insert *value* if absent and return its id."""
        try:
            self._conn.execute(
                f"INSERT OR IGNORE INTO {self.table} ({self.column}) VALUES (?)",
                (value,),
            )
        except _db.STORE_ERRORS as e:
            logger.warning("Failed to insert %r into %s: %s", value, self.table, e)
            raise StoreError(f"failed to insert value {value!r}: {e}") from e
        return self.find(value)

    def find(self, value: str) -> int:
        """Return the id of *value* (exact, case-sensitive match)."""
        try:
            row = self._conn.execute(
                f"SELECT rowid FROM {self.table} WHERE {self.column} = ?",
                (value,),
            ).fetchone()
        except _db.STORE_ERRORS as e:
            raise StoreError(f"cannot find value {value!r}: {e}") from e
        if row is None:
            raise NotFoundError(f"no row with value {value!r}")
        return row[0]

    def get(self, id: int) -> str:
        """Return the value stored under *id*."""
        try:
            row = self._conn.execute(
                f"SELECT {self.column} FROM {self.table} WHERE rowid = ?",
                (id,),
            ).fetchone()
        except _db.STORE_ERRORS as e:
            raise StoreError(f"cannot get key {id}: {e}") from e
        if row is None:
            raise NotFoundError(f"missing key: {id}")
        return row[0]

    def get_row(self, id: int) -> DictionaryRow:
        """Return the value and every non-key column for *id*."""
        try:
            row = self._conn.execute(
                f"SELECT rowid, * FROM {self.table} WHERE rowid = ?",
                (id,),
            ).fetchone()
        except _db.STORE_ERRORS as e:
            raise StoreError(f"cannot get key {id}: {e}") from e
        if row is None:
            raise NotFoundError(f"missing key: {id}")
        nonkeys = {
            name: row[name] for name in row.keys()[1:]
            if name.casefold() != self.column.casefold()
        }
        return DictionaryRow(id=row[0], value=row[self.column], nonkeys=nonkeys)

    def get_bulk(self, ids: Sequence[int], dest: list) -> int:
        """Look up ``ids`` into ``dest``, skipping ids with no row.

        At most ``min(len(ids), len(dest))`` ids are tried.  Found values
        are packed from ``dest[0]``; the number written is returned.
        """
        sql = f"SELECT {self.column} FROM {self.table} WHERE rowid = ?"
        filled = 0
        cursor = self._conn.cursor()
        try:
            for id in ids[:len(dest)]:
                row = cursor.execute(sql, (id,)).fetchone()
                if row is not None:
                    dest[filled] = row[0]
                    filled += 1
        except _db.STORE_ERRORS as e:
            raise StoreError(f"bulk lookup failed: {e}") from e
        finally:
            cursor.close()
        return filled

    def count(self) -> int:
        """Number of rows in the table."""
        try:
            return self._conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]
        except _db.STORE_ERRORS as e:
            raise StoreError(str(e)) from e

    # ------------------------------------------------------------------
    # Non-key columns
    # ------------------------------------------------------------------

    def get_nonkeys(self) -> list[str]:
        """Non-key column names in table order."""
        try:
            columns = _db.table_columns(self._conn, self.table)
        except _db.STORE_ERRORS as e:
            raise StoreError(str(e)) from e
        return [
            name for name in columns if name.casefold() != self.column.casefold()
        ]

    def _stored_nonkey(self, column: str) -> str | None:
        """Non-key column as spelled in the table; SQLite names ignore case."""
        wanted = column.casefold()
        for name in self.get_nonkeys():
            if name.casefold() == wanted:
                return name
        return None

    def get_nonkey(self, id: int, column: str) -> str:
        """Read non-key *column* of row *id*."""
        stored = self._stored_nonkey(column)
        if stored is None:
            raise SchemaError(f"missing non-key column {column}")
        try:
            row = self._conn.execute(
                f"SELECT {stored} FROM {self.table} WHERE rowid = ?",
                (id,),
            ).fetchone()
        except _db.STORE_ERRORS as e:
            raise StoreError(f"cannot read non-key column {column}: {e}") from e
        if row is None:
            raise NotFoundError(
                f"cannot read non-key column {column}: invalid id {id}"
            )
        if row[0] is None:
            raise UninitializedError(
                f"uninitialized non-key column {column} for id {id}"
            )
        return row[0]

    def notate(self, id: int, column: str, text: str) -> None:
        """Set non-key *column* of row *id* to *text*.

        Raises NotFoundError when no row has *id*.
        """
        stored = self._stored_nonkey(column)
        if stored is None:
            raise StoreError(f"cannot notate column {column}: no such non-key column")
        try:
            cursor = self._conn.execute(
                f"UPDATE {self.table} SET {stored} = ? WHERE rowid = ?",
                (text, id),
            )
        except _db.STORE_ERRORS as e:
            raise StoreError(f"cannot notate column {column}: {e}") from e
        if cursor.rowcount == 0:
            raise NotFoundError(f"cannot notate column {column}: invalid id {id}")

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, pattern: str) -> Iterator[tuple[int, str]]:
        """Lazily yield ``(id, value)`` for values LIKE *pattern*, by id.

        ``%`` matches any run of characters and ``_`` exactly one.
        """
        return _db.iter_rows(
            self._conn,
            f"SELECT rowid, {self.column} FROM {self.table} "
            f"WHERE {self.column} LIKE ? ORDER BY rowid",
            (pattern,),
            _id_value,
        )

    def search_page(self, pattern: str, last_id: int, dest: list) -> int:
        """Fill *dest* with the next matches after *last_id*; return the count."""
        return _db.fill_page(
            self._conn,
            f"SELECT rowid, {self.column} FROM {self.table} "
            f"WHERE {self.column} LIKE ? AND rowid > ? ORDER BY rowid",
            (pattern, last_id),
            dest,
            _id_value,
        )


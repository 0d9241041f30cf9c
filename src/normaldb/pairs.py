"""PairIndex: many-to-many relation between two integer id spaces."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from normaldb import db as _db
from normaldb.exceptions import StoreError

logger = logging.getLogger(__name__)


class PairIndex(_db.TableHandle):
    """Unique ``(left, right)`` integer pairs, queryable in both directions.

    Forward lookups (:meth:`get`, :meth:`get_page`) go left to right and
    are ordered by right; inverse lookups (:meth:`invert`,
    :meth:`invert_page`) go right to left and are ordered by left.
    """

    def __init__(
        self,
        db_path: str | Path,
        table: str,
        left_column: str,
        right_column: str,
    ) -> None:
        self.table = _db.validate_identifier(table, "table name")
        self.left_column = _db.validate_identifier(left_column, "left column name")
        self.right_column = _db.validate_identifier(right_column, "right column name")

        def bootstrap(conn: sqlite3.Connection) -> None:
            _db.ensure_pairs_table(
                conn, self.table, self.left_column, self.right_column,
            )

        self._db_path = str(db_path)
        self._conn = _db.open_store(db_path, bootstrap)
        self._depth = 0

    def __repr__(self) -> str:
        return (
            f"PairIndex({self._db_path!r}, {self.table!r}, "
            f"{self.left_column!r}, {self.right_column!r})"
        )

    def insert(self, left: int, right: int) -> None:
        """Record the pair; an existing pair is left as is."""
        try:
            self._conn.execute(
                f"INSERT OR IGNORE INTO {self.table} "
                f"({self.left_column}, {self.right_column}) VALUES (?, ?)",
                (left, right),
            )
        except _db.STORE_ERRORS as e:
            logger.warning("Failed to insert %s,%s into %s: %s", left, right, self.table, e)
            raise StoreError(f"failed to insert {left},{right}: {e}") from e

    def get(self, left: int) -> Iterator[int]:
        """Lazily yield every right paired with *left*, ascending."""
        return self._lookup(self.right_column, self.left_column, left)

    def invert(self, right: int) -> Iterator[int]:
        """Lazily yield every left paired with *right*, ascending."""
        return self._lookup(self.left_column, self.right_column, right)

    def get_page(self, left: int, min_right: int, dest: list) -> int:
        """Fill *dest* with rights of *left* greater than *min_right*."""
        return self._page(self.right_column, self.left_column, left, min_right, dest)

    def invert_page(self, right: int, min_left: int, dest: list) -> int:
        """Fill *dest* with lefts of *right* greater than *min_left*."""
        return self._page(self.left_column, self.right_column, right, min_left, dest)

    def _lookup(self, want: str, by: str, key: int) -> Iterator[int]:
        return _db.iter_rows(
            self._conn,
            f"SELECT {want} FROM {self.table} WHERE {by} = ? ORDER BY {want}",
            (key,),
            _db.first_column,
        )

    def _page(self, want: str, by: str, key: int, after: int, dest: list) -> int:
        return _db.fill_page(
            self._conn,
            f"SELECT {want} FROM {self.table} "
            f"WHERE {by} = ? AND {want} > ? ORDER BY {want}",
            (key, after),
            dest,
            _db.first_column,
        )

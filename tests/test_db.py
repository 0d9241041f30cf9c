import pytest
import sqlite3
from normaldb import db
from normaldb.exceptions import SchemaError, StoreError

@pytest.fixture
def db_conn():
    """Create an in-memory database connection for testing."""
    conn = db.connect(":memory:")
    yield conn
    conn.close()

@pytest.mark.parametrize("name", ["names", "name", "_x", "Genre2", "xys"])
def test_valid_identifiers(name):
    assert db.validate_identifier(name) == name

@pytest.mark.parametrize("name", ["", "1abc", "a-b", "a b", "x;y", None])
def test_malformed_identifiers(name):
    with pytest.raises(SchemaError, match="must match"):
        db.validate_identifier(name)

@pytest.mark.parametrize("name", ["values", "VALUES", "key", "Order", "rowid", "_rowid_"])
def test_reserved_identifiers(name):
    with pytest.raises(SchemaError, match="reserved SQLite keyword"):
        db.validate_identifier(name, "table name")

def test_sqlite_prefix_reserved():
    with pytest.raises(SchemaError, match="'sqlite_' prefix"):
        db.validate_identifier("sqlite_master")

def test_connect_is_autocommit(db_conn):
    assert db_conn.isolation_level is None
    assert db_conn.row_factory is sqlite3.Row

def test_file_connection_uses_wal(tmp_path):
    conn = db.connect(tmp_path / "wal.db")
    try:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    finally:
        conn.close()

def test_ensure_dictionary_table_is_idempotent(db_conn):
    db.ensure_dictionary_table(db_conn, "names", "name")
    db_conn.execute("INSERT INTO names (name) VALUES ('jazz')")
    db.ensure_dictionary_table(db_conn, "names", "name")

    count = db_conn.execute("SELECT COUNT(*) FROM names").fetchone()[0]
    assert count == 1

def test_add_columns_tolerates_existing(db_conn):
    db.ensure_dictionary_table(db_conn, "names", "name")
    db.add_columns(db_conn, "names", ["address"])
    db.add_columns(db_conn, "names", ["address", "mantra"])

    assert db.table_columns(db_conn, "names") == ["name", "address", "mantra"]

def test_add_columns_propagates_other_failures(db_conn):
    with pytest.raises(sqlite3.OperationalError, match="no such table"):
        db.add_columns(db_conn, "missing", ["address"])

def test_open_store_closes_connection_on_schema_failure():
    seen = []

    def bootstrap(conn):
        seen.append(conn)
        conn.execute("CREATE TABLE broken (")

    with pytest.raises(SchemaError, match="cannot initialize schema"):
        db.open_store(":memory:", bootstrap)

    with pytest.raises(sqlite3.ProgrammingError):
        seen[0].execute("SELECT 1")

def test_iter_rows_defers_query(db_conn):
    rows = db.iter_rows(db_conn, "SELECT * FROM missing", (), db.first_column)
    with pytest.raises(StoreError, match="no such table"):
        next(rows)

def test_fill_page_leaves_tail_untouched(db_conn):
    db.ensure_pairs_table(db_conn, "xys", "x", "y")
    db_conn.execute("INSERT INTO xys (x, y) VALUES (1, 2)")
    dest = [-1, -1, -1]
    n = db.fill_page(db_conn, "SELECT y FROM xys WHERE x = ?", (1,), dest, db.first_column)

    assert n == 1
    assert dest == [2, -1, -1]

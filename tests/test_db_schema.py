import sqlite3
import pytest
from normaldb import Dictionary, PairIndex, SchemaError

def _indexes(path, table):
    conn = sqlite3.connect(str(path))
    try:
        return {
            row[1]: bool(row[2])
            for row in conn.execute(f"PRAGMA index_list({table})")
        }
    finally:
        conn.close()

def _columns(path, table):
    conn = sqlite3.connect(str(path))
    try:
        return [(row[1], row[2]) for row in conn.execute(f"PRAGMA table_info({table})")]
    finally:
        conn.close()

def test_dictionary_layout(db_path):
    """Value column is unique TEXT with its own index; non-keys are TEXT."""
    Dictionary(db_path, "names", "name", ["address"]).close()

    assert _columns(db_path, "names") == [("name", "TEXT"), ("address", "TEXT")]
    indexes = _indexes(db_path, "names")
    assert indexes["idx_names_name"] is False
    assert any(unique for name, unique in indexes.items() if name.startswith("sqlite_autoindex"))

def test_pair_layout(db_path):
    """Pair table has a (left, right) uniqueness constraint and one index per column."""
    PairIndex(db_path, "xys", "x", "y").close()

    assert _columns(db_path, "xys") == [("x", "INTEGER"), ("y", "INTEGER")]
    indexes = _indexes(db_path, "xys")
    assert "idx_xys_x" in indexes
    assert "idx_xys_y" in indexes
    assert any(unique for name, unique in indexes.items() if name.startswith("sqlite_autoindex"))

def test_components_share_a_file(db_path):
    """Both tables can live in one database without interfering."""
    with Dictionary(db_path, "genres", "genre") as genres, \
            PairIndex(db_path, "similar", "a", "b") as similar:
        blues = genres.create("blues")
        jazz = genres.create("jazz")
        similar.insert(blues, jazz)

        assert [genres.get(id) for id in similar.get(blues)] == ["jazz"]

def test_schema_failure_is_fatal(db_path):
    """An existing incompatible object under the index name aborts the open."""
    conn = sqlite3.connect(str(db_path))
    conn.execute("CREATE TABLE idx_names_name (x)")
    conn.commit()
    conn.close()

    with pytest.raises(SchemaError, match="already a table named idx_names_name"):
        Dictionary(db_path, "names", "name")

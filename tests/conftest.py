"""Shared test fixtures for normaldb."""

import pytest

from normaldb import Dictionary, PairIndex


@pytest.fixture
def names():
    """In-memory dictionary table ``names`` keyed on ``name``."""
    with Dictionary(":memory:", "names", "name") as norm:
        yield norm


@pytest.fixture
def notes():
    """In-memory dictionary with two non-key columns."""
    with Dictionary(":memory:", "names", "name", ["address", "mantra"]) as norm:
        yield norm


@pytest.fixture
def xys():
    """In-memory pair index ``xys`` over columns ``x`` and ``y``."""
    with PairIndex(":memory:", "xys", "x", "y") as pairs:
        yield pairs


@pytest.fixture
def db_path(tmp_path):
    """Path for a file-backed database that does not exist yet."""
    return tmp_path / "normal.db"

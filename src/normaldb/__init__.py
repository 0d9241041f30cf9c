"""normaldb: SQLite-backed normalization dictionaries and id pair indices.

Example::

    from normaldb import Dictionary

    genres = Dictionary(":memory:", "genres", "genre")
    for genre in ("blues", "jazz", "punk", "bluegrass"):
        genres.create(genre)
    assert len(list(genres.search("%"))) == 4
    assert next(genres.search("p%")) == (3, "punk")
"""

__version__ = "0.1.0"

from normaldb.dictionary import Dictionary
from normaldb.exceptions import (
    NormalDbError,
    NotFoundError,
    SchemaError,
    StoreError,
    UninitializedError,
)
from normaldb.models import DictionaryRow, PairRow
from normaldb.pairs import PairIndex

__all__ = [
    "Dictionary",
    "PairIndex",
    "DictionaryRow",
    "PairRow",
    "NormalDbError",
    "SchemaError",
    "StoreError",
    "NotFoundError",
    "UninitializedError",
]

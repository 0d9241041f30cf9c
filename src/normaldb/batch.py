"""
YAML batch loading for Dictionary and PairIndex tables.

A batch document lists values to create, notes to attach, and pairs to
insert::

    values:
      - blues
      - jazz
    notes:
      - value: jazz
        column: origin
        text: New Orleans
    pairs:
      - [1, 2]
      - {left: 2, right: 1}

Example usage:
    request = load_batch("genres.yaml")
    with Dictionary("music.db", "genres", "genre", ["origin"]) as genres:
        result = apply_batch(request, dictionary=genres)
    print(f"Created {len(result.created_ids)} values")
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .dictionary import Dictionary
from .exceptions import NormalDbError
from .models import PairRow
from .pairs import PairIndex

logger = logging.getLogger(__name__)

SECTIONS = ("values", "notes", "pairs")


class BatchParseError(NormalDbError):
    """Error parsing a batch document."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        super().__init__(message)


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class NoteSpec:
    """Non-key text to attach to the row holding ``value``."""
    value: str
    column: str
    text: str


@dataclass
class BatchRequest:
    """Parsed batch document."""
    values: List[str] = field(default_factory=list)
    notes: List[NoteSpec] = field(default_factory=list)
    pairs: List[PairRow] = field(default_factory=list)
    source_file: Optional[Path] = None

    @property
    def total_count(self) -> int:
        return len(self.values) + len(self.notes) + len(self.pairs)


@dataclass
class BatchResult:
    """Outcome of applying a batch."""
    created_ids: List[int]
    notes_applied: int
    pairs_inserted: int
    duration_seconds: float


# =============================================================================
# Loading
# =============================================================================

def load_batch(source: Union[str, Path, Dict[str, Any]]) -> BatchRequest:
    """Load a batch from a YAML file, a YAML string, or a dictionary.

    Raises:
        BatchParseError: If the document cannot be parsed or is invalid
        FileNotFoundError: If the file does not exist
    """
    source_path: Optional[Path] = None

    if isinstance(source, dict):
        data = source
    elif isinstance(source, Path) or (isinstance(source, str) and _is_file_path(source)):
        source_path = Path(source)
        if not source_path.exists():
            raise FileNotFoundError(f"File not found: {source_path}")
        with open(source_path, "r", encoding="utf-8") as f:
            data = _safe_load(f)
    else:
        data = _safe_load(source)

    return _parse_batch(data, source_path)


def _is_file_path(s: str) -> bool:
    """Check if a string looks like a file path."""
    if "\n" in s:
        return False
    if "/" in s or "\\" in s:
        return True
    return s.endswith((".yaml", ".yml"))


def _safe_load(stream: Any) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(stream)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line_num = mark.line + 1 if mark else None
        raise BatchParseError(f"Invalid YAML: {e}", line=line_num) from e

    if data is None:
        raise BatchParseError("Empty YAML content")
    if not isinstance(data, dict):
        raise BatchParseError("YAML root must be a mapping (dictionary)")
    return data


def _parse_batch(data: Dict[str, Any], source_path: Optional[Path]) -> BatchRequest:
    unknown = sorted(set(data) - set(SECTIONS))
    if unknown:
        raise BatchParseError(f"Unknown field(s): {', '.join(map(str, unknown))}")
    if not any(key in data for key in SECTIONS):
        raise BatchParseError("Batch must contain 'values', 'notes' or 'pairs'")

    return BatchRequest(
        values=_parse_values(_section(data, "values")),
        notes=_parse_notes(_section(data, "notes")),
        pairs=_parse_pairs(_section(data, "pairs")),
        source_file=source_path,
    )


def _section(data: Dict[str, Any], name: str) -> List[Any]:
    items = data.get(name, [])
    if items is None:
        return []
    if not isinstance(items, list):
        raise BatchParseError(f"Field '{name}' must be a list")
    return items


def _parse_values(items: List[Any]) -> List[str]:
    for i, item in enumerate(items):
        if not isinstance(item, str):
            raise BatchParseError(f"Value #{i + 1} must be a string")
    return list(items)


def _parse_notes(items: List[Any]) -> List[NoteSpec]:
    notes = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise BatchParseError(f"Note #{i + 1} must be a mapping (dictionary)")
        for key in ("value", "column", "text"):
            if not isinstance(item.get(key), str):
                raise BatchParseError(f"Note #{i + 1}: field '{key}' must be a string")
        notes.append(NoteSpec(item["value"], item["column"], item["text"]))
    return notes


def _parse_pairs(items: List[Any]) -> List[PairRow]:
    pairs = []
    for i, item in enumerate(items):
        if isinstance(item, dict):
            left, right = item.get("left"), item.get("right")
        elif isinstance(item, list) and len(item) == 2:
            left, right = item
        else:
            raise BatchParseError(
                f"Pair #{i + 1} must be [left, right] or {{left: .., right: ..}}"
            )
        if not _is_int(left) or not _is_int(right):
            raise BatchParseError(f"Pair #{i + 1}: ids must be integers")
        pairs.append(PairRow(left=left, right=right))
    return pairs


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# =============================================================================
# Applying
# =============================================================================

def apply_batch(
    request: BatchRequest,
    dictionary: Optional[Dictionary] = None,
    pairs: Optional[PairIndex] = None,
) -> BatchResult:
    """Apply a batch atomically per component.

    The dictionary section (values, then notes) runs in one transaction and
    commits before the pairs section opens its own, so both components may
    share one database file.  A note may address a value created by the
    same batch.  An error rolls back the section being applied and is
    re-raised; a dictionary section that already committed stays applied.
    """
    if (request.values or request.notes) and dictionary is None:
        raise BatchParseError("Batch has values/notes but no dictionary was given")
    if request.pairs and pairs is None:
        raise BatchParseError("Batch has pairs but no pair index was given")

    start_time = time.time()
    created_ids: List[int] = []

    if request.values or request.notes:
        with dictionary.transaction():
            for value in request.values:
                created_ids.append(dictionary.create(value))
            for note in request.notes:
                dictionary.notate(dictionary.find(note.value), note.column, note.text)

    if request.pairs:
        with pairs.transaction():
            for pair in request.pairs:
                pairs.insert(pair.left, pair.right)

    duration = time.time() - start_time
    logger.info(
        "Applied batch: %d values, %d notes, %d pairs in %.3fs",
        len(created_ids), len(request.notes), len(request.pairs), duration,
    )
    return BatchResult(
        created_ids=created_ids,
        notes_applied=len(request.notes),
        pairs_inserted=len(request.pairs),
        duration_seconds=duration,
    )


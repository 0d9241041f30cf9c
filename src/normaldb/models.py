"""Row dataclasses for normaldb."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DictionaryRow:
    """One dictionary row: surrogate id, unique value, non-key columns."""

    id: int
    value: str
    nonkeys: dict[str, str | None] = field(default_factory=dict)


@dataclass(frozen=True)
class PairRow:
    """One (left, right) pair of the pair index."""

    left: int
    right: int

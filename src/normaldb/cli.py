"""
Command-line drivers: ``normal-util`` for dictionaries, ``pairs-util`` for
pair indices.
"""
from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Optional, Tuple

from .batch import BatchParseError, apply_batch, load_batch
from .dictionary import Dictionary
from .exceptions import NormalDbError, StoreError
from .pairs import PairIndex

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_MATCH = 2
EXIT_INSERT_FAILED = 2

# SQLite INTEGER range
MIN_ID = -(2 ** 63)
MAX_ID = 2 ** 63 - 1

_NOTATE_RE = re.compile(r"(\d+)\s+(\S+)\s+(.*)", re.DOTALL)


def parse_notate(arg: str) -> Tuple[int, str, str]:
    """Split ``"ID COLUMN note text..."`` into its three parts."""
    match = _NOTATE_RE.match(arg.strip())
    if not match:
        raise ValueError(f"expected 'ID COLUMN TEXT', got {arg!r}")
    return _check_id(int(match.group(1))), match.group(2), match.group(3)


def parse_pair(arg: str) -> Tuple[int, int]:
    """Split ``"LEFT RIGHT"`` into two ints."""
    tokens = arg.split()
    if len(tokens) != 2:
        raise ValueError(f"expected 'LEFT RIGHT', got {arg!r}")
    return _check_id(int(tokens[0])), _check_id(int(tokens[1]))


def _check_id(id: int) -> int:
    if not MIN_ID <= id <= MAX_ID:
        raise ValueError(f"id {id} is outside the 64-bit integer range")
    return id


# =============================================================================
# normal-util
# =============================================================================

def create_normal_parser() -> argparse.ArgumentParser:
    """Create the normal-util argument parser."""
    parser = argparse.ArgumentParser(
        prog="normal-util",
        description="Normalization table utility routines.",
    )
    parser.add_argument("db", type=Path, help="SQLite database file")
    parser.add_argument("--table", "-t", required=True, help="Table name")
    parser.add_argument("--column", "-c", required=True, help="Value column name")
    parser.add_argument(
        "--nonkey",
        action="append",
        default=[],
        metavar="NAME",
        help="Non-key column to add if missing (repeatable)",
    )
    _add_verbose(parser)

    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument("--insert", "-i", metavar="VALUE", help="Insert a value, print its id")
    actions.add_argument("--get", "-g", type=int, metavar="ID", help="Print the value for an id")
    actions.add_argument(
        "--note", "-n",
        metavar="'ID COLUMN TEXT'",
        help="Set a non-key column for an id",
    )
    actions.add_argument("--search", "-s", metavar="PATTERN", help="LIKE search (%% and _ wildcards)")
    actions.add_argument("--batch", "-b", type=Path, metavar="FILE", help="Apply a YAML batch file")
    return parser


def normal_main(argv: Optional[list] = None) -> int:
    """Main entry point for normal-util."""
    args = create_normal_parser().parse_args(argv)
    _setup_logging(args.verbose)

    try:
        with Dictionary(args.db, args.table, args.column, args.nonkey) as normal:
            return _run_normal(normal, args)
    except (NormalDbError, ValueError, FileNotFoundError) as e:
        print(f"error: {e}")
        return EXIT_ERROR


def _run_normal(normal: Dictionary, args: argparse.Namespace) -> int:
    if args.insert is not None:
        print(normal.create(args.insert))
    elif args.get is not None:
        print(normal.get(args.get))
    elif args.note is not None:
        id, column, text = parse_notate(args.note)
        normal.notate(id, column, text)
    elif args.search is not None:
        found = False
        for id, value in normal.search(args.search):
            found = True
            print(f"{id}: {value}")
        if not found:
            print("no key")
            return EXIT_NO_MATCH
    else:
        request = load_batch(args.batch)
        result = apply_batch(request, dictionary=normal)
        print(f"values: {len(result.created_ids)}  notes: {result.notes_applied}")
        print(f"rows: {normal.count()}")
    return EXIT_OK


# =============================================================================
# pairs-util
# =============================================================================

def create_pairs_parser() -> argparse.ArgumentParser:
    """Create the pairs-util argument parser."""
    parser = argparse.ArgumentParser(
        prog="pairs-util",
        description="Id pairs table utility routines.",
    )
    parser.add_argument("db", type=Path, help="SQLite database file")
    parser.add_argument("--table", "-t", required=True, help="Table name")
    parser.add_argument("--left", "-l", required=True, help="Left column name")
    parser.add_argument("--right", "-r", required=True, help="Right column name")
    _add_verbose(parser)

    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument("--insert", "-i", metavar="'LEFT RIGHT'", help="Insert a pair")
    actions.add_argument("--get", "-g", type=int, metavar="LEFT", help="Print rights for a left id")
    actions.add_argument("--search", "-s", type=int, metavar="RIGHT", help="Print lefts for a right id")
    actions.add_argument("--batch", "-b", type=Path, metavar="FILE", help="Apply a YAML batch file")
    return parser


def pairs_main(argv: Optional[list] = None) -> int:
    """Main entry point for pairs-util."""
    args = create_pairs_parser().parse_args(argv)
    _setup_logging(args.verbose)

    try:
        with PairIndex(args.db, args.table, args.left, args.right) as pairs:
            return _run_pairs(pairs, args)
    except (NormalDbError, ValueError, FileNotFoundError) as e:
        print(f"error: {e}")
        return EXIT_ERROR


def _run_pairs(pairs: PairIndex, args: argparse.Namespace) -> int:
    if args.insert is not None:
        left, right = parse_pair(args.insert)
        try:
            pairs.insert(left, right)
        except StoreError as e:
            print(f"error: {e}")
            return EXIT_INSERT_FAILED
    elif args.get is not None:
        print(" ".join(str(right) for right in pairs.get(args.get)))
    elif args.search is not None:
        print(" ".join(str(left) for left in pairs.invert(args.search)))
    else:
        request = load_batch(args.batch)
        if request.values or request.notes:
            raise BatchParseError("pairs-util batches may only contain 'pairs'")
        result = apply_batch(request, pairs=pairs)
        print(f"pairs: {result.pairs_inserted}")
    return EXIT_OK


# =============================================================================
# Helpers
# =============================================================================

def _add_verbose(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log debug output to stderr",
    )


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


if __name__ == "__main__":
    sys.exit(normal_main())

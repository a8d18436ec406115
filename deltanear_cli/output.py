"""Shared output utilities for CLI verbs."""

import json
import sys
from typing import Any, Dict

from deltanear import CanonicalIntent, CanonicalizationError, canonicalize

EXIT_REJECTED = 1
EXIT_MISMATCH = 2


def print_result(result: Dict, compact: bool = False) -> None:
    """Print a result dict as JSON to stdout."""
    indent = None if compact else 2
    print(json.dumps(result, indent=indent, ensure_ascii=False))


def die(msg: str, code: int = EXIT_REJECTED) -> None:
    """Print error to stderr and exit."""
    print(f"error: {msg}", file=sys.stderr)
    sys.exit(code)


def read_document(source: str) -> Any:
    """Read a JSON document from a file path, or stdin when source is '-'."""
    try:
        if source == "-":
            raw = sys.stdin.read()
        else:
            with open(source, encoding="utf-8") as f:
                raw = f.read()
    except OSError as e:
        die(f"cannot read {source}: {e}")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        die(f"invalid JSON in {source}: {e}")


def canonicalize_or_die(source: str) -> CanonicalIntent:
    """Canonicalize the document at source, exiting with the error kind on rejection."""
    document = read_document(source)
    try:
        return canonicalize(document)
    except CanonicalizationError as e:
        die(str(e))


def add_source_argument(parser) -> None:
    parser.add_argument(
        "source",
        nargs="?",
        default="-",
        help="Path to an intent JSON file, or '-' for stdin (default)",
    )

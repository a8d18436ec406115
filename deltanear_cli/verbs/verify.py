"""deltanear verify <expected> [source]

Exits 0 when the document hashes to <expected>, 2 on mismatch and 1 when
the document is rejected.
"""

from deltanear.primitives.errors import IntegrityError
from deltanear.primitives.integrity import verify_integrity
from deltanear_cli.output import (
    EXIT_MISMATCH,
    add_source_argument,
    canonicalize_or_die,
    die,
)


def register(subparsers):
    p = subparsers.add_parser("verify", help="Check a document against an expected intent hash")
    p.add_argument("expected", help="Expected 64-char hex intent hash")
    add_source_argument(p)
    p.set_defaults(handler=handle)


def handle(args):
    result = canonicalize_or_die(args.source)
    try:
        verify_integrity(result.tree, args.expected)
    except IntegrityError as e:
        die(f"{e.message}: expected {e.expected}, got {e.actual}", code=EXIT_MISMATCH)
    print(f"ok {result.intent_hash}")
    return 0

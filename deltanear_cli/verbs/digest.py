"""deltanear hash [source]"""

from deltanear_cli.output import add_source_argument, canonicalize_or_die


def register(subparsers):
    p = subparsers.add_parser("hash", help="Print the intent hash")
    add_source_argument(p)
    p.set_defaults(handler=handle)


def handle(args):
    print(canonicalize_or_die(args.source).intent_hash)
    return 0

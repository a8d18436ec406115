"""deltanear canonicalize [source] [--compact]"""

from deltanear_cli.output import add_source_argument, canonicalize_or_die, print_result


def register(subparsers):
    p = subparsers.add_parser("canonicalize", help="Print the canonical intent and its hash")
    add_source_argument(p)
    p.add_argument("--compact", action="store_true",
                   help="Print the exact canonical serialization on one line")
    p.set_defaults(handler=handle)


def handle(args):
    result = canonicalize_or_die(args.source)
    if args.compact:
        print(result.serialized.decode("utf-8"))
        print(result.intent_hash)
        return 0
    print_result({"intent_hash": result.intent_hash, "canonical": result.tree})
    return 0

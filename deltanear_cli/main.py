"""deltanear-cli entry point.

Maps shell verbs to the canonicalization kernel:
- canonicalize: print the canonical tree and its hash
- hash: print only the intent hash
- verify: compare the intent hash against an expected value

No service transport. Imports deltanear directly as a Python library.
"""

import argparse
import logging
import sys

from deltanear_cli.verbs import canonicalize, digest, verify


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deltanear",
        description="Canonicalize and hash DeltaNEAR derivatives intents",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="verb", required=True)

    canonicalize.register(sub)
    digest.register(sub)
    verify.register(sub)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="[%(name)s] %(levelname)s: %(message)s",
            stream=sys.stderr,
        )

    # Dispatch to verb handler
    handler = args.handler
    return handler(args) or 0


if __name__ == "__main__":
    sys.exit(main())

"""``python -m notablog generate|preview WORKDIR``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from notablog.errors import NotablogError
from notablog.generate import GenerateOptions, generate
from notablog.preview import preview


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="notablog")
    commands = parser.add_subparsers(dest="command", required=True)

    gen = commands.add_parser("generate", help="generate the blog")
    gen.add_argument("work_dir", type=Path)
    gen.add_argument("--concurrency", type=int, default=None)
    gen.add_argument("--verbose", action="store_true")
    gen.add_argument("--ignore-cache", action="store_true")

    prev = commands.add_parser("preview", help="open the generated blog")
    prev.add_argument("work_dir", type=Path)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "preview":
            preview(args.work_dir)
            return 0
        options = GenerateOptions(
            concurrency=args.concurrency,
            verbose=args.verbose,
            ignore_cache=args.ignore_cache,
        )
        failed = asyncio.run(generate(args.work_dir, options))
    except NotablogError as exc:
        print(f"notablog: [{exc.code}] {exc}", file=sys.stderr)
        return 1
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())

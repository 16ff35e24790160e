"""Main CLI entry point for seridl."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .. import __version__
from .analyze import analyze_file
from ..compiler import compile_schema
from ..config import CompilerConfig
from ..emit import c, markdown
from ..exceptions import SeridlError
from ..loader import load_schema
from ..log import setup_logging
from ..types import Endian

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seridl",
        description="seridl: schema-driven binary message compiler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  seridl generate messages.json -o include/      Generate C99 headers
  seridl docs messages.json -o docs/COMMANDS.md  Generate Markdown docs
  seridl analyze messages.yaml                   Show message layouts
        """,
    )
    parser.add_argument("--version", action="version", version=f"seridl {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase log verbosity (-vv for debug)"
    )

    limits = argparse.ArgumentParser(add_help=False)
    limits.add_argument("--max-packet-id", type=int, metavar="N", help="Highest allowed packet id")
    limits.add_argument(
        "--max-array-length", type=int, metavar="N", help="Highest allowed max_length"
    )
    payload = limits.add_mutually_exclusive_group()
    payload.add_argument("--max-payload", type=int, metavar="BYTES", help="Payload size limit")
    payload.add_argument(
        "--no-payload-limit", action="store_true", help="Do not limit the payload size"
    )
    limits.add_argument(
        "--default-endian",
        choices=[e.value for e in Endian],
        help="Endianness for entries that do not set one",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    generate = commands.add_parser("generate", parents=[limits], help="Generate C99 headers")
    generate.add_argument("schema", type=Path, help="Schema file (JSON or YAML)")
    generate.add_argument(
        "-o", "--output-dir", type=Path, default=Path("."), help="Directory for the headers"
    )
    generate.add_argument("--base-name", default=None, help="Header filename prefix")

    docs = commands.add_parser("docs", parents=[limits], help="Generate Markdown documentation")
    docs.add_argument("schema", type=Path, help="Schema file (JSON or YAML)")
    docs.add_argument(
        "-o", "--output", type=Path, default=None, help="Output file (default stdout)"
    )

    analyze = commands.add_parser("analyze", parents=[limits], help="Show message layouts")
    analyze.add_argument("schema", type=Path, help="Schema file (JSON or YAML)")

    return parser


def config_from_args(args: argparse.Namespace) -> CompilerConfig:
    """Build a CompilerConfig from the limit flags that were given."""
    overrides: dict[str, object] = {}
    if args.max_packet_id is not None:
        overrides["max_packet_id"] = args.max_packet_id
    if args.max_array_length is not None:
        overrides["max_array_length"] = args.max_array_length
    if args.no_payload_limit:
        overrides["max_payload_bytes"] = None
    elif args.max_payload is not None:
        overrides["max_payload_bytes"] = args.max_payload
    if args.default_endian is not None:
        overrides["default_endian"] = Endian(args.default_endian)
    return CompilerConfig(**overrides)


def run_generate(args: argparse.Namespace, config: CompilerConfig) -> int:
    compiled = compile_schema(load_schema(args.schema, config), config)
    base_name = args.base_name or args.schema.stem
    files = c.generate(compiled, source=str(args.schema), base_name=base_name)

    args.output_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in files.items():
        path = args.output_dir / filename
        path.write_text(content, encoding="utf-8")
        logger.info("wrote %s", path)

    print(
        f"Generated C99 output in {args.output_dir} "
        f"for {len(compiled.messages)} message definition(s)."
    )
    return 0


def run_docs(args: argparse.Namespace, config: CompilerConfig) -> int:
    compiled = compile_schema(load_schema(args.schema, config), config)
    text = markdown.generate(compiled, source=str(args.schema))

    if args.output is None:
        sys.stdout.write(text)
        return 0

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(text, encoding="utf-8")
    print(f"Generated documentation at {args.output} for {len(compiled.messages)} command(s).")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the seridl CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    setup_logging(level)

    if args.command is None:
        parser.print_help()
        return 0

    if not args.schema.exists():
        print(f"Error: File not found: {args.schema}", file=sys.stderr)
        return 1

    try:
        config = config_from_args(args)
        if args.command == "generate":
            return run_generate(args, config)
        if args.command == "docs":
            return run_docs(args, config)
        analyze_file(args.schema, config)
        return 0
    except SeridlError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error processing {args.schema}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

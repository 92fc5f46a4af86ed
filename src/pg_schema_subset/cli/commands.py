from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from dotenv import load_dotenv

from pg_schema_subset.config import SubsetConfig, load_config
from pg_schema_subset.parser import parse_schema_dump, read_schema_dump
from pg_schema_subset.renderer import write_subset
from pg_schema_subset.report import format_summary
from pg_schema_subset.subset import build_subset

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg-schema-subset",
        description="Extract a referentially-consistent subset of a PostgreSQL schema dump"
    )
    parser.add_argument("input", nargs="?", help="Schema dump (e.g. structure.sql)")
    parser.add_argument("prefix", nargs="?", help="Table prefix (matches <prefix>_*)")
    parser.add_argument("whitelist", nargs="*",
                        help="Related tables to include in full instead of as stubs")
    parser.add_argument("--output", "-o", help="Output file (default: filtered_tables.sql)")
    parser.add_argument("--config", help="Path to YAML configuration file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        type=str.upper, help="Log level (default: WARNING)")
    parser.add_argument("--dialect", help="sqlglot dialect for column parsing (default: postgres)")
    return parser


def run(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    # Load environment variables first
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.input:
        parser.print_usage(sys.stderr)
        print("Error: missing input file argument", file=sys.stderr)
        sys.exit(1)

    try:
        config = resolve_config(args)
        logging.basicConfig(
            level=getattr(logging, config.log_level),
            format=LOG_FORMAT,
            handlers=[
                logging.StreamHandler(sys.stderr)
            ]
        )
        subset_dump(Path(args.input), config)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def resolve_config(args: argparse.Namespace) -> SubsetConfig:
    """Merge command-line arguments over file/environment configuration."""
    config = load_config(args.config)

    updates = {}
    if args.prefix:
        updates["prefix"] = args.prefix
    if args.whitelist:
        updates["whitelist"] = args.whitelist
    if args.output:
        updates["output_path"] = args.output
    if args.log_level:
        updates["log_level"] = args.log_level
    if args.dialect:
        updates["dialect"] = args.dialect

    if not updates:
        return config
    return SubsetConfig.model_validate({**config.model_dump(), **updates})


def subset_dump(input_path: Path, config: SubsetConfig) -> None:
    """Parse a dump, write the subset for the configured prefix, print a summary.

    Without a prefix only the table count is reported and nothing is written.

    Raises:
        FileNotFoundError: If the input file doesn't exist
        RuntimeError: If the input can't be read or the output can't be written
    """
    content = read_schema_dump(input_path)
    schema = parse_schema_dump(
        content,
        default_schema=config.default_schema,
        dialect=config.dialect
    )

    if not config.prefix:
        print(format_summary(len(schema.tables)))
        return

    subset = build_subset(schema, config.prefix, config.whitelist)
    output_path = write_subset(subset, config.output_path)
    print(format_summary(len(schema.tables), subset, output_path))

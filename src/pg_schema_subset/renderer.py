"""Render a schema subset back to SQL.

Sections, in order: enum definitions, prefix-matched tables, related tables
(full or stub), foreign key constraints. Full definitions are copied
verbatim; only stubs are synthesized.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from .parser import DEFAULT_SCHEMA, ParsedTable, parse_schema_dump
from .subset import SchemaSubset, build_subset

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILE = "filtered_tables.sql"

ENUM_HEADER = "-- Enum type definitions"
TABLES_HEADER = "-- Tables with prefix"
RELATED_HEADER = "-- Related tables"
WHITELISTED_HEADER = "-- Full definition for whitelisted table"
FOREIGN_KEYS_HEADER = "-- Foreign key constraints"

_STUB_HEADER = re.compile(r'^\s*CREATE\s+TABLE\b[^\n]*?\(', re.IGNORECASE | re.MULTILINE)
_STUB_ID_LINE = re.compile(r'^\s*"?id"?\s+[^,\n]+', re.MULTILINE)


def render_stub(table: ParsedTable) -> str | None:
    """Build a stub holding only the CREATE TABLE header and the id column.

    Returns:
        Stub SQL, or None when the table has no recognizable id column
    """
    header = _STUB_HEADER.search(table.create_statement)
    id_line = _STUB_ID_LINE.search(table.create_statement)
    if not header or not id_line:
        return None

    id_definition = id_line.group(0).strip()
    # id declared last with the closing paren on the same line
    if id_definition.endswith(');'):
        id_definition = id_definition[:-2].rstrip()

    return f"{header.group(0).strip()}\n    {id_definition}\n);\n\n"


def render_subset(subset: SchemaSubset) -> str:
    """Render the subset as a SQL script."""
    parts: list[str] = []

    if subset.used_enums:
        parts.append(f"{ENUM_HEADER}\n")
        parts.extend(enum.create_statement for enum in subset.used_enums)
        parts.append("\n")

    parts.append(f"{TABLES_HEADER}\n")
    parts.extend(table.create_statement for table in subset.matched_tables)

    parts.append(f"\n{RELATED_HEADER}\n")
    for table in subset.related_tables:
        if subset.is_whitelisted(table):
            parts.append(f"\n{WHITELISTED_HEADER}\n")
            parts.append(table.create_statement)
            continue

        stub = render_stub(table)
        if stub is None:
            logger.debug(f"Omitting stub for {table.qualified_name}: no id column")
            continue
        parts.append(stub)

    if subset.foreign_keys:
        parts.append(f"\n{FOREIGN_KEYS_HEADER}\n")
        parts.extend(f"{fk.sql}\n" for fk in subset.foreign_keys)

    return "".join(parts)


def write_subset(subset: SchemaSubset, output_path: Path | str = DEFAULT_OUTPUT_FILE) -> Path:
    """Render the subset and write it as UTF-8.

    Raises:
        RuntimeError: If the output file can't be written
    """
    output_path = Path(output_path)
    content = render_subset(subset)

    try:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise RuntimeError(f"Failed to write output file {output_path}: {e}") from e

    logger.info(f"Wrote subset to {output_path}")
    return output_path


def extract_subset(
    content: str,
    prefix: str,
    whitelist: Iterable[str] = (),
    default_schema: str = DEFAULT_SCHEMA,
    dialect: str = "postgres"
) -> str:
    """Parse a dump and return the rendered subset script."""
    schema = parse_schema_dump(content, default_schema=default_schema, dialect=dialect)
    return render_subset(build_subset(schema, prefix, whitelist))

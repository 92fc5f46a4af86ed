"""PostgreSQL schema subsetting.

Extracts a referentially-consistent subset of a schema dump:
- Scan CREATE TABLE, CREATE TYPE ... AS ENUM and ALTER TABLE constraints
- Infer related tables from <name>_id naming conventions
- Keep prefix-matched tables, stub related ones, carry used enums and FKs
- Render the result back to SQL
"""
from __future__ import annotations

from .scanner import (
    ScannedStatement,
    scan_statements,
)

from .parser import (
    ParsedColumn,
    ParsedTable,
    ParsedEnum,
    ParsedForeignKey,
    ParsedSchema,
    read_schema_dump,
    parse_schema_dump,
    parse_create_table,
    parse_create_enum,
    parse_foreign_keys,
)

from .relationships import find_related_tables

from .subset import (
    SchemaSubset,
    build_subset,
    filter_tables_by_prefix,
    find_used_enums,
    find_relevant_foreign_keys,
)

from .renderer import (
    render_subset,
    render_stub,
    write_subset,
    extract_subset,
)

__all__ = [
    # Scanner
    "ScannedStatement",
    "scan_statements",
    # Parser types
    "ParsedColumn",
    "ParsedTable",
    "ParsedEnum",
    "ParsedForeignKey",
    "ParsedSchema",
    # Parser functions
    "read_schema_dump",
    "parse_schema_dump",
    "parse_create_table",
    "parse_create_enum",
    "parse_foreign_keys",
    # Relationships
    "find_related_tables",
    # Subset
    "SchemaSubset",
    "build_subset",
    "filter_tables_by_prefix",
    "find_used_enums",
    "find_relevant_foreign_keys",
    # Renderer
    "render_subset",
    "render_stub",
    "write_subset",
    "extract_subset",
]

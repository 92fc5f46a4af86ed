"""Subset selection: which tables, enums and foreign keys to keep.

Given a parsed dump, a prefix and a whitelist, decides:
- matched tables: names starting with ``<prefix>_``
- related tables: linked to matched tables by naming convention
- used enums: referenced by matched tables or whitelisted related tables
- foreign keys: touching a matched table or a whitelisted name
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from .parser import ParsedEnum, ParsedForeignKey, ParsedSchema, ParsedTable
from .relationships import find_related_tables

logger = logging.getLogger(__name__)

# schema.name, optionally quoted, not part of a longer dotted path
_QUALIFIED_TYPE = re.compile(r'(?<![\w."])"?(\w+)"?\."?(\w+)"?(?![\w."])')


@dataclass
class SchemaSubset:
    """Result of one subsetting run."""
    prefix: str
    whitelist: list[str] = field(default_factory=list)
    matched_tables: list[ParsedTable] = field(default_factory=list)
    related_tables: list[ParsedTable] = field(default_factory=list)
    used_enums: list[ParsedEnum] = field(default_factory=list)
    foreign_keys: list[ParsedForeignKey] = field(default_factory=list)

    def is_whitelisted(self, table: ParsedTable) -> bool:
        return is_whitelisted(table.table_name, self.whitelist)

    @property
    def whitelisted_related(self) -> list[ParsedTable]:
        return [t for t in self.related_tables if self.is_whitelisted(t)]

    @property
    def stub_related(self) -> list[ParsedTable]:
        return [t for t in self.related_tables if not self.is_whitelisted(t)]


def is_whitelisted(table_name: str, whitelist: Iterable[str]) -> bool:
    """Case-insensitive bare-name membership."""
    name = table_name.lower()
    return any(name == entry.lower() for entry in whitelist)


def filter_tables_by_prefix(tables: list[ParsedTable], prefix: str) -> list[ParsedTable]:
    """Tables whose name starts with ``<prefix>_`` (case-insensitive).

    The underscore delimiter is required: prefix ``orders`` matches
    ``orders_items`` but not ``ordersarchive_items``.
    """
    wanted = prefix.lower() + "_"
    return [table for table in tables if table.table_name.lower().startswith(wanted)]


def referenced_type_names(table: ParsedTable) -> set[str]:
    """Lowercased ``schema.name`` candidates found in the table body.

    Trailing ``DEFAULT ...`` and ``NOT NULL`` clauses never extend a
    candidate, so ``public.status NOT NULL`` yields ``public.status``.
    """
    statement = table.create_statement
    body = statement[statement.find('(') + 1:]
    return {
        f"{schema}.{name}".lower()
        for schema, name in _QUALIFIED_TYPE.findall(body)
    }


def find_used_enums(tables: list[ParsedTable], enums: list[ParsedEnum]) -> list[ParsedEnum]:
    """Enums referenced as a column type by any of the tables, in source order."""
    candidates: set[str] = set()
    for table in tables:
        candidates |= referenced_type_names(table)

    used: dict[str, ParsedEnum] = {}
    for enum in enums:
        qualified = enum.qualified_name.lower()
        if qualified in candidates:
            used.setdefault(qualified, enum)
    return list(used.values())


def find_relevant_foreign_keys(
    foreign_keys: list[ParsedForeignKey],
    matched_tables: list[ParsedTable],
    whitelist: Iterable[str]
) -> list[ParsedForeignKey]:
    """Constraints with either endpoint matched or whitelisted.

    Matched tables compare by (schema, name); whitelist entries compare by
    bare table name only.
    """
    matched_keys = {table.key for table in matched_tables}
    whitelist = list(whitelist)

    def is_relevant(schema_name: str, table_name: str) -> bool:
        return (
            (schema_name.lower(), table_name.lower()) in matched_keys
            or is_whitelisted(table_name, whitelist)
        )

    return [
        fk for fk in foreign_keys
        if is_relevant(fk.from_schema, fk.from_table) or is_relevant(fk.to_schema, fk.to_table)
    ]


def build_subset(
    schema: ParsedSchema,
    prefix: str,
    whitelist: Iterable[str] = ()
) -> SchemaSubset:
    """Compute the referentially-consistent subset for a prefix.

    Whitelisting only affects related tables: a table that matches the
    prefix is always emitted through the prefix path.

    Args:
        schema: Parsed dump
        prefix: Table prefix without the trailing underscore
        whitelist: Bare table names to emit in full when related

    Returns:
        SchemaSubset
    """
    whitelist = [name for name in whitelist if name]

    matched = filter_tables_by_prefix(schema.tables, prefix)
    related = find_related_tables(matched, schema.tables)

    enum_sources = matched + [t for t in related if is_whitelisted(t.table_name, whitelist)]
    used_enums = find_used_enums(enum_sources, schema.enums)

    foreign_keys = find_relevant_foreign_keys(schema.foreign_keys, matched, whitelist)

    logger.info(
        f"Prefix '{prefix}': {len(matched)} matched, {len(related)} related, "
        f"{len(used_enums)} enums, {len(foreign_keys)} foreign keys"
    )

    return SchemaSubset(
        prefix=prefix,
        whitelist=whitelist,
        matched_tables=matched,
        related_tables=related,
        used_enums=used_enums,
        foreign_keys=foreign_keys,
    )

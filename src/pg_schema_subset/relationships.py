"""Naming-convention relationship inference.

Dumps with logical (unconstrained) references still follow the Rails
convention of a ``<singular>_id`` column pointing at table ``<singular>s``.
This module recovers those links by name alone:

- outbound: a ``foo_id`` column in a matched table relates it to a table
  named ``foo`` or ``foos``
- inbound: a table with a ``foo_id`` column relates to a matched table
  named ``foos`` (trailing ``s`` stripped) or ``foo``

Pluralization is deliberately naive (``+s`` only). Schemas are ignored when
comparing names.
"""
from __future__ import annotations

import logging

from .parser import ParsedTable

logger = logging.getLogger(__name__)

ID_SUFFIX = "_id"


def referenced_base_names(table: ParsedTable) -> list[tuple[str, str]]:
    """Return ``(column_name, base_name)`` for every ``*_id`` column."""
    bases = []
    for col in table.columns:
        column_name = col.name.lower()
        if column_name.endswith(ID_SUFFIX) and len(column_name) > len(ID_SUFFIX):
            bases.append((column_name, column_name[:-len(ID_SUFFIX)]))
    return bases


def singular_name(table_name: str) -> str:
    """Strip one trailing ``s``."""
    name = table_name.lower()
    return name[:-1] if name.endswith("s") else name


def find_related_tables(
    filtered_tables: list[ParsedTable],
    all_tables: list[ParsedTable]
) -> list[ParsedTable]:
    """Find tables linked to the filtered set by ``<name>_id`` columns.

    Args:
        filtered_tables: Prefix-matched tables
        all_tables: Every table in the dump

    Returns:
        Related tables in discovery order, excluding the filtered tables
        themselves, deduplicated by (schema, name)
    """
    filtered_keys = {table.key for table in filtered_tables}
    related: dict[tuple[str, str], ParsedTable] = {}

    tables_by_name: dict[str, list[ParsedTable]] = {}
    for table in all_tables:
        tables_by_name.setdefault(table.table_name.lower(), []).append(table)

    # Outbound: tables our filtered tables point at
    for table in filtered_tables:
        for column_name, base in referenced_base_names(table):
            for candidate_name in (base, base + "s"):
                for other in tables_by_name.get(candidate_name, []):
                    if other.key in filtered_keys or other.key in related:
                        continue
                    related[other.key] = other
                    logger.debug(
                        f"Found related table {other.qualified_name} referenced by "
                        f"column {column_name} in table {table.qualified_name}"
                    )

    # Inbound: tables pointing at our filtered tables
    for table in filtered_tables:
        expected_column = singular_name(table.table_name) + ID_SUFFIX
        for other in all_tables:
            if other.key in filtered_keys or other.key in related:
                continue
            if any(col.name.lower() == expected_column for col in other.columns):
                related[other.key] = other
                logger.debug(
                    f"Found related table {other.qualified_name} due to column "
                    f"{expected_column} referencing {table.qualified_name}"
                )

    return list(related.values())

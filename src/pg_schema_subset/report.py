"""Human-readable run summary printed by the CLI."""
from __future__ import annotations

from pathlib import Path

from .subset import SchemaSubset


def format_summary(
    total_tables: int,
    subset: SchemaSubset | None = None,
    output_path: Path | str | None = None
) -> str:
    """Format per-category counts for a run.

    Args:
        total_tables: Number of tables found in the dump
        subset: Subset computed for a prefix, if any
        output_path: Where the subset was written, if it was

    Returns:
        Multi-line summary text
    """
    lines = [f"Found {total_tables} total tables"]
    if subset is None:
        return "\n".join(lines)

    lines.append("")
    lines.append(f"Found {len(subset.matched_tables)} tables with prefix '{subset.prefix}':")
    lines.extend(table.qualified_name for table in subset.matched_tables)

    lines.append("")
    lines.append(f"Found {len(subset.related_tables)} related tables:")
    lines.extend(table.qualified_name for table in subset.related_tables)

    lines.append("")
    lines.append(
        f"Found {len(subset.used_enums)} enum types used by filtered tables "
        f"and whitelisted related tables:"
    )
    lines.extend(enum.qualified_name for enum in subset.used_enums)

    lines.append("")
    lines.append(f"Found {len(subset.foreign_keys)} foreign key constraints")

    if output_path is not None:
        lines.append("")
        lines.append(
            f"Wrote {len(subset.matched_tables) + len(subset.related_tables)} tables and "
            f"{len(subset.used_enums)} enum types to {output_path}"
        )
    if subset.whitelist:
        lines.append(
            f"Included full definitions for whitelisted tables: {', '.join(subset.whitelist)}"
        )

    return "\n".join(lines)

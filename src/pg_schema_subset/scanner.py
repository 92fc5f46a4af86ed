"""Line-oriented statement scanner for PostgreSQL schema dumps.

Splits a dump into the statements the subsetting pipeline cares about:
CREATE TABLE, CREATE TYPE ... AS ENUM and ALTER TABLE ... ADD/DROP CONSTRAINT.
Everything else is consumed line by line and discarded.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator

logger = logging.getLogger(__name__)

TABLE = "TABLE"
ENUM = "ENUM"
ALTER_TABLE = "ALTER_TABLE"

_TABLE_START = re.compile(r'^CREATE\s+TABLE\b.*\(', re.IGNORECASE)
_ENUM_START = re.compile(r'^CREATE\s+TYPE\b.*\bAS\s+ENUM\b', re.IGNORECASE)
_ALTER_START = re.compile(r'^ALTER\s+TABLE\b', re.IGNORECASE)
_CONSTRAINT_CHANGE = re.compile(r'\b(?:ADD|DROP)\s+CONSTRAINT\b', re.IGNORECASE)
_DOLLAR_TAG = re.compile(r'\$(\w*)\$')
_QUOTED_OR_COMMENT = re.compile(r"'(?:[^']|'')*'|--.*$")


@dataclass
class ScannedStatement:
    """Verbatim statement captured from the source dump."""
    kind: str  # TABLE, ENUM, ALTER_TABLE
    content: str  # lines joined with "\n", trailing newline included
    start_line: int
    end_line: int


def _paren_delta(line: str) -> int:
    return line.count('(') - line.count(')')


def _statement_kind(stripped: str) -> str | None:
    if _TABLE_START.match(stripped):
        return TABLE
    if _ENUM_START.match(stripped):
        return ENUM
    if _ALTER_START.match(stripped):
        return ALTER_TABLE
    return None


def _is_complete(kind: str, line: str, depth: int) -> bool:
    if kind == TABLE:
        return depth <= 0 and ');' in line
    if kind == ENUM:
        return ');' in line
    return ';' in re.sub(r'--.*$', '', line)


def scan_statements(content: str) -> Iterator[ScannedStatement]:
    """Scan SQL content and yield the statements of interest.

    CREATE TABLE ends once the running parenthesis depth (seeded from the
    opening line) is back to zero or below on a line containing ``);``.
    CREATE TYPE ... AS ENUM ends on the first line containing ``);``.
    ALTER TABLE ends on the first line containing ``;`` and is only kept
    when it adds or drops a constraint.

    A statement still open at end of input is dropped.

    Args:
        content: Full SQL dump text

    Yields:
        ScannedStatement objects in source order
    """
    lines = content.split('\n')

    kind: str | None = None
    buffer: list[str] = []
    start_line = 0
    depth = 0
    dollar_tag: str | None = None

    for line_num, line in enumerate(lines, start=1):
        if kind is None:
            # Function bodies may contain DDL text that must not be captured
            if dollar_tag is not None:
                if f'${dollar_tag}$' in line:
                    dollar_tag = None
                continue

            stripped = line.strip()
            kind = _statement_kind(stripped)
            if kind is None:
                # $$ inside a string literal or comment doesn't open a body
                unquoted = _QUOTED_OR_COMMENT.sub('', line)
                for match in _DOLLAR_TAG.finditer(unquoted):
                    tag = match.group(1)
                    if dollar_tag is None:
                        dollar_tag = tag
                    elif tag == dollar_tag:
                        dollar_tag = None
                continue

            buffer = [line]
            start_line = line_num
            depth = _paren_delta(line)
        else:
            buffer.append(line)
            depth += _paren_delta(line)

        if _is_complete(kind, line, depth):
            statement_content = '\n'.join(buffer) + '\n'
            if kind != ALTER_TABLE or _CONSTRAINT_CHANGE.search(statement_content):
                yield ScannedStatement(
                    kind=kind,
                    content=statement_content,
                    start_line=start_line,
                    end_line=line_num,
                )
            kind = None
            buffer = []
            depth = 0

    if kind is not None:
        logger.debug(
            f"Dropping unterminated {kind} statement starting at line {start_line}"
        )

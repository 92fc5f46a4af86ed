"""Entity extraction for PostgreSQL schema dumps.

Turns scanned statements into tables, enum types and foreign key
constraints. Every entity keeps the verbatim SQL it was captured from.
Column structure is read with sqlglot, falling back to a regex split when
the grammar rejects a statement.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from .scanner import ALTER_TABLE, ENUM, TABLE, ScannedStatement, scan_statements

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"

_TABLE_HEADER = re.compile(
    r'CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?:"?(\w+)"?\.)?"?(\w+)"?\s*\(',
    re.IGNORECASE
)
_ENUM_HEADER = re.compile(r'CREATE\s+TYPE\s+(.*?)\s+AS\s+ENUM\b', re.IGNORECASE)
_ENUM_VALUE = re.compile(r"'((?:[^']|'')*)'")
_ALTER_HEADER = re.compile(
    r'ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?(?:"?(\w+)"?\.)?"?(\w+)"?',
    re.IGNORECASE
)
_DROP_CONSTRAINT = re.compile(
    r'DROP\s+CONSTRAINT\s+(?:IF\s+EXISTS\s+)?"?(\w+)"?',
    re.IGNORECASE
)
_ADD_FOREIGN_KEY = re.compile(
    r'ADD\s+CONSTRAINT\s+"?(\w+)"?\s+FOREIGN\s+KEY\s*\(([^)]*)\)\s*'
    r'REFERENCES\s+(?:"?(\w+)"?\.)?"?(\w+)"?\s*(?:\(([^)]*)\))?',
    re.IGNORECASE
)
_NON_COLUMN_ENTRY = re.compile(
    r'^(?:CONSTRAINT|PRIMARY|FOREIGN|UNIQUE|CHECK|EXCLUDE|LIKE)\b',
    re.IGNORECASE
)
_TYPE_END = re.compile(
    r'\s+(?:DEFAULT|NOT\s+NULL|NULL|PRIMARY\s+KEY|REFERENCES|CONSTRAINT|CHECK|'
    r'COLLATE|GENERATED|UNIQUE)\b',
    re.IGNORECASE
)
_DEFAULT_EXPR = re.compile(
    r'\bDEFAULT\s+(.+?)(?=\s+(?:NOT\s+NULL|NULL|PRIMARY\s+KEY|REFERENCES|CONSTRAINT|CHECK)\b|$)',
    re.IGNORECASE | re.DOTALL
)


@dataclass
class ParsedColumn:
    """Column definition from CREATE TABLE."""
    name: str
    data_type: str
    nullable: bool = True
    default: str | None = None
    is_primary_key: bool = False


@dataclass
class ParsedTable:
    """CREATE TABLE statement with its verbatim text."""
    schema_name: str
    table_name: str
    create_statement: str
    columns: list[ParsedColumn] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"

    @property
    def key(self) -> tuple[str, str]:
        """Case-insensitive identity."""
        return (self.schema_name.lower(), self.table_name.lower())


@dataclass
class ParsedEnum:
    """CREATE TYPE ... AS ENUM statement with its verbatim text."""
    schema_name: str
    enum_name: str
    create_statement: str
    values: list[str] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.enum_name}"


@dataclass
class ParsedForeignKey:
    """ALTER TABLE ... ADD CONSTRAINT ... FOREIGN KEY statement."""
    statement: str
    name: str
    from_schema: str
    from_table: str
    to_schema: str
    to_table: str
    columns: list[str] = field(default_factory=list)
    referenced_columns: list[str] = field(default_factory=list)

    @property
    def sql(self) -> str:
        """Statement collapsed onto a single line."""
        return ' '.join(line.strip() for line in self.statement.splitlines() if line.strip())


@dataclass
class ParsedSchema:
    """Everything extracted from one dump."""
    tables: list[ParsedTable] = field(default_factory=list)
    enums: list[ParsedEnum] = field(default_factory=list)
    foreign_keys: list[ParsedForeignKey] = field(default_factory=list)


def read_schema_dump(path: Path | str) -> str:
    """Read a schema dump from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist
        RuntimeError: If the file can't be read
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")

    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise RuntimeError(f"Failed to read input file {path}: {e}") from e


def parse_schema_dump(
    content: str,
    default_schema: str = DEFAULT_SCHEMA,
    dialect: str = "postgres"
) -> ParsedSchema:
    """Parse a schema dump into tables, enums and foreign keys.

    The dump is scanned once; the three extractors share the result.

    Args:
        content: SQL dump text
        default_schema: Schema assigned to unqualified tables
        dialect: sqlglot dialect used for column extraction

    Returns:
        ParsedSchema with entities in source order
    """
    statements = list(scan_statements(content))

    schema = ParsedSchema(
        tables=parse_tables(statements, default_schema, dialect),
        enums=parse_enums(statements),
        foreign_keys=parse_foreign_keys(statements, default_schema),
    )
    logger.info(
        f"Parsed {len(schema.tables)} tables, {len(schema.enums)} enums, "
        f"{len(schema.foreign_keys)} foreign keys"
    )
    return schema


def parse_tables(
    statements: list[ScannedStatement],
    default_schema: str = DEFAULT_SCHEMA,
    dialect: str = "postgres"
) -> list[ParsedTable]:
    tables = []
    for stmt in statements:
        if stmt.kind != TABLE:
            continue
        table = parse_create_table(
            stmt.content, default_schema, dialect, stmt.start_line, stmt.end_line
        )
        if table:
            tables.append(table)
    return tables


def parse_enums(statements: list[ScannedStatement]) -> list[ParsedEnum]:
    enums = []
    for stmt in statements:
        if stmt.kind != ENUM:
            continue
        enum = parse_create_enum(stmt.content, stmt.start_line, stmt.end_line)
        if enum:
            enums.append(enum)
    return enums


def parse_create_table(
    statement: str,
    default_schema: str = DEFAULT_SCHEMA,
    dialect: str = "postgres",
    start_line: int = 0,
    end_line: int = 0
) -> ParsedTable | None:
    """Parse a CREATE TABLE statement.

    Args:
        statement: Verbatim CREATE TABLE text
        default_schema: Schema used when the name is unqualified
        dialect: sqlglot dialect
        start_line: Starting line number in source file
        end_line: Ending line number in source file

    Returns:
        ParsedTable or None if the header can't be read
    """
    name_match = _TABLE_HEADER.search(statement)
    if not name_match:
        logger.debug(f"Skipping CREATE TABLE without readable name at line {start_line}")
        return None

    return ParsedTable(
        schema_name=name_match.group(1) or default_schema,
        table_name=name_match.group(2),
        create_statement=statement,
        columns=parse_columns(statement, dialect),
        start_line=start_line,
        end_line=end_line,
    )


def parse_create_enum(
    statement: str,
    start_line: int = 0,
    end_line: int = 0
) -> ParsedEnum | None:
    """Parse a CREATE TYPE ... AS ENUM statement.

    Only schema-qualified names (``schema.name``) are recognized; a bare
    enum name yields None.
    """
    header_match = _ENUM_HEADER.search(statement)
    if not header_match:
        return None

    parts = header_match.group(1).split('.')
    if len(parts) != 2:
        logger.debug(f"Skipping enum without schema-qualified name at line {start_line}")
        return None

    schema_name, enum_name = (part.strip().strip('"') for part in parts)
    if not schema_name or not enum_name:
        return None

    body = statement[header_match.end():]
    values = [value.replace("''", "'") for value in _ENUM_VALUE.findall(body)]

    return ParsedEnum(
        schema_name=schema_name,
        enum_name=enum_name,
        create_statement=statement,
        values=values,
        start_line=start_line,
        end_line=end_line,
    )


def parse_foreign_keys(
    statements: list[ScannedStatement],
    default_schema: str = DEFAULT_SCHEMA
) -> list[ParsedForeignKey]:
    """Extract foreign key constraints from ALTER TABLE statements.

    The owning table of each constraint comes from the matching
    ``DROP CONSTRAINT IF EXISTS <name>`` statement of the dump. An
    ``ADD CONSTRAINT`` whose name has no such owner is skipped.

    Returns:
        Foreign keys in source order, deduplicated by statement text
    """
    alter_statements = [stmt for stmt in statements if stmt.kind == ALTER_TABLE]

    owners: dict[str, tuple[str, str]] = {}
    for stmt in alter_statements:
        drop_match = _DROP_CONSTRAINT.search(stmt.content)
        header_match = _ALTER_HEADER.search(stmt.content)
        if not drop_match or not header_match:
            continue
        owners.setdefault(
            drop_match.group(1).lower(),
            (header_match.group(1) or default_schema, header_match.group(2))
        )

    foreign_keys: dict[str, ParsedForeignKey] = {}
    for stmt in alter_statements:
        fk_match = _ADD_FOREIGN_KEY.search(stmt.content)
        if not fk_match:
            continue

        name = fk_match.group(1)
        owner = owners.get(name.lower())
        if owner is None:
            logger.debug(f"Skipping foreign key {name}: owning table unknown")
            continue

        fk = ParsedForeignKey(
            statement=stmt.content,
            name=name,
            from_schema=owner[0],
            from_table=owner[1],
            to_schema=fk_match.group(3) or default_schema,
            to_table=fk_match.group(4),
            columns=_split_identifiers(fk_match.group(2)),
            referenced_columns=_split_identifiers(fk_match.group(5)),
        )
        foreign_keys.setdefault(fk.sql, fk)

    return list(foreign_keys.values())


def parse_columns(statement: str, dialect: str = "postgres") -> list[ParsedColumn]:
    """Extract column definitions from a CREATE TABLE statement."""
    try:
        parsed = sqlglot.parse_one(statement, dialect=dialect)
    except SqlglotError as e:
        logger.debug(f"sqlglot could not parse table, using fallback: {e}")
        return _parse_columns_fallback(statement)

    if not isinstance(parsed, exp.Create) or not isinstance(parsed.this, exp.Schema):
        return _parse_columns_fallback(statement)

    schema_expr = parsed.this
    columns = [
        _parse_column_def(expr, dialect)
        for expr in schema_expr.expressions
        if isinstance(expr, exp.ColumnDef)
    ]

    # Table-level PRIMARY KEY (a, b)
    pk_columns = set()
    for pk in schema_expr.find_all(exp.PrimaryKey):
        for key_expr in pk.expressions:
            ident = key_expr if isinstance(key_expr, exp.Identifier) else key_expr.find(exp.Identifier)
            if ident is not None:
                pk_columns.add(ident.name.lower())

    for col in columns:
        if col.name.lower() in pk_columns:
            col.is_primary_key = True
            col.nullable = False

    return columns


# ============================================================================
# Helper Functions
# ============================================================================

def _parse_column_def(col_expr: exp.ColumnDef, dialect: str) -> ParsedColumn:
    kind = col_expr.args.get("kind")
    column = ParsedColumn(
        name=col_expr.name,
        data_type=kind.sql(dialect=dialect) if kind is not None else "",
    )

    for constraint in col_expr.constraints:
        constraint_kind = constraint.args.get("kind")
        if isinstance(constraint_kind, exp.NotNullColumnConstraint):
            column.nullable = bool(constraint_kind.args.get("allow_null"))
        elif isinstance(constraint_kind, exp.PrimaryKeyColumnConstraint):
            column.is_primary_key = True
            column.nullable = False
        elif isinstance(constraint_kind, exp.DefaultColumnConstraint):
            if constraint_kind.this is not None:
                column.default = constraint_kind.this.sql(dialect=dialect)

    return column


def _parse_columns_fallback(statement: str) -> list[ParsedColumn]:
    """Regex-based column extraction for statements sqlglot rejects."""
    start = statement.find('(')
    end = statement.rfind(')')
    if start == -1 or end <= start:
        return []

    body = re.sub(r'--[^\n]*', '', statement[start + 1:end])
    columns = []
    pk_columns: set[str] = set()

    for entry in _split_outside_parens(body, ','):
        entry = ' '.join(entry.split())
        if not entry:
            continue

        if _NON_COLUMN_ENTRY.match(entry):
            pk_match = re.search(r'PRIMARY\s+KEY\s*\(([^)]*)\)', entry, re.IGNORECASE)
            if pk_match:
                pk_columns.update(name.lower() for name in _split_identifiers(pk_match.group(1)))
            continue

        name, rest = _split_column_name(entry)
        if not name:
            continue

        type_end = _TYPE_END.search(rest)
        data_type = rest[:type_end.start()] if type_end else rest
        default_match = _DEFAULT_EXPR.search(rest)
        is_pk = bool(re.search(r'\bPRIMARY\s+KEY\b', rest, re.IGNORECASE))

        columns.append(ParsedColumn(
            name=name,
            data_type=data_type.strip(),
            nullable=not is_pk and not re.search(r'\bNOT\s+NULL\b', rest, re.IGNORECASE),
            default=default_match.group(1).strip() if default_match else None,
            is_primary_key=is_pk,
        ))

    for col in columns:
        if col.name.lower() in pk_columns:
            col.is_primary_key = True
            col.nullable = False

    return columns


def _split_column_name(entry: str) -> tuple[str, str]:
    """Split ``name rest...`` honouring a double-quoted name."""
    if entry.startswith('"'):
        close = entry.find('"', 1)
        if close == -1:
            return "", ""
        return entry[1:close], entry[close + 1:].strip()

    parts = entry.split(None, 1)
    if len(parts) < 2:
        return "", ""
    return parts[0], parts[1]


def _split_identifiers(text: str | None) -> list[str]:
    if not text:
        return []
    return [part.strip().strip('"') for part in text.split(',') if part.strip()]


def _split_outside_parens(text: str, delimiter: str) -> list[str]:
    """Split text on delimiter but not inside parentheses."""
    parts = []
    current = []
    depth = 0

    for char in text:
        if char == '(':
            depth += 1
            current.append(char)
        elif char == ')':
            depth -= 1
            current.append(char)
        elif char == delimiter and depth == 0:
            parts.append(''.join(current))
            current = []
        else:
            current.append(char)

    if current:
        parts.append(''.join(current))

    return parts

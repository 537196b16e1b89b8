from __future__ import annotations

import json
import re
from typing import Any, Iterable, Mapping, Optional, Sequence

# Detect statements that mutate data or metadata so we can guard read-only sessions.
_MUTATING_RE = re.compile(
    r"^\s*(ALTER|CREATE|DROP|TRUNCATE|RENAME|COMMENT|GRANT|REVOKE|"
    r"INSERT|UPDATE|DELETE|MERGE|UPSERT|COPY|VACUUM|REINDEX|CLUSTER|"
    r"REFRESH|LOCK|CALL|DO)\b",
    re.IGNORECASE | re.DOTALL,
)

DEFAULT_SCHEMA = "public"

TABLE_DISCOVERY_QUERY = """
SELECT
  t.table_name as name,
  t.table_schema as schema
FROM information_schema.tables t
WHERE t.table_schema = 'public' AND t.table_type = 'BASE TABLE'
ORDER BY t.table_name ASC;
"""

# One CREATE TABLE per column-bearing relation of the public schema.
STRUCTURE_DDL_QUERY = """
SELECT
  'CREATE TABLE IF NOT EXISTS public."' || table_name || '" (' ||
  string_agg('"' || column_name || '" ' || data_type ||
    CASE WHEN is_nullable = 'NO' THEN ' NOT NULL' ELSE '' END, ', '
    ORDER BY ordinal_position) ||
  ');' as ddl
FROM information_schema.columns
WHERE table_schema = 'public'
GROUP BY table_name;
"""

# Same statement shape restricted to base tables, keyed by table name.
BASE_TABLE_DDL_QUERY = """
SELECT
  t.table_name,
  'CREATE TABLE IF NOT EXISTS public."' || t.table_name || '" (' ||
  string_agg('"' || c.column_name || '" ' || c.data_type ||
    CASE WHEN c.is_nullable = 'NO' THEN ' NOT NULL' ELSE '' END, ', '
    ORDER BY c.ordinal_position) ||
  ');' as ddl
FROM information_schema.tables t
JOIN information_schema.columns c
  ON c.table_schema = t.table_schema AND c.table_name = t.table_name
WHERE t.table_schema = 'public' AND t.table_type = 'BASE TABLE'
GROUP BY t.table_name;
"""


def is_mutating(sql: str) -> bool:
    """Return True when the statement mutates Postgres state."""
    return bool(_MUTATING_RE.match(sql or ""))


def quote_identifier(name: str) -> str:
    """Return a double-quoted Postgres identifier, doubling embedded quotes."""
    return '"' + str(name).replace('"', '""') + '"'


def format_identifier(schema: str, table: str) -> str:
    """Return a quoted identifier ``"schema"."table"`` suitable for SQL strings."""
    return f"{quote_identifier(schema)}.{quote_identifier(table)}"


_PLAIN_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


def qualified_table(schema: str, table: str) -> str:
    """Return ``schema."table"``, quoting the schema only when it needs it (``public."users"``)."""
    prefix = schema if _PLAIN_IDENTIFIER_RE.match(schema) else quote_identifier(schema)
    return f"{prefix}.{quote_identifier(table)}"


def escape_string(value: str) -> str:
    return value.replace("'", "''")


def sql_literal(value: Any) -> str:
    """
    Render a JSON-decoded value as a SQL literal.

    ``None`` becomes ``NULL``, booleans ``TRUE``/``FALSE``, numbers stay unquoted.
    Objects and arrays (json/jsonb columns) are rendered as JSON text; anything
    else is stringified and single-quoted.
    """
    if value is None:
        return "NULL"
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = str(value)
    return f"'{escape_string(text)}'"


def row_count_query(schema: str, table: str) -> str:
    return f"SELECT count(*) FROM {format_identifier(schema, table)}"


def select_rows_query(schema: str, table: str, limit: int) -> str:
    return f"SELECT * FROM {format_identifier(schema, table)} LIMIT {int(limit)}"


def build_insert_statement(
    table: str,
    columns: Sequence[str],
    row: Mapping[str, Any],
    *,
    schema: Optional[str] = DEFAULT_SCHEMA,
) -> str:
    """
    Build one ``INSERT INTO`` statement for ``row`` using ``columns`` as the column list.

    Columns absent from ``row`` are written as ``NULL``. Passing ``schema=None`` leaves
    the target table unqualified.
    """
    if not columns:
        raise ValueError("columns must not be empty when building an INSERT statement")

    target = qualified_table(schema, table) if schema else quote_identifier(table)
    column_list = ", ".join(quote_identifier(col) for col in columns)
    values = ", ".join(sql_literal(row.get(col)) for col in columns)
    return f"INSERT INTO {target} ({column_list}) VALUES ({values});"


def rows_to_inserts(
    table: str, rows: Iterable[Mapping[str, Any]], *, schema: Optional[str] = DEFAULT_SCHEMA
) -> list[str]:
    """Render every row; the column list is taken from the first row's keys."""
    rows = list(rows or [])
    if not rows:
        return []
    columns = list(rows[0].keys())
    return [build_insert_statement(table, columns, row, schema=schema) for row in rows]


def rows_to_records(rows: Optional[Iterable[Mapping[str, Any]]]) -> list[dict]:
    """Coerce the decoded JSON result into a list of plain dicts."""
    if not rows:
        return []
    return [dict(row) for row in rows]

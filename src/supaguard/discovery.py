"""
Schema and row-count probing for a selected project.

Both steps go through :meth:`ManagementClient.execute_sql` and never raise:
discovery degrades to the dedicated tables endpoint and then to an empty list,
row counts degrade to ``0``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .client import ManagementClient
from .errors import ManagementApiError
from .models import TABLE_ID_OFFSET, Table
from .sql_utils import DEFAULT_SCHEMA, TABLE_DISCOVERY_QUERY, row_count_query

_logger = logging.getLogger("supaguard.discovery")


def _tables_from_rows(rows: Iterable[dict]) -> list[Table]:
    tables = []
    for idx, row in enumerate(rows):
        tables.append(
            Table(
                id=idx + TABLE_ID_OFFSET,
                name=row["name"],
                schema=row.get("schema") or DEFAULT_SCHEMA,
            )
        )
    return tables


def _tables_from_endpoint(items: Iterable[dict]) -> list[Table]:
    tables = []
    for idx, item in enumerate(items):
        payload = dict(item)
        payload.setdefault("id", idx + TABLE_ID_OFFSET)
        payload.setdefault("schema", DEFAULT_SCHEMA)
        tables.append(Table.model_validate(payload))
    return tables


def discover_tables(client: ManagementClient, project_ref: str) -> list[Table]:
    """Return the base tables of the ``public`` schema ordered by name."""
    try:
        rows = client.execute_sql(project_ref, TABLE_DISCOVERY_QUERY)
        tables = _tables_from_rows(rows)
        _logger.info("Discovered %d tables | project=%s", len(tables), project_ref)
        return tables
    except (ManagementApiError, KeyError, ValueError) as exc:
        _logger.warning(
            "Table discovery query failed, trying tables endpoint | project=%s | error=%s",
            project_ref,
            exc,
        )

    try:
        tables = _tables_from_endpoint(client.list_database_tables(project_ref))
        _logger.info("Tables endpoint returned %d tables | project=%s", len(tables), project_ref)
        return tables
    except (ManagementApiError, KeyError, TypeError, ValueError) as exc:
        _logger.error("Table discovery failed | project=%s | error=%s", project_ref, exc)
        return []


def _parse_count(rows: Optional[list[dict]]) -> int:
    if not rows:
        raise ValueError("count query returned no rows")
    return int(str(rows[0]["count"]))


def fetch_row_count(client: ManagementClient, project_ref: str, table: Table) -> int:
    """Row count of one table; any failure counts as ``0``."""
    try:
        rows = client.execute_sql(project_ref, row_count_query(table.table_schema, table.name))
        return _parse_count(rows)
    except (ManagementApiError, KeyError, TypeError, ValueError) as exc:
        _logger.warning(
            "Row count failed | project=%s | table=%s | error=%s", project_ref, table.fqdn, exc
        )
        return 0


def enrich_row_counts(
    client: ManagementClient, project_ref: str, tables: Iterable[Table]
) -> list[Table]:
    """
    Attach ``row_count`` to every table, one request at a time in list order.

    Returns new ``Table`` objects; the input sequence is left untouched.
    """
    enriched = []
    for table in tables:
        count = fetch_row_count(client, project_ref, table)
        enriched.append(table.model_copy(update={"row_count": count}))
    return enriched

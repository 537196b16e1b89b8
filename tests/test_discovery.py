from __future__ import annotations

from unittest.mock import MagicMock

from supaguard.discovery import discover_tables, enrich_row_counts, fetch_row_count
from supaguard.models import Table


def test_discover_tables_assigns_offset_ids_in_name_order(client):
    tables = discover_tables(client, "ref-alpha")

    assert [(t.id, t.name, t.table_schema) for t in tables] == [
        (1000, "audit", "public"),
        (1001, "users", "public"),
    ]
    assert all(t.row_count is None for t in tables)


def test_discover_tables_falls_back_to_tables_endpoint(api, client):
    api.fail_discovery = True
    api.tables_endpoint["ref-alpha"] = [{"id": 7, "name": "users", "schema": "public"}, {"name": "audit"}]

    tables = discover_tables(client, "ref-alpha")

    assert [(t.id, t.name, t.table_schema) for t in tables] == [
        (7, "users", "public"),
        (1001, "audit", "public"),
    ]
    assert api.find_request("/database/tables") is not None


def test_discover_tables_never_raises(api, client):
    api.fail_discovery = True

    assert discover_tables(client, "ref-alpha") == []

    api.unreachable = True
    assert discover_tables(client, "ref-alpha") == []


def test_enrich_row_counts_is_sequential_and_returns_new_tables(api, client):
    tables = discover_tables(client, "ref-alpha")

    enriched = enrich_row_counts(client, "ref-alpha", tables)

    assert [(t.name, t.row_count) for t in enriched] == [("audit", 0), ("users", 2)]
    assert tables[1].row_count is None
    counts = api.sql_queries("count(*)")
    assert counts == [
        'SELECT count(*) FROM "public"."audit"',
        'SELECT count(*) FROM "public"."users"',
    ]


def test_failed_row_count_is_exactly_zero(api, client):
    api.set_table("ref-alpha", "users", 9)
    api.failing_counts.add("users")
    table = Table(id=1000, name="users", schema="public", row_count=9)

    [enriched] = enrich_row_counts(client, "ref-alpha", [table])

    assert enriched.row_count == 0


def test_fetch_row_count_parses_textual_counts():
    client = MagicMock()
    client.execute_sql.return_value = [{"count": "17"}]

    assert fetch_row_count(client, "ref-alpha", Table(id=1000, name="users")) == 17
    client.execute_sql.assert_called_with("ref-alpha", 'SELECT count(*) FROM "public"."users"')


def test_fetch_row_count_treats_empty_or_garbage_results_as_zero():
    client = MagicMock()
    client.execute_sql.side_effect = [[], [{"count": "many"}], [{"total": 3}]]
    table = Table(id=1000, name="users")

    assert [fetch_row_count(client, "ref-alpha", table) for _ in range(3)] == [0, 0, 0]

from __future__ import annotations

import pytest

from supaguard.sql_utils import (
    BASE_TABLE_DDL_QUERY,
    STRUCTURE_DDL_QUERY,
    build_insert_statement,
    format_identifier,
    is_mutating,
    qualified_table,
    quote_identifier,
    row_count_query,
    rows_to_inserts,
    select_rows_query,
    sql_literal,
)


def test_sql_literal_type_rules():
    assert sql_literal(None) == "NULL"
    assert sql_literal(42) == "42"
    assert sql_literal(3.5) == "3.5"
    assert sql_literal(True) == "TRUE"
    assert sql_literal(False) == "FALSE"
    assert sql_literal("O'Brien") == "'O''Brien'"


def test_sql_literal_stringifies_other_values():
    assert sql_literal("2024-01-01T00:00:00Z") == "'2024-01-01T00:00:00Z'"
    assert sql_literal({"k": "it's"}) == """'{"k": "it''s"}'"""
    assert sql_literal([1, 2]) == "'[1, 2]'"


def test_identifiers_are_double_quoted():
    assert quote_identifier('we"ird') == '"we""ird"'
    assert format_identifier("public", "users") == '"public"."users"'
    assert qualified_table("public", "users") == 'public."users"'
    assert qualified_table("Sales", "users") == '"Sales"."users"'


def test_generated_count_and_select_queries():
    assert row_count_query("public", "users") == 'SELECT count(*) FROM "public"."users"'
    assert select_rows_query("public", "users", 5000) == 'SELECT * FROM "public"."users" LIMIT 5000'


def test_build_insert_statement_uses_given_columns():
    statement = build_insert_statement("users", ["id", "name", "active"], {"id": 1, "name": "Ann"})
    assert statement == (
        'INSERT INTO public."users" ("id", "name", "active") VALUES (1, \'Ann\', NULL);'
    )


def test_build_insert_statement_requires_columns():
    with pytest.raises(ValueError):
        build_insert_statement("users", [], {})


def test_rows_to_inserts_takes_columns_from_first_row():
    rows = [{"b": 2, "a": "x"}, {"a": "y", "b": None}]
    assert rows_to_inserts("t", rows) == [
        'INSERT INTO public."t" ("b", "a") VALUES (2, \'x\');',
        'INSERT INTO public."t" ("b", "a") VALUES (NULL, \'y\');',
    ]
    assert rows_to_inserts("t", []) == []


def test_is_mutating_detects_writes():
    assert is_mutating("  delete from users")
    assert is_mutating("CREATE TABLE x (id int)")
    assert not is_mutating("SELECT * FROM users")
    assert not is_mutating("with x as (select 1) select * from x")
    assert not is_mutating("")


def test_ddl_queries_keep_columns_of_one_schema_in_order():
    # auth.users and storage.* share names with public tables on hosted projects
    joined = " ".join(BASE_TABLE_DDL_QUERY.split())
    assert "ON c.table_schema = t.table_schema AND c.table_name = t.table_name" in joined
    assert "ORDER BY c.ordinal_position)" in joined

    structure = " ".join(STRUCTURE_DDL_QUERY.split())
    assert "WHERE table_schema = 'public'" in structure
    assert "ORDER BY ordinal_position)" in structure

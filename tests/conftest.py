"""
Test utilities and fixtures: an in-process fake of the management API.

Requests are served by ``httpx.MockTransport``; SQL sent to the query endpoint
is dispatched on its shape (discovery, count, DDL, data read).
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from supaguard.api.app import create_app
from supaguard.client import ManagementClient
from supaguard.config import Settings
from supaguard.session import Dashboard

_COUNT_RE = re.compile(r'SELECT count\(\*\) FROM "([^"]+)"\."([^"]+)"')
_SELECT_RE = re.compile(r'SELECT \* FROM "([^"]+)"\."([^"]+)" LIMIT (\d+)')


def make_rows(count: int) -> List[Dict[str, Any]]:
    return [{"id": idx, "name": f"row {idx}"} for idx in range(1, count + 1)]


class FakeManagementApi:
    def __init__(self) -> None:
        self.organizations: List[dict] = [{"id": "org-1", "name": "Acme"}]
        self.projects: List[dict] = [
            {
                "id": "ref-alpha",
                "organization_id": "org-1",
                "name": "alpha",
                "region": "eu-west-1",
                "created_at": "2024-01-01T00:00:00Z",
                "status": "ACTIVE_HEALTHY",
            },
            {
                "id": "ref-beta",
                "organization_id": "org-1",
                "name": "beta",
                "region": "us-east-1",
                "created_at": "2024-02-01T00:00:00Z",
                "status": "PAUSED",
            },
        ]
        self.backups: Dict[str, Any] = {
            "ref-alpha": {
                "backups": [
                    {
                        "id": 1,
                        "project_id": "ref-alpha",
                        "inserted_at": "2024-03-01T00:00:00Z",
                        "is_physical": True,
                        "status": "COMPLETED",
                    }
                ]
            }
        }
        # project ref -> table name -> rows
        self.tables: Dict[str, Dict[str, List[dict]]] = {
            "ref-alpha": {"users": make_rows(2), "audit": []},
            "ref-beta": {"orders": make_rows(1)},
        }
        self.tables_endpoint: Dict[str, List[dict]] = {}
        self.failing_reads: set[str] = set()
        self.failing_counts: set[str] = set()
        self.fail_ddl = False
        self.fail_discovery = False
        self.statuses: Dict[str, int] = {}
        self.unreachable = False
        self.console_rows: List[dict] = [{"answer": 42}]
        self.requests: List[httpx.Request] = []
        self.queries: List[str] = []

    # ------------------------------------------------------------------
    def set_table(self, ref: str, name: str, row_count: int) -> None:
        self.tables.setdefault(ref, {})[name] = make_rows(row_count)

    def client_factory(self, **kwargs) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler), **kwargs)

    def make_client(self, token: str = "sbp_test_token", proxy_url: str = "", **kwargs) -> ManagementClient:
        return ManagementClient(token, proxy_url, client_factory=self.client_factory, **kwargs)

    def find_request(self, path_suffix: str) -> Optional[httpx.Request]:
        for request in self.requests:
            if request.url.path.endswith(path_suffix):
                return request
        return None

    def sql_queries(self, fragment: str) -> List[str]:
        return [query for query in self.queries if fragment in query]

    # ------------------------------------------------------------------
    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("proxy refused connection", request=request)

        path = request.url.path.split("/v1", 1)[1]
        if path in self.statuses:
            return httpx.Response(self.statuses[path], json={"message": f"status {self.statuses[path]}"})

        if path == "/organizations":
            return httpx.Response(200, json=self.organizations)
        if path == "/projects":
            return httpx.Response(200, json=self.projects)

        match = re.fullmatch(r"/projects/([^/]+)/(backups|database/query|database/tables)", path)
        if not match:
            return httpx.Response(404, json={"message": "not found"})
        ref, resource = match.groups()
        if resource == "backups":
            if ref not in self.backups:
                return httpx.Response(404, json={"message": "no backups"})
            return httpx.Response(200, json=self.backups[ref])
        if resource == "database/tables":
            if ref not in self.tables_endpoint:
                return httpx.Response(500, json={"message": "tables endpoint down"})
            return httpx.Response(200, json=self.tables_endpoint[ref])
        return self._run_sql(ref, json.loads(request.content)["query"])

    def _run_sql(self, ref: str, query: str) -> httpx.Response:
        self.queries.append(query)
        tables = self.tables.get(ref, {})

        if "string_agg" in query:
            if self.fail_ddl:
                return httpx.Response(500, json={"message": "ddl boom"})
            rows = [
                {
                    "table_name": name,
                    "ddl": f'CREATE TABLE IF NOT EXISTS public."{name}" ("id" integer NOT NULL, "name" text);',
                }
                for name in sorted(tables)
            ]
            if "information_schema.tables" not in query:
                rows = [{"ddl": row["ddl"]} for row in rows]
            return httpx.Response(200, json=rows)

        if "information_schema.tables" in query and "BASE TABLE" in query:
            if self.fail_discovery:
                return httpx.Response(400, json={"message": "permission denied for schema"})
            return httpx.Response(
                200, json=[{"name": name, "schema": "public"} for name in sorted(tables)]
            )

        count = _COUNT_RE.search(query)
        if count:
            name = count.group(2)
            if name in self.failing_counts or name not in tables:
                return httpx.Response(500, json={"message": f"cannot count {name}"})
            return httpx.Response(200, json=[{"count": len(tables[name])}])

        select = _SELECT_RE.search(query)
        if select:
            name, limit = select.group(2), int(select.group(3))
            if name in self.failing_reads or name not in tables:
                return httpx.Response(500, json={"message": f"cannot read {name}"})
            return httpx.Response(200, json=tables[name][:limit])

        return httpx.Response(200, json=self.console_rows)


@pytest.fixture
def api() -> FakeManagementApi:
    """Fresh fake management API per test."""
    return FakeManagementApi()


@pytest.fixture
def client(api: FakeManagementApi) -> ManagementClient:
    """Management client wired to the fake API."""
    return api.make_client()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(state_file=tmp_path / "session.json", timeout=None)


@pytest.fixture
def dashboard(api: FakeManagementApi, settings: Settings) -> Iterator[Dashboard]:
    """Dashboard using the fake API and a canned advisor."""
    board = Dashboard(
        settings,
        client_factory=lambda token, proxy: api.make_client(token, proxy),
        advisor=lambda project, tables: f"Back up {project.name} daily.",
    )
    yield board
    board.close()


@pytest.fixture
def signed_in(dashboard: Dashboard) -> Dashboard:
    dashboard.sign_in("sbp_test_token", "")
    return dashboard


@pytest.fixture
def selected(signed_in: Dashboard) -> Dashboard:
    signed_in.select_project("ref-alpha")
    signed_in.insight_future.result(timeout=5)
    return signed_in


@pytest.fixture
def app_client(dashboard: Dashboard) -> TestClient:
    return TestClient(create_app(dashboard))

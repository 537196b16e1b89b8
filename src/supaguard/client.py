from __future__ import annotations

import logging
import threading
from time import time
from typing import Any, Callable, Optional

import httpx

from .errors import (
    ConnectionBlocked,
    Forbidden,
    ManagementApiError,
    NotFound,
    RequestFailed,
    Unauthorized,
)
from .models import Backup, Organization, Project
from .sql_utils import is_mutating

_logger = logging.getLogger("supaguard.client")

API_BASE_URL = "https://api.supabase.com/v1"


def _raise_for_status(response: httpx.Response, operation: str) -> None:
    if response.is_success:
        return
    status = response.status_code
    if status == 401:
        raise Unauthorized()
    if status == 403:
        raise Forbidden(operation)
    if status == 404:
        raise NotFound(operation)
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    detail = payload.get("message") if isinstance(payload, dict) else None
    raise RequestFailed(operation, status, detail or response.reason_phrase)


class ManagementClient:
    """
    Thin wrapper around ``httpx`` for the platform management API that provides:

    * lazy HTTP client initialisation
    * structured logging for every request and SQL statement
    * a single choke point for mapping HTTP failures onto ``supaguard.errors``
    * an optional guard that refuses mutating SQL
    """

    def __init__(
        self,
        token: str,
        proxy_url: str = "",
        *,
        base_url: str = API_BASE_URL,
        timeout: Optional[float] = 60.0,
        read_only: bool = False,
        log_sql_text: bool = True,
        log_sql_truncate: int = 4000,
        client_factory: Callable[..., httpx.Client] = httpx.Client,
    ) -> None:
        self.token = token
        self.proxy_url = proxy_url or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.read_only = read_only
        self.log_sql_text = log_sql_text
        self.log_sql_truncate = (
            log_sql_truncate if log_sql_truncate and log_sql_truncate > 0 else 4000
        )
        self._client_factory = client_factory
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

        if not _logger.handlers:
            logging.basicConfig(
                level=logging.INFO,
                format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            )

    # ----------------------- connection management -----------------------
    @property
    def client(self) -> httpx.Client:
        # shared by the fan-out loader threads
        with self._client_lock:
            if self._client is None:
                _logger.info(
                    "Opening HTTP client | base=%s proxy=%s read_only=%s",
                    self.base_url,
                    self.proxy_url or "-",
                    self.read_only,
                )
                self._client = self._client_factory(timeout=self.timeout)
            return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ManagementClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def url(self, path: str) -> str:
        """Proxy prefix and API base are concatenated verbatim."""
        return f"{self.proxy_url}{self.base_url}{path}"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/json",
        }

    # ---------------------------- execution ------------------------------
    def _send(self, method: str, path: str, *, json: Any = None) -> httpx.Response:
        start = time()
        try:
            response = self.client.request(method, self.url(path), headers=self.headers, json=json)
        except httpx.TransportError as exc:
            _logger.error(
                "%s %s FAILED | elapsed=%.3fs | error=%s", method, path, time() - start, exc
            )
            raise ConnectionBlocked() from exc
        _logger.info(
            "%s %s | status=%d | elapsed=%.3fs",
            method,
            path,
            response.status_code,
            time() - start,
        )
        return response

    def _request_json(self, method: str, path: str, operation: str, *, json: Any = None) -> Any:
        response = self._send(method, path, json=json)
        _raise_for_status(response, operation)
        try:
            return response.json()
        except ValueError as exc:
            raise RequestFailed(operation, response.status_code, "response is not valid JSON") from exc

    def _log_sql(self, project_ref: str, sql: str) -> None:
        label = "MUTATION" if is_mutating(sql) else "QUERY"
        if self.log_sql_text:
            display = (
                sql
                if len(sql) <= self.log_sql_truncate
                else sql[: self.log_sql_truncate] + " ... [truncated]"
            )
            _logger.info("%s | project=%s | len=%d | sql=%s", label, project_ref, len(sql), display)
        else:
            _logger.info("%s | project=%s | len=%d", label, project_ref, len(sql))

    # ----------------------------- endpoints -----------------------------
    def list_organizations(self) -> list[Organization]:
        payload = self._request_json("GET", "/organizations", "organizations")
        return [Organization.model_validate(item) for item in payload or []]

    def list_projects(self) -> list[Project]:
        payload = self._request_json("GET", "/projects", "projects")
        return [Project.model_validate(item) for item in payload or []]

    def list_backups(self, project_ref: str) -> list[Backup]:
        """Backups are decoration only: every failure yields an empty list."""
        try:
            response = self._send("GET", f"/projects/{project_ref}/backups")
            if not response.is_success:
                _logger.warning(
                    "Backups unavailable | project=%s | status=%d",
                    project_ref,
                    response.status_code,
                )
                return []
            payload = response.json()
            if isinstance(payload, dict):
                payload = payload.get("backups") or []
            return [Backup.model_validate(item) for item in payload]
        except (ManagementApiError, ValueError) as exc:
            _logger.warning("Backups unavailable | project=%s | error=%s", project_ref, exc)
            return []

    def execute_sql(self, project_ref: str, query: str) -> list[dict]:
        """Run raw SQL against the project database and return the decoded rows."""
        trimmed = (query or "").strip()
        self._log_sql(project_ref, trimmed)
        if self.read_only and is_mutating(trimmed):
            _logger.error("Mutating statement denied on read-only client | project=%s", project_ref)
            raise PermissionError("Mutating statement on read-only session")

        start = time()
        payload = self._request_json(
            "POST",
            f"/projects/{project_ref}/database/query",
            "SQL query",
            json={"query": query},
        )
        rows = payload if isinstance(payload, list) else []
        _logger.info(
            "QUERY OK | project=%s | rows=%d | elapsed=%.3fs",
            project_ref,
            len(rows),
            time() - start,
        )
        return rows

    def list_database_tables(self, project_ref: str) -> list[dict]:
        payload = self._request_json("GET", f"/projects/{project_ref}/database/tables", "tables")
        return payload if isinstance(payload, list) else []

    def __repr__(self) -> str:  # pragma: no cover - trivial
        mode = "read-only" if self.read_only else "read-write"
        return f"<ManagementClient {self.base_url} proxy={self.proxy_url or '-'} ({mode})>"

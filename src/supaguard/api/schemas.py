from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from ..export import ExportProgress, Skipped, Succeeded, TableResult
from ..models import Backup, Organization, Project, Table
from ..session import SessionState, View


def mask_token(token: str | None) -> str | None:
    if not token:
        return None
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-4:]}"


class SignInRequest(BaseModel):
    token: str
    proxy_url: str | None = None

    model_config = ConfigDict(extra="forbid")


class ViewUpdate(BaseModel):
    view: View

    model_config = ConfigDict(extra="forbid")


class QueryRequest(BaseModel):
    query: str

    model_config = ConfigDict(extra="forbid")


class QueryResult(BaseModel):
    columns: list[str]
    rows: list[dict[str, Any]]
    row_count: int


class SessionView(BaseModel):
    authenticated: bool
    token_hint: str | None = None
    proxy_url: str = ""
    organizations: list[Organization] = []
    projects: list[Project] = []
    selected_project: Project | None = None
    backups: list[Backup] = []
    tables: list[Table] = []
    total_rows: int = 0
    loading: bool = False
    error: str | None = None
    active_view: View = View.DASHBOARD
    insight: str = ""
    analyzing: bool = False

    @classmethod
    def from_state(cls, state: SessionState) -> "SessionView":
        return cls(
            authenticated=state.authenticated,
            token_hint=mask_token(state.token),
            proxy_url=state.proxy_url,
            organizations=list(state.organizations),
            projects=list(state.projects),
            selected_project=state.selected_project,
            backups=list(state.backups),
            tables=list(state.tables),
            total_rows=state.total_rows,
            loading=state.loading,
            error=state.error,
            active_view=state.active_view,
            insight=state.insight,
            analyzing=state.analyzing,
        )


class TableResultInfo(BaseModel):
    table: str
    status: str
    row_count: int | None = None
    reason: str | None = None

    @classmethod
    def from_result(cls, result: TableResult) -> "TableResultInfo":
        if isinstance(result, Succeeded):
            return cls(table=result.table, status="succeeded", row_count=result.row_count)
        if isinstance(result, Skipped):
            return cls(table=result.table, status="skipped", reason=result.reason)
        raise TypeError(f"Unknown table result: {result!r}")


class ExportStatus(BaseModel):
    active: bool
    percent: int
    stage: str
    last_manifest: list[TableResultInfo] = []

    @classmethod
    def build(cls, progress: ExportProgress, manifest: list[TableResult]) -> "ExportStatus":
        return cls(
            active=progress.active,
            percent=progress.percent,
            stage=progress.stage,
            last_manifest=[TableResultInfo.from_result(result) for result in manifest],
        )

"""
Session state for the dashboard.

``SessionState`` is immutable. Every user action is a transition function that
takes the current state and returns a new one; :class:`Dashboard` applies those
transitions under a lock and always publishes whole-state replacements, so
readers never observe a half-updated session.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Sequence

from .client import ManagementClient
from .config import Credentials, CredentialStore, Settings
from .discovery import discover_tables, enrich_row_counts
from .errors import ManagementApiError
from .export import BackupExporter, ExportKind, ExportTracker, TrackedExport
from .insight import generate_backup_advice
from .models import Backup, Organization, Project, Table
from .sql_utils import rows_to_records

logger = logging.getLogger("supaguard.session")


class View(str, Enum):
    DASHBOARD = "dashboard"
    EXPLORER = "explorer"
    SQL = "sql"
    BACKUP = "backup"


class SessionError(RuntimeError):
    """An action was requested that the current session state does not allow."""


@dataclass(frozen=True)
class SessionState:
    token: Optional[str] = None
    proxy_url: str = ""
    organizations: tuple[Organization, ...] = ()
    projects: tuple[Project, ...] = ()
    selected_project: Optional[Project] = None
    backups: tuple[Backup, ...] = ()
    tables: tuple[Table, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    active_view: View = View.DASHBOARD
    insight: str = ""
    analyzing: bool = False

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    @property
    def total_rows(self) -> int:
        return sum(table.row_count or 0 for table in self.tables)

    def find_project(self, project_ref: str) -> Project:
        for project in self.projects:
            if project.id == project_ref:
                return project
        raise KeyError(f"Project '{project_ref}' is not available")

    def is_selected(self, project: Project) -> bool:
        return self.selected_project is not None and self.selected_project.id == project.id


# ----------------------------- transitions ------------------------------
def signed_in(token: str, proxy_url: str) -> SessionState:
    return SessionState(token=token, proxy_url=proxy_url)


def signed_out(default_proxy: str = "") -> SessionState:
    return SessionState(proxy_url=default_proxy)


def loading_started(state: SessionState) -> SessionState:
    return replace(state, loading=True, error=None)


def loading_finished(state: SessionState) -> SessionState:
    return replace(state, loading=False)


def failed(state: SessionState, exc: Exception) -> SessionState:
    return replace(state, loading=False, error=str(exc))


def account_loaded(
    state: SessionState, organizations: Sequence[Organization], projects: Sequence[Project]
) -> SessionState:
    return replace(
        state,
        organizations=tuple(organizations or ()),
        projects=tuple(projects or ()),
        loading=False,
    )


def project_selected(state: SessionState, project: Project) -> SessionState:
    """Select ``project`` and drop everything loaded for the previous one."""
    return replace(
        state,
        selected_project=project,
        backups=(),
        tables=(),
        loading=True,
        error=None,
        insight="",
        analyzing=False,
    )


def project_loaded(
    state: SessionState, project: Project, backups: Sequence[Backup], tables: Sequence[Table]
) -> SessionState:
    if not state.is_selected(project):
        # Another project was selected meanwhile; these results are stale.
        return state
    return replace(state, backups=tuple(backups), tables=tuple(tables), loading=False)


def insight_started(state: SessionState, project: Project) -> SessionState:
    if not state.is_selected(project):
        return state
    return replace(state, analyzing=True, insight="")


def insight_ready(state: SessionState, project: Project, text: str) -> SessionState:
    if not state.is_selected(project):
        return state
    return replace(state, analyzing=False, insight=text)


def view_changed(state: SessionState, view: View) -> SessionState:
    return replace(state, active_view=View(view))


# ------------------------------- loaders --------------------------------
def load_account(client: ManagementClient) -> tuple[list[Organization], list[Project]]:
    """Fetch organizations and projects concurrently; both must succeed."""
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="supaguard-account") as pool:
        organizations = pool.submit(client.list_organizations)
        projects = pool.submit(client.list_projects)
        return organizations.result(), projects.result()


def load_project(client: ManagementClient, project_ref: str) -> tuple[list[Backup], list[Table]]:
    """Fetch backups and tables concurrently, then count rows table by table."""
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="supaguard-project") as pool:
        backups = pool.submit(client.list_backups, project_ref)
        tables = pool.submit(discover_tables, client, project_ref)
        backups_result, tables_result = backups.result(), tables.result()
    return backups_result, enrich_row_counts(client, project_ref, tables_result)


ClientFactory = Callable[[str, str], ManagementClient]
Advisor = Callable[[Project, Sequence[Table]], str]


class Dashboard:
    """
    Owns the single session of the dashboard and dispatches the API client,
    the table prober, the exporter and the advice call in response to user actions.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        credential_store: Optional[CredentialStore] = None,
        client_factory: Optional[ClientFactory] = None,
        advisor: Optional[Advisor] = None,
        tracker: Optional[ExportTracker] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.credentials = credential_store or CredentialStore(self.settings.state_file)
        self._client_factory = client_factory or self._default_client
        self._advisor = advisor or self._default_advisor
        self.tracker = tracker or ExportTracker()
        self._lock = threading.RLock()
        self._state = signed_out(self.settings.default_proxy)
        self._client: Optional[ManagementClient] = None
        self._insight_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="supaguard-insight")
        self.insight_future: Optional[Future] = None

    # ------------------------------ plumbing ------------------------------
    def _default_client(self, token: str, proxy_url: str) -> ManagementClient:
        return ManagementClient(
            token,
            proxy_url,
            base_url=self.settings.api_base_url,
            timeout=self.settings.timeout,
            read_only=self.settings.read_only,
            log_sql_text=self.settings.log_sql_text,
        )

    def _default_advisor(self, project: Project, tables: Sequence[Table]) -> str:
        return generate_backup_advice(
            project,
            tables,
            api_key=self.settings.gemini_api_key,
            model=self.settings.insight_model,
        )

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def _update(self, transition: Callable[[SessionState], SessionState]) -> SessionState:
        with self._lock:
            self._state = transition(self._state)
            return self._state

    @property
    def client(self) -> ManagementClient:
        with self._lock:
            if not self._state.token:
                raise SessionError("No access token; sign in first")
            if self._client is None:
                self._client = self._client_factory(self._state.token, self._state.proxy_url)
            return self._client

    def _drop_client(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def _require_project(self) -> Project:
        project = self.state.selected_project
        if project is None:
            raise SessionError("No project selected")
        return project

    # ------------------------------- actions ------------------------------
    def restore(self) -> SessionState:
        """Resume the persisted session, if there is one."""
        saved = self.credentials.load()
        if saved is None:
            logger.info("No saved session found")
            return self.state
        logger.info("Restoring saved session")
        return self.sign_in(saved.token, saved.proxy_url, persist=False)

    def sign_in(self, token: str, proxy_url: Optional[str] = None, *, persist: bool = True) -> SessionState:
        token = (token or "").strip()
        if not token:
            raise ValueError("token must not be empty")
        proxy = self.settings.default_proxy if proxy_url is None else proxy_url.strip()
        if persist:
            self.credentials.save(Credentials(token=token, proxy_url=proxy))
        self._drop_client()
        self._update(lambda _: signed_in(token, proxy))
        return self.refresh()

    def refresh(self) -> SessionState:
        """Reload organizations and projects; a failure becomes ``state.error``."""
        client = self.client
        self._update(loading_started)
        try:
            organizations, projects = load_account(client)
        except (ManagementApiError, ValueError) as exc:
            logger.error(f"Loading account failed: {exc}")
            return self._update(lambda s: failed(s, exc))
        logger.info(f"Loaded {len(organizations)} organizations and {len(projects)} projects")
        return self._update(lambda s: account_loaded(s, organizations, projects))

    def select_project(self, project_ref: str) -> SessionState:
        project = self.state.find_project(project_ref)
        logger.info(f"Selecting project '{project.name}' ({project.id})")
        client = self.client
        self._update(lambda s: project_selected(s, project))
        try:
            backups, tables = load_project(client, project.id)
        except (ManagementApiError, ValueError) as exc:
            logger.error(f"Loading project {project.id} failed: {exc}")
            return self._update(lambda s: failed(s, exc) if s.is_selected(project) else s)
        state = self._update(lambda s: project_loaded(s, project, backups, tables))
        if state.is_selected(project):
            self._schedule_insight(project, tables)
        return state

    def _schedule_insight(self, project: Project, tables: Sequence[Table]) -> None:
        self._update(lambda s: insight_started(s, project))

        def run() -> str:
            text = self._advisor(project, tables)
            self._update(lambda s: insight_ready(s, project, text))
            return text

        self.insight_future = self._insight_pool.submit(run)

    def run_query(self, sql: str) -> list[dict]:
        """Execute a console query against the selected project; errors propagate."""
        project = self._require_project()
        if not (sql or "").strip():
            raise ValueError("query must not be empty")
        self._update(lambda s: replace(s, loading=True))
        try:
            return rows_to_records(self.client.execute_sql(project.id, sql))
        finally:
            self._update(loading_finished)

    def set_view(self, view: View | str) -> SessionState:
        return self._update(lambda s: view_changed(s, View(view)))

    def sign_out(self) -> SessionState:
        logger.info("Signing out")
        self.tracker.cancel()
        self.credentials.clear()
        self._drop_client()
        return self._update(lambda _: signed_out(self.settings.default_proxy))

    def start_export(self, kind: ExportKind | str) -> tuple[BackupExporter, TrackedExport]:
        """
        Begin an export of the selected project and return the exporter with its chunk stream.

        The tracker switches to ``exporting`` immediately and back to idle once the
        stream is exhausted, fails, is closed (even before the first chunk) or is dropped.
        """
        kind = ExportKind(kind)
        project = self._require_project()
        state = self.state
        if kind is not ExportKind.STRUCTURE and not state.tables:
            raise SessionError("No tables found for backup")
        cancel_event = self.tracker.begin()
        try:
            exporter = BackupExporter(
                self.client,
                project,
                state.tables,
                row_limit=self.settings.row_limit,
                on_progress=self.tracker.update,
                cancel_event=cancel_event,
            )
        except Exception:
            self.tracker.finish()
            raise
        logger.info(f"Starting {kind.value} export of project {project.id}")
        return exporter, self.tracker.track(exporter, exporter.iter_export(kind))

    def close(self) -> None:
        self._drop_client()
        self._insight_pool.shutdown(wait=False)

from .client import API_BASE_URL, ManagementClient
from .config import CredentialStore, Credentials, Settings
from .discovery import discover_tables, enrich_row_counts, fetch_row_count
from .errors import (
    ConnectionBlocked,
    Forbidden,
    ManagementApiError,
    NotFound,
    RequestFailed,
    Unauthorized,
)
from .export import (
    BackupExporter,
    ExportCancelled,
    ExportInProgress,
    ExportKind,
    ExportProgress,
    ExportTracker,
    Skipped,
    TrackedExport,
    Succeeded,
    export_filename,
    export_to_path,
    progress_percent,
    write_export,
)
from .insight import generate_backup_advice
from .models import Backup, Organization, Project, Table, TableColumn
from .session import Dashboard, SessionError, SessionState, View
from .sql_utils import (
    build_insert_statement,
    format_identifier,
    is_mutating,
    quote_identifier,
    rows_to_inserts,
    sql_literal,
)

__version__ = "0.1.0"

__all__ = [
    "ManagementClient",
    "API_BASE_URL",
    # Errors
    "ManagementApiError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "RequestFailed",
    "ConnectionBlocked",
    # Entities
    "Organization",
    "Project",
    "Backup",
    "Table",
    "TableColumn",
    # Discovery
    "discover_tables",
    "enrich_row_counts",
    "fetch_row_count",
    # Export
    "BackupExporter",
    "ExportKind",
    "ExportProgress",
    "ExportTracker",
    "TrackedExport",
    "ExportCancelled",
    "ExportInProgress",
    "Succeeded",
    "Skipped",
    "progress_percent",
    "export_filename",
    "export_to_path",
    "write_export",
    # Session
    "Dashboard",
    "SessionState",
    "SessionError",
    "View",
    "Settings",
    "Credentials",
    "CredentialStore",
    "generate_backup_advice",
    # SQL utilities
    "sql_literal",
    "build_insert_statement",
    "rows_to_inserts",
    "quote_identifier",
    "format_identifier",
    "is_mutating",
]

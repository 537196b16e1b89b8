"""
SQL dump generation for a project.

The exporter talks to the project database only through ``execute_sql`` and
produces the dump as a lazy stream of text chunks, so callers can write it
incrementally to a file or an HTTP response:

* :meth:`BackupExporter.iter_structure` - ``CREATE TABLE`` statements only
* :meth:`BackupExporter.iter_data` - ``INSERT`` statements only
* :meth:`BackupExporter.iter_full` - structure followed by data

Data is read table by table, sequentially, with ``SELECT * ... LIMIT row_limit``.
A table whose read fails is skipped and recorded in :attr:`BackupExporter.manifest`;
the manifest is appended to the dump as a comment block.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence, TextIO, Union

from .client import ManagementClient
from .errors import ManagementApiError
from .models import Project, Table
from .sql_utils import (
    BASE_TABLE_DDL_QUERY,
    STRUCTURE_DDL_QUERY,
    rows_to_inserts,
    select_rows_query,
)

_logger = logging.getLogger("supaguard.export")

DEFAULT_ROW_LIMIT = 5000
SQL_MEDIA_TYPE = "text/sql"


class ExportKind(str, Enum):
    STRUCTURE = "structure"
    DATA = "data"
    FULL = "full"


class ExportCancelled(Exception):
    """Raised inside the chunk stream once cancellation has been requested."""


class ExportInProgress(RuntimeError):
    """Raised when a second export is started while one is still running."""


@dataclass(frozen=True)
class ExportProgress:
    active: bool = False
    percent: int = 0
    stage: str = ""


IDLE = ExportProgress()


@dataclass(frozen=True)
class Succeeded:
    table: str
    row_count: int

    def describe(self) -> str:
        return f"{self.table}: exported {self.row_count} rows"


@dataclass(frozen=True)
class Skipped:
    table: str
    reason: str

    def describe(self) -> str:
        return f"{self.table}: skipped ({self.reason})"


TableResult = Union[Succeeded, Skipped]

ProgressCallback = Callable[[ExportProgress], None]


def progress_percent(index: int, total: int) -> int:
    """Percent complete once table ``index`` (0-based) of ``total`` is reached, rounded up."""
    if total <= 0:
        return 100
    return -(-(index + 1) * 100 // total)


def export_filename(kind: ExportKind, project: Project, today: datetime) -> str:
    if kind is ExportKind.FULL:
        return f"supabase_backup_{project.name}_{today.strftime('%Y-%m-%d')}.sql"
    if kind is ExportKind.STRUCTURE:
        return f"schema_{project.id}.sql"
    return f"data_backup_{project.id}.sql"


class BackupExporter:
    def __init__(
        self,
        client: ManagementClient,
        project: Project,
        tables: Sequence[Table],
        *,
        row_limit: int = DEFAULT_ROW_LIMIT,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        if row_limit <= 0:
            raise ValueError("row_limit must be positive")
        self.client = client
        self.project = project
        self.tables = list(tables)
        self.row_limit = row_limit
        self.on_progress = on_progress
        self.cancel_event = cancel_event or threading.Event()
        self.now = now
        self.manifest: list[TableResult] = []

    # ------------------------------ helpers -------------------------------
    def _report(self, progress: ExportProgress) -> None:
        if self.on_progress is not None:
            self.on_progress(progress)

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            _logger.warning("Export cancelled | project=%s", self.project.id)
            raise ExportCancelled(f"Export of project {self.project.id} was cancelled")

    def _header(self, title: str) -> str:
        return (
            f"-- SUPAGUARD {title}\n"
            f"-- PROJECT: {self.project.name} ({self.project.id})\n"
            f"-- DATE: {self.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n"
        )

    def _manifest_block(self) -> str:
        lines = ["-- Export manifest"]
        lines.extend(f"-- {result.describe()}" for result in self.manifest)
        return "\n".join(lines) + "\n"

    def filename(self, kind: ExportKind) -> str:
        return export_filename(kind, self.project, self.now())

    def _tracked(self, chunks: Iterable[str]) -> Iterator[str]:
        try:
            yield from chunks
        finally:
            self._report(IDLE)

    # ------------------------------- phases -------------------------------
    def _iter_ddl_block(self) -> Iterator[str]:
        self._report(ExportProgress(True, 0, "Extracting structure (DDL)..."))
        try:
            rows = self.client.execute_sql(self.project.id, BASE_TABLE_DDL_QUERY)
        except ManagementApiError as exc:
            _logger.error("Structure extraction failed | project=%s | error=%s", self.project.id, exc)
            self.manifest.append(Skipped("structure", str(exc)))
            return
        for row in rows:
            yield f"-- Structure for table {row.get('table_name')}\n{row.get('ddl')}\n\n"

    def _iter_table_data(self) -> Iterator[str]:
        total = len(self.tables)
        for idx, table in enumerate(self.tables):
            self._check_cancelled()
            self._report(
                ExportProgress(True, progress_percent(idx, total), f"Reading data: {table.name}...")
            )
            query = select_rows_query(table.table_schema, table.name, self.row_limit)
            try:
                rows = self.client.execute_sql(self.project.id, query)
                statements = rows_to_inserts(table.name, rows)
            except (ManagementApiError, AttributeError, TypeError, ValueError) as exc:
                _logger.error(
                    "Table export failed | project=%s | table=%s | error=%s",
                    self.project.id,
                    table.fqdn,
                    exc,
                )
                self.manifest.append(Skipped(table.name, str(exc)))
                continue

            self.manifest.append(Succeeded(table.name, len(statements)))
            _logger.info(
                "Table exported | project=%s | table=%s | rows=%d",
                self.project.id,
                table.fqdn,
                len(statements),
            )
            if statements:
                yield (
                    f"-- Data for table {table.name} ({len(statements)} rows)\n"
                    + "\n".join(statements)
                    + "\n\n"
                )

    # ---------------------------- entry points ----------------------------
    def iter_structure(self) -> Iterator[str]:
        """Yield one ``CREATE TABLE`` statement per table, blank-line separated."""

        def chunks() -> Iterator[str]:
            self._report(ExportProgress(True, 0, "Extracting structure (DDL)..."))
            rows = self.client.execute_sql(self.project.id, STRUCTURE_DDL_QUERY)
            statements = [row["ddl"] for row in rows if row.get("ddl")]
            for idx, statement in enumerate(statements):
                yield ("\n\n" if idx else "") + statement
            if statements:
                yield "\n"
            self._report(ExportProgress(True, 100, "Structure extracted"))

        return self._tracked(chunks())

    def iter_data(self) -> Iterator[str]:
        def chunks() -> Iterator[str]:
            self.manifest = []
            yield self._header("SQL DATA EXPORT")
            yield from self._iter_table_data()
            yield self._manifest_block()

        return self._tracked(chunks())

    def iter_full(self) -> Iterator[str]:
        def chunks() -> Iterator[str]:
            self.manifest = []
            yield self._header("BACKUP")
            yield from self._iter_ddl_block()
            yield from self._iter_table_data()
            yield self._manifest_block()

        return self._tracked(chunks())

    def iter_export(self, kind: ExportKind) -> Iterator[str]:
        if kind is ExportKind.STRUCTURE:
            return self.iter_structure()
        if kind is ExportKind.DATA:
            return self.iter_data()
        return self.iter_full()

    def render(self, kind: ExportKind = ExportKind.FULL) -> str:
        """Materialise the whole dump in memory (small projects and tests)."""
        return "".join(self.iter_export(kind))


def write_export(chunks: Iterable[str], sink: TextIO) -> int:
    """Write chunks to ``sink`` as they are produced; return the number of characters."""
    written = 0
    for chunk in chunks:
        sink.write(chunk)
        written += len(chunk)
    return written


def export_to_path(chunks: Iterable[str], path: Union[str, Path]) -> Path:
    """
    Stream a dump into ``path``.

    Data goes to ``<path>.partial`` first and is renamed on success; on failure or
    cancellation the partial file is left on disk for inspection. The chunk stream
    is closed in every case, including when the file cannot be opened.
    """
    target = Path(path)
    partial = target.with_name(target.name + ".partial")
    try:
        with partial.open("w", encoding="utf-8") as sink:
            written = write_export(chunks, sink)
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            close()
    os.replace(partial, target)
    _logger.info("Export written | path=%s | chars=%d", target, written)
    return target


class ExportTracker:
    """
    Process-wide export state: ``idle -> exporting -> idle``.

    Only one export may run at a time. The tracker keeps the latest progress
    snapshot, the cancel switch of the running export and the manifest of the
    last finished one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._progress = IDLE
        self._running = False
        self._cancel_event = threading.Event()
        self.last_manifest: list[TableResult] = []

    @property
    def progress(self) -> ExportProgress:
        with self._lock:
            return self._progress

    @property
    def active(self) -> bool:
        with self._lock:
            return self._running

    def update(self, progress: ExportProgress) -> None:
        with self._lock:
            if self._running and progress.active:
                self._progress = progress

    def begin(self) -> threading.Event:
        with self._lock:
            if self._running:
                raise ExportInProgress("An export is already running")
            self._running = True
            self._cancel_event = threading.Event()
            self._progress = ExportProgress(True, 0, "Starting SQL extraction...")
            return self._cancel_event

    def finish(self, manifest: Iterable[TableResult] = ()) -> None:
        with self._lock:
            self._running = False
            self._progress = IDLE
            self.last_manifest = list(manifest)

    def cancel(self) -> bool:
        with self._lock:
            if not self._running:
                return False
            self._cancel_event.set()
            return True

    def track(self, exporter: BackupExporter, chunks: Iterable[str]) -> "TrackedExport":
        """Wrap an export stream so the tracker returns to idle however it ends."""
        return TrackedExport(self, exporter, chunks)


class TrackedExport:
    """
    Chunk iterator that releases its tracker exactly once: when the stream is
    exhausted or fails, when it is closed (even before the first chunk) or when
    it is garbage collected.
    """

    def __init__(self, tracker: ExportTracker, exporter: BackupExporter, chunks: Iterable[str]) -> None:
        self._tracker = tracker
        self._exporter = exporter
        self._chunks = iter(chunks)
        self._released = False

    def __iter__(self) -> "TrackedExport":
        return self

    def __next__(self) -> str:
        if self._released:
            raise StopIteration
        try:
            return next(self._chunks)
        except BaseException:
            self._release()
            raise

    def close(self) -> None:
        try:
            close = getattr(self._chunks, "close", None)
            if close is not None:
                close()
        finally:
            self._release()

    def _release(self) -> None:
        if not self._released:
            self._released = True
            self._tracker.finish(self._exporter.manifest)

    def __del__(self) -> None:
        self._release()

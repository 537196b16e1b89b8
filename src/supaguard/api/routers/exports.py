from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse

from ...errors import ManagementApiError
from ...export import SQL_MEDIA_TYPE, ExportInProgress, ExportKind
from ...session import Dashboard, SessionError
from ..dependencies import get_dashboard
from ..reports import XLSX_MEDIA_TYPE, build_inventory_workbook
from ..schemas import ExportStatus

router = APIRouter(prefix="/exports", tags=["exports"])

_NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _attachment(filename: str) -> dict[str, str]:
    # Ensure filename is ASCII-safe for better cross-platform compatibility
    safe_filename = filename.encode("ascii", "ignore").decode("ascii")
    return {"Content-Disposition": f'attachment; filename="{safe_filename}"', **_NO_CACHE}


@router.get("/progress", response_model=ExportStatus)
def export_progress(dashboard: Dashboard = Depends(get_dashboard)) -> ExportStatus:
    """Latest progress snapshot and the manifest of the last finished export."""
    tracker = dashboard.tracker
    return ExportStatus.build(tracker.progress, tracker.last_manifest)


@router.post("/cancel")
def cancel_export(dashboard: Dashboard = Depends(get_dashboard)) -> dict:
    """Ask the running export to stop before its next table."""
    return {"cancelled": dashboard.tracker.cancel()}


@router.get("/inventory")
def export_inventory(dashboard: Dashboard = Depends(get_dashboard)) -> Response:
    """Excel workbook listing the selected project's tables, row counts and backups."""
    state = dashboard.state
    if state.selected_project is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No project selected")
    content = build_inventory_workbook(state.selected_project, state.tables, state.backups)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"inventory_{state.selected_project.id}_{timestamp}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={**_attachment(filename), "Content-Length": str(len(content))},
    )


@router.get("/{kind}")
def download_export(kind: ExportKind, dashboard: Dashboard = Depends(get_dashboard)) -> Response:
    """
    Download a SQL dump of the selected project.

    ``structure`` is a single query and is rendered before responding so failures
    surface as errors; ``data`` and ``full`` are streamed table by table.
    """
    try:
        exporter, chunks = dashboard.start_export(kind)
    except (ExportInProgress, SessionError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    headers = _attachment(exporter.filename(kind))
    if kind is ExportKind.STRUCTURE:
        try:
            content = "".join(chunks)
        except ManagementApiError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
        return Response(content=content, media_type=SQL_MEDIA_TYPE, headers=headers)
    return StreamingResponse(chunks, media_type=SQL_MEDIA_TYPE, headers=headers)

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ...errors import ManagementApiError
from ...session import Dashboard, SessionError
from ..dependencies import get_dashboard
from ..reports import frame_to_csv, query_frame
from ..schemas import QueryRequest, QueryResult

router = APIRouter(prefix="/sql", tags=["sql"])


@router.post("", response_model=QueryResult)
def run_query(
    payload: QueryRequest,
    format: str = Query(default="json", pattern="^(json|csv)$", description="json or csv"),
    dashboard: Dashboard = Depends(get_dashboard),
):
    """Run an ad-hoc query against the selected project."""
    try:
        rows = dashboard.run_query(payload.query)
    except SessionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except (ManagementApiError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    frame = query_frame(rows)
    if format == "csv":
        return Response(
            content=frame_to_csv(frame),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="query_results.csv"'},
        )
    return QueryResult(columns=[str(col) for col in frame.columns], rows=rows, row_count=len(rows))

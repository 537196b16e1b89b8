from fastapi import APIRouter, Depends, HTTPException, status

from ...models import Backup, Organization, Project, Table
from ...session import Dashboard, SessionError, SessionState
from ..dependencies import get_dashboard
from ..schemas import SessionView

router = APIRouter(tags=["projects"])


def _selected_state(project_ref: str, dashboard: Dashboard) -> SessionState:
    state = dashboard.state
    if state.selected_project is None or state.selected_project.id != project_ref:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Project '{project_ref}' is not the selected project",
        )
    return state


@router.get("/organizations", response_model=list[Organization])
def list_organizations(dashboard: Dashboard = Depends(get_dashboard)) -> list[Organization]:
    """Organizations loaded at sign-in."""
    return list(dashboard.state.organizations)


@router.get("/projects", response_model=list[Project])
def list_projects(dashboard: Dashboard = Depends(get_dashboard)) -> list[Project]:
    """Projects loaded at sign-in."""
    return list(dashboard.state.projects)


@router.post("/projects/{project_ref}/select", response_model=SessionView)
def select_project(project_ref: str, dashboard: Dashboard = Depends(get_dashboard)) -> SessionView:
    """Select a project and load its backups, tables and row counts."""
    try:
        state = dashboard.select_project(project_ref)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.args[0])
    except SessionError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    return SessionView.from_state(state)


@router.get("/projects/{project_ref}/backups", response_model=list[Backup])
def list_backups(project_ref: str, dashboard: Dashboard = Depends(get_dashboard)) -> list[Backup]:
    """Platform backups of the selected project."""
    return list(_selected_state(project_ref, dashboard).backups)


@router.get("/projects/{project_ref}/tables", response_model=list[Table])
def list_tables(project_ref: str, dashboard: Dashboard = Depends(get_dashboard)) -> list[Table]:
    """Base tables of the selected project with row counts."""
    return list(_selected_state(project_ref, dashboard).tables)

from fastapi import APIRouter, Depends, HTTPException, status

from ...session import Dashboard, SessionError
from ..dependencies import get_dashboard
from ..schemas import SessionView, SignInRequest, ViewUpdate

router = APIRouter(prefix="/session", tags=["session"])


@router.get("", response_model=SessionView)
def get_session(dashboard: Dashboard = Depends(get_dashboard)) -> SessionView:
    """Return the current session state with the token masked."""
    return SessionView.from_state(dashboard.state)


@router.post("", response_model=SessionView)
def sign_in(payload: SignInRequest, dashboard: Dashboard = Depends(get_dashboard)) -> SessionView:
    """
    Store the access token and proxy, then load organizations and projects.

    API failures do not raise: they are reported in the ``error`` field.
    """
    try:
        state = dashboard.sign_in(payload.token, payload.proxy_url)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return SessionView.from_state(state)


@router.delete("", response_model=SessionView)
def sign_out(dashboard: Dashboard = Depends(get_dashboard)) -> SessionView:
    """Forget the saved token and reset the session."""
    return SessionView.from_state(dashboard.sign_out())


@router.post("/refresh", response_model=SessionView)
def refresh(dashboard: Dashboard = Depends(get_dashboard)) -> SessionView:
    """Reload organizations and projects."""
    try:
        state = dashboard.refresh()
    except SessionError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    return SessionView.from_state(state)


@router.put("/view", response_model=SessionView)
def set_view(payload: ViewUpdate, dashboard: Dashboard = Depends(get_dashboard)) -> SessionView:
    """Switch the active dashboard view."""
    return SessionView.from_state(dashboard.set_view(payload.view))

from fastapi import Request

from ..session import Dashboard


def get_dashboard(request: Request) -> Dashboard:
    """Retrieve the configured Dashboard from FastAPI app state."""
    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        raise RuntimeError("Dashboard is not configured")
    return dashboard

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..session import Dashboard
from .frontend import router as frontend_router
from .routers.exports import router as exports_router
from .routers.projects import router as projects_router
from .routers.session import router as session_router
from .routers.sql import router as sql_router

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)
logger = logging.getLogger("supaguard.api")


def create_app(dashboard: Dashboard, *, restore_session: bool = False) -> FastAPI:
    """
    Build a FastAPI app around a dashboard session.

    Args:
        dashboard: Session controller that owns the management API client, the
            table prober and the exporter.
        restore_session: Resume the persisted token/proxy when the app starts.

    Raises:
        ValueError: When dashboard is not provided.
    """
    if dashboard is None:
        raise ValueError("dashboard is required")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if restore_session:
            dashboard.restore()
        yield
        dashboard.close()

    app = FastAPI(title="SupaGuard Dashboard API", lifespan=lifespan)

    # Add CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception at {request.method} {request.url}: {exc}")
        logger.error(f"Exception details: {traceback.format_exc()}")

        if isinstance(exc, HTTPException):
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": str(exc),
                "type": type(exc).__name__,
            },
        )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"Request: {request.method} {request.url.path}")
        try:
            response = await call_next(request)
            logger.info(f"Response: {request.method} {request.url.path} - {response.status_code}")
            return response
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path} - {e}")
            raise

    app.state.dashboard = dashboard
    app.include_router(session_router)
    app.include_router(projects_router)
    app.include_router(sql_router)
    app.include_router(exports_router)
    app.include_router(frontend_router)

    logger.info("FastAPI app created successfully")
    return app

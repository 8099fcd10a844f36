from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from dashboard.config import Settings, settings
from dashboard.db import check_database_connection
from dashboard.exceptions import DashboardError, error_chain
from dashboard.logging_config import get_logger, setup_logging
from dashboard.middleware.logging_middleware import LoggingMiddleware
from dashboard.repository import Repository, create_repository
from dashboard.routes import api_router
from dashboard.services.dashboard_service import DashboardService
from dashboard.services.feed_service import FeedService
from dashboard.services.providers import EmailProvider, create_providers

# Setup logging
setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


def _engine_of(repository: Repository):
    # LockedRepository keeps the backend in ``inner``
    target = getattr(repository, "inner", repository)
    return getattr(target, "engine", None)


def create_app(
    app_settings: Settings = settings,
    repository: Optional[Repository] = None,
    feed_service: Optional[FeedService] = None,
    providers: Optional[Dict[str, EmailProvider]] = None
) -> FastAPI:
    """
    Build the API application.

    Missing collaborators are created from the settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up...")
        repo = repository or create_repository(app_settings)
        feeds = feed_service or FeedService(repo, app_settings)
        email_providers = providers if providers is not None else create_providers(app_settings, repo)

        app.state.settings = app_settings
        app.state.repository = repo
        app.state.feed_service = feeds
        app.state.dashboard_service = DashboardService(repo, feeds, email_providers, app_settings)
        logger.info(f"Providers enabled: {', '.join(email_providers) or 'none'}")
        try:
            yield
        finally:
            logger.info("Shutting down...")
            feeds.shutdown()

    app = FastAPI(
        title="Dashboard API",
        description="Personal dashboard of feeds and email widgets",
        version=app_settings.APP_VERSION,
        lifespan=lifespan
    )

    # Logging middleware
    app.add_middleware(LoggingMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["DELETE", "GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    # Global exception handler
    @app.exception_handler(DashboardError)
    async def dashboard_exception_handler(request: Request, exc: DashboardError):
        status_code = exc.status_code
        detail = exc.detail

        if (
            status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
            and request.app.state.repository.is_not_found(exc)
        ):
            status_code = status.HTTP_404_NOT_FOUND
        elif status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(f"{request.method} {request.url.path} failed: {error_chain(exc)}")
            if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
                detail = "Internal server error"

        return JSONResponse(
            status_code=status_code,
            content={"detail": detail}
        )

    # Include routers
    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    def health(request: Request):
        engine = _engine_of(request.app.state.repository)
        if engine is None:
            return {"status": "ok", "database": "unknown"}

        db_status = check_database_connection(engine)
        return {
            "status": "ok" if db_status else "degraded",
            "database": "connected" if db_status else "disconnected"
        }

    return app


app = create_app()

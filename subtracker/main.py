"""
FastAPI application factory
"""
import logging
import traceback
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from subtracker.config import get_settings
from subtracker.infrastructure.db.session import check_db_connection, get_session_factory, init_db
from subtracker.api.v1 import (
    subscriptions, categories, household, settings as settings_api, dashboard, alerts, cashflow,
    insights, data,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Catches every unhandled exception, including ones from sync routes"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


def bootstrap_database() -> None:
    """Create tables, seed defaults and catch up stale renewal dates."""
    from subtracker.application.seed import SeedDatabaseUseCase
    from subtracker.application.subscriptions import RolloverRenewalsUseCase

    init_db()
    db = get_session_factory()()
    try:
        SeedDatabaseUseCase(db).execute()
        RolloverRenewalsUseCase(db).execute(date.today())
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    bootstrap_database()
    if settings.SCHEDULER_ENABLED:
        from subtracker.application.scheduler import start_scheduler
        start_scheduler()
    yield
    if settings.SCHEDULER_ENABLED:
        from subtracker.application.scheduler import shutdown_scheduler
        shutdown_scheduler()


def create_app(with_lifespan: bool = True) -> FastAPI:
    """
    Application factory - builds and wires the FastAPI app

    Args:
        with_lifespan: run database bootstrap / scheduler on startup
                       (tests pass False and bring their own database)
    """
    settings = get_settings()

    app = FastAPI(
        title="SubTracker",
        debug=settings.DEBUG,
        lifespan=lifespan if with_lifespan else None,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    app.include_router(subscriptions.router)
    app.include_router(categories.router)
    app.include_router(household.router)
    app.include_router(settings_api.router)
    app.include_router(dashboard.router)
    app.include_router(alerts.router)
    app.include_router(cashflow.router)
    app.include_router(insights.router)
    app.include_router(data.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "subtracker.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )

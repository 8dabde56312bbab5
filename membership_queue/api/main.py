"""
Main FastAPI application for the membership queue engine.
Configures the API server with routes, middleware, and documentation.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

import structlog

from membership_queue.core.config import settings
from membership_queue.core.database import DatabaseManager, close_database, init_database
from membership_queue.core.logging import setup_logging
from membership_queue.api.middleware import add_exception_handlers, add_middleware
from membership_queue.api.schemas.common import APIResponse, HealthCheckResponse
from membership_queue.api.routes import business_rules


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting membership queue API server")

    try:
        await init_database()

        if settings.scheduler_enabled and settings.is_production:
            from membership_queue.scheduler.task_scheduler import get_task_scheduler

            get_task_scheduler().start_background()
            logger.info("Background scheduler started")
    except Exception as e:
        logger.error("Failed to start background services", error=str(e))

    yield

    logger.info("Shutting down membership queue API server")

    try:
        from membership_queue.scheduler.task_scheduler import shutdown_task_scheduler

        await shutdown_task_scheduler()
        await close_database()
    except Exception as e:
        logger.error("Error during shutdown", error=str(e))


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="""
        Tenure-ordered membership queue with payout eligibility and payment default enforcement.

        ## Features

        * **Winner Order** - Active members ranked by unbroken tenure
        * **Payout Status** - Fund and elapsed-time readiness
        * **Default Enforcement** - Members past the grace period leave the queue
        * **Queue Maintenance** - Sync, statistics and consistency audit

        All amounts are integer cents.
        """,
        version=settings.app_version,
        lifespan=lifespan,
    )

    add_middleware(app)
    add_exception_handlers(app)

    @app.get(
        "/health",
        response_model=HealthCheckResponse,
        tags=["System"],
        summary="Health Check",
        description="Check API server health and database connectivity"
    )
    async def health_check():
        if await DatabaseManager.health_check():
            return HealthCheckResponse(
                status="healthy",
                version=settings.app_version,
                services={"database": "healthy", "api": "healthy"}
            )

        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "version": settings.app_version,
                "services": {"database": "unhealthy", "api": "healthy"}
            }
        )

    @app.get(
        "/",
        response_model=APIResponse,
        tags=["System"],
        summary="API Information"
    )
    async def root():
        return APIResponse(
            message=f"{settings.app_name} v{settings.app_version}"
        )

    app.include_router(
        business_rules.router,
        prefix=f"{settings.api_v1_prefix}/business-rules",
        tags=["Business Rules"]
    )

    logger.info("FastAPI application created successfully")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "membership_queue.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )

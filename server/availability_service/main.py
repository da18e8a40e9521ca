"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .core.config import Settings, settings
from .core.container import ServiceContainer
from .core.database import init_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
)
from .core.observability import (
    SERVICE_NAME,
    SERVICE_VERSION,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import availability, events, health, metrics, outbox
from .workers.manager import WorkerManager

# Configure structured logging
setup_structured_logging()

# Configure traditional logging for compatibility
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Builds the service container unless one was supplied, creates the
    schema and starts the outbox worker. Everything is torn down in
    reverse order on shutdown.
    """
    app_settings: Settings = app.state.settings
    logger.info(f"Starting {SERVICE_NAME} in {app_settings.environment} mode")

    owns_container = getattr(app.state, "container", None) is None
    if owns_container:
        app.state.container = ServiceContainer.from_settings(app_settings)
    container: ServiceContainer = app.state.container

    try:
        setup_tracing()
        setup_metrics()
        instrument_sqlalchemy(container.engine)

        await init_db(container.engine)
        logger.info("Database initialized successfully")

        worker_manager: Optional[WorkerManager] = None
        if app_settings.workers_enabled:
            worker_manager = WorkerManager(container)
            await worker_manager.start_all()
        app.state.worker_manager = worker_manager
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    if app.state.worker_manager is not None:
        await app.state.worker_manager.stop_all()
    if owns_container:
        await container.aclose()
    logger.info("Application shutdown complete")


def create_app(
    container: Optional[ServiceContainer] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Pre-built container; the caller then owns its lifetime
        app_settings: Settings to use when no container is given

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    if container is not None:
        app_settings = container.settings
    app_settings = app_settings or settings

    app = FastAPI(
        title="Device Availability Service",
        description="Tracks device availability and publishes Availability.Changed events through a transactional outbox",
        version=SERVICE_VERSION,
        debug=app_settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
    )
    app.state.settings = app_settings
    app.state.container = container
    app.state.worker_manager = None

    # Instrument FastAPI with OpenTelemetry
    instrument_fastapi(app)

    # Register exception handlers
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health Check",
        description="Check if the service is healthy and responsive",
        response_model=dict,
    )
    async def health_check():
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
        }

    @app.get(
        "/ready",
        tags=["Health"],
        summary="Readiness Check",
        description="Check the database connection and event bus configuration",
        response_model=dict,
    )
    async def readiness_check(request: Request):
        """
        Readiness check endpoint that verifies service dependencies.

        Returns 503 when the database cannot be reached. An unconfigured
        event bus is reported but does not make the service unready, since
        events keep accumulating in the outbox.
        """
        checks = {
            "event_bus": "configured" if app_settings.event_bus_configured else "not_configured",
        }
        ready = True

        app_container: Optional[ServiceContainer] = request.app.state.container
        if app_container is None:
            checks["database"] = "not_initialized"
            ready = False
        else:
            try:
                async with app_container.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                checks["database"] = "ok"
            except Exception as e:
                logger.warning(f"Readiness database check failed: {e}")
                checks["database"] = "unavailable"
                ready = False

        return JSONResponse(
            status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ready" if ready else "not_ready",
                "service": SERVICE_NAME,
                "checks": checks,
            },
        )

    @app.get(
        "/info",
        status_code=status.HTTP_200_OK,
        tags=["Info"],
        summary="Service Information",
        description="Get detailed information about the service",
        response_model=dict,
    )
    async def service_info(request: Request):
        worker_manager: Optional[WorkerManager] = request.app.state.worker_manager
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "description": "Device availability reconciliation with a transactional outbox",
            "environment": app_settings.environment,
            "debug": app_settings.debug,
            "features": {
                "transactional_outbox": True,
                "optimistic_concurrency": True,
                "dead_lettering": app_settings.outbox_max_retries > 0,
                "event_bus": app_settings.event_bus_configured,
                "problem_details": True,
            },
            "workers": worker_manager.get_worker_status() if worker_manager else {},
            "endpoints": {
                "health": "/health",
                "readiness": "/ready",
                "info": "/info",
                "metrics": "/metrics",
                "docs": "/docs" if app_settings.debug else None,
            },
        }

    # Register API routers
    app.include_router(health.router)
    app.include_router(availability.router)
    app.include_router(events.router)
    app.include_router(outbox.router)
    app.include_router(metrics.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "availability_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )

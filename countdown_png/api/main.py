"""
FastAPI Application
==================

Main FastAPI application serving live and one-shot countdown images.
Owns the lifecycle of the rendering engine, session sweeper and scheduler.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Any, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
import uvicorn

from countdown_png import __version__
from countdown_png.api.routes.timers import router as timers_router
from countdown_png.api.services import TimerServices, build_services, get_services
from countdown_png.config.logging import get_logger
from countdown_png.config.settings import get_settings, Settings
from countdown_png.models.schemas import ErrorResponse, HealthStatus

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting countdown server")

    services: TimerServices = app.state.services
    await services.store.start()
    await services.scheduler.start()
    logger.info("Timer images will be saved to", output_dir=str(services.settings.output_dir))

    try:
        yield
    finally:
        logger.info("Shutting down countdown server")

        try:
            await services.scheduler.stop()
        except Exception as e:
            logger.error("Error stopping render scheduler", error=str(e))

        try:
            await services.store.stop()
        except Exception as e:
            logger.error("Error stopping session sweeper", error=str(e))

        try:
            await services.engine.teardown()
            logger.info("Rendering engine closed")
        except Exception as e:
            logger.error("Error closing rendering engine", error=str(e))


def create_app(
    settings: Optional[Settings] = None, services: Optional[TimerServices] = None
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use, defaults to the global settings
        services: Pre-built services, used by tests to inject fakes

    Returns:
        FastAPI application instance
    """
    settings = settings or (services.settings if services else get_settings())
    services = services or build_services(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Render countdown timers to PNG images",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next) -> Any:  # type: ignore
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(HTTPException)
    async def custom_http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """HTTP exception handler with structured error response."""
        error_response = ErrorResponse(
            error=str(exc.detail),
            error_code=str(exc.status_code),
            details=None,
            request_id=getattr(request.state, "request_id", None),
        )

        logger.error(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=error_response.request_id,
        )

        return JSONResponse(
            status_code=exc.status_code, content=error_response.model_dump(mode="json")
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """General exception handler for unexpected errors."""
        error_response = ErrorResponse(
            error="Internal server error",
            error_code="INTERNAL_ERROR",
            details={"exception": str(exc)} if settings.debug else None,
            request_id=getattr(request.state, "request_id", None),
        )

        logger.error(
            "Unhandled exception",
            exception=str(exc),
            request_id=error_response.request_id,
            exc_info=True,
        )

        return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check(services: TimerServices = Depends(get_services)) -> HealthStatus:
        """
        Get application health status.

        The service is healthy once a live frame has been published and the
        rendering engine is up; otherwise it is degraded but still serving.
        """
        frame = services.cache.current()
        engine_ready = services.engine.is_ready
        status = "healthy" if frame is not None and engine_ready else "degraded"

        return HealthStatus(
            status=status,
            version=__version__,
            engine_ready=engine_ready,
            frame_ready=frame is not None,
            last_frame_at=frame.rendered_at if frame else None,
            active_sessions=len(services.store),
            scheduler_state=services.scheduler.state,
            consecutive_failures=services.scheduler.consecutive_failures,
        )

    @app.get("/", tags=["General"])
    async def root() -> dict[str, Any]:
        """Root endpoint with basic API information."""
        return {
            "name": settings.app_name,
            "version": __version__,
            "description": "Render countdown timers to PNG images",
            "docs_url": "/docs" if settings.debug else None,
            "health_check": "/health",
            "endpoints": {
                "live_timer": "GET /live-timer.png",
                "generate_timer": "GET /generate-timer",
                "timer_files": "GET /timers/{filename}",
            },
        }

    app.include_router(timers_router)
    app.mount("/timers", StaticFiles(directory=str(settings.output_dir)), name="timers")

    return app


app = create_app()


def run_server() -> None:
    """Run the server; uvicorn turns SIGINT/SIGTERM into a lifespan shutdown."""
    settings = get_settings()
    logger.info("Countdown server running", host=settings.host, port=settings.port)
    uvicorn.run(
        "countdown_png.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug and settings.environment == "development",
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import Settings, get_settings
from .api.v1.endpoints import limiter, router as location_router
from .dependencies import init_service_container, close_service_container
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI host around one process-wide LocationService."""
    if settings is None:
        settings = get_settings()

    setup_logging(
        level=settings.LOG_LEVEL,
        use_json=settings.use_json_logging,
        service_name="attendance-locator"
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Location Service", extra={"event": "startup_begin"})
        container = init_service_container(settings)
        # build the provider graph eagerly
        service = container.location_service
        app.state.started_at = time.time()
        logger.info(
            "Location Service startup complete",
            extra={
                "event": "startup_complete",
                "providers": [p.name for p in service.providers],
            }
        )
        yield
        try:
            await close_service_container()
            logger.info("Location Service shut down successfully", extra={"event": "shutdown_complete"})
        except Exception:
            logger.error("Error during shutdown", extra={"event": "shutdown_failed"}, exc_info=True)

    app = FastAPI(
        title="Attendance Location Service",
        description="Reverse geocoding with tiered caching, provider health tracking and consensus scoring",
        version="2.0.0",
        lifespan=lifespan
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    cors_origins = settings.cors_origins_list or ["*"]
    logger.info(f"CORS configured for origins: {cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(location_router)

    @app.get("/health")
    async def health_check():
        started_at = getattr(app.state, "started_at", None)
        return {
            "status": "healthy",
            "service": "Attendance Location Service",
            "uptime_seconds": round(time.time() - started_at, 1) if started_at else 0,
        }

    return app


def run() -> None:
    import uvicorn
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()

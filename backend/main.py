"""
FastAPI Application Entry Point

Clean Architecture setup: the lifespan handler builds the stream services
once, request handlers reach them through app.state.
"""
import logging
import time
from contextlib import asynccontextmanager
import sys

# Setup logging FIRST - before any other imports
# This ensures import-time errors are logged
from src.core.logger import setup_logging
setup_logging()
logger = logging.getLogger(__name__)

try:
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware
    from src.core.config import settings
    from src.application.services import build_services
    from src.presentation.routes import stream_router, media_router, camera_router
except Exception as e:
    logger.error(f"Failed to import required modules: {e}", exc_info=True)
    sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup/shutdown."""

    # Startup
    await startup(app)

    yield

    # Shutdown
    await shutdown(app)


async def startup(app: FastAPI) -> None:
    """Initialize application on startup."""
    app.state.startup_time = time.time()

    try:
        services = getattr(app.state, "services", None)
        if services is None:
            services = build_services(settings)
            app.state.services = services

        # Encoder preflight: a missing ffmpeg is reported now, not per request
        await services.startup()

        elapsed = time.time() - app.state.startup_time
        logger.info(
            f"Backend started in {elapsed:.1f}s | Output: {settings.hls_output_dir} | "
            f"Encoder available: {services.supervisor.tool_available}"
        )

    except Exception as e:
        logger.error(f"Startup error: {str(e)}", exc_info=True)
        raise


async def shutdown(app: FastAPI) -> None:
    """Clean up on shutdown."""
    services = getattr(app.state, "services", None)
    if services is None:
        return

    try:
        await services.shutdown()
        logger.info("Backend stopped")
    except Exception as e:
        logger.error(f"Shutdown error: {str(e)}", exc_info=True)


def create_app() -> FastAPI:
    """Create FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="RTSP to HLS live stream gateway",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure properly in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    app.include_router(stream_router)
    app.include_router(media_router)
    app.include_router(camera_router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": f"{settings.app_name} API",
            "version": "1.0.0",
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """Health check for monitoring"""
        services = app.state.services
        return {
            "message": f"{settings.app_name} API",
            "version": "1.0.0",
            "status": "running",
            "encoder_available": services.supervisor.tool_available,
            "active_sessions": len(services.registry.list_sessions()),
        }

    @app.get("/stats")
    async def get_stats():
        """Get detailed statistics about stream sessions."""
        services = app.state.services
        startup_time = getattr(app.state, "startup_time", time.time())
        return {
            "timestamp": time.time(),
            "uptime_seconds": time.time() - startup_time,
            "registry": services.registry.get_stats(),
            "encoder": services.supervisor.get_stats(),
            "prober": services.prober.get_stats(),
            "sessions": [s.to_dict() for s in services.registry.list_sessions()],
        }

    return app


# Create FastAPI application
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )

"""DiscoverEase Bates engine service entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from discoverease_bates import database
from discoverease_bates.api.router import router
from discoverease_bates.errors import BatesEngineError
from discoverease_bates.observability import configure_logging, get_logger
from discoverease_bates.settings import Settings, get_settings

logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    database.init_database(settings)
    yield
    await database.dispose_database()


async def handle_engine_error(request: Request, exc: BatesEngineError) -> JSONResponse:
    """Render a domain error with its taxonomy kind."""
    if exc.status_code >= 500 and exc.status_code != 501:
        logger.error("Request failed", path=request.url.path, kind=exc.kind, error=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, kind=exc.kind, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "kind": exc.kind})


def create_app(app_settings: Settings) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_settings: Service settings.

    Returns:
        Configured FastAPI app with routes, health checks and error handlers.
    """
    configure_logging(app_settings.log_level)

    application = FastAPI(title=app_settings.service_name, version=app_settings.version, lifespan=lifespan)
    application.add_exception_handler(BatesEngineError, handle_engine_error)

    @application.get("/live", tags=["health"])
    async def live() -> dict[str, str]:
        return {"status": "alive"}

    @application.get("/ready", tags=["health"])
    async def ready() -> JSONResponse:
        if not database.is_initialized():
            return JSONResponse(status_code=503, content={"status": "starting"})
        return JSONResponse(status_code=200, content={"status": "ready"})

    application.include_router(router, prefix="/api/v1")
    return application


app: FastAPI = create_app(settings)

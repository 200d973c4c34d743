"""FastAPI application entry point for Polo Core."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from polo_core import __version__
from polo_core.api.routes import router
from polo_core.config import get_settings
from polo_core.container import get_container
from polo_core.exceptions import PoloError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting Polo Core API v{__version__}")
    settings = get_settings()
    logger.info(f"Debug mode: {settings.debug}")

    container = get_container()
    container.startup()

    yield

    # Shutdown
    await container.shutdown()
    logger.info("Shutting down Polo Core API")


async def polo_error_handler(request: Request, exc: PoloError) -> JSONResponse:
    """Shape domain errors as ``{"error", "kind"}`` with their status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}")

    content = {"error": exc.message, "kind": exc.kind}
    result_codes = getattr(exc, "result_codes", None)
    if result_codes:
        content["result_codes"] = result_codes
    return JSONResponse(status_code=exc.status_code, content=content)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and return a generic body."""
    error_id = str(uuid.uuid4())
    logger.error(
        f"Error {error_id} on {request.method} {request.url.path}: {type(exc).__name__}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "kind": "internal_error", "error_id": error_id},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Polo Core",
        description="Multi-tenant custodial Stellar wallet API",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Publishable-Key"],
    )

    app.add_exception_handler(PoloError, polo_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routes
    app.include_router(router)

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "polo_core.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

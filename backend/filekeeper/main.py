"""FileKeeper Backend Application.

This is the main entry point for the FileKeeper backend service, a small
JSON API for user accounts and uploaded-file management.

Modules:
    - auth: signup/signin, JWT access + refresh tokens, bearer-token guard
    - files: upload, paginated listing, download, replace and delete
    - database: DuckDB store for the users and files tables
    - config: YAML settings + secrets with environment overrides
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from filekeeper.auth.registry import get_refresh_registry
from filekeeper.auth.router import router as auth_router
from filekeeper.config import get_config
from filekeeper.database import Database
from filekeeper.errors import AppError
from filekeeper.files.router import router as files_router
from filekeeper.files.storage import BlobStorage

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# multipart logs every parsed part at DEBUG level.
for _noisy in ("multipart", "python_multipart", "uvicorn.access"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    Database.get_instance()
    BlobStorage.get_instance()
    logger.info(
        "FileKeeper ready on http://%s:%s (uploads in %s)",
        config.server.host,
        config.server.port,
        config.files.upload_dir,
    )

    yield  # Application runs here

    # Shutdown
    await get_refresh_registry().clear()
    Database.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="FileKeeper API",
    description="User accounts with token auth and uploaded-file management",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> Response:
    """Render an AppError as ``{"error": message}`` or a bare status."""
    if not exc.has_body:
        return Response(status_code=exc.status_code)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first failing field as a 400."""
    errors = exc.errors()
    if not errors:
        return JSONResponse({"error": "Invalid request"}, status_code=400)
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse({"error": message}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected failure and answer a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


# Register all routers
app.include_router(auth_router)
app.include_router(files_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    config = get_config()
    uvicorn.run(
        "filekeeper.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )

"""
FastAPI application entry point.
Sets up the API with lifespan events for database, identity and storage initialization.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.config import settings
from app.database import init_db
from app.api.router import api_router
from app.auth.firebase import initialize_firebase
from app.exceptions import ConfigurationError, InvalidStateError, NotFoundError
from app.middleware.metrics_middleware import MetricsMiddleware
from app.storage.signer import get_storage_signer
from app.utils.logging import configure_logging

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: logging, database tables, Firebase Admin SDK, storage signer
    - Shutdown: nothing to release
    """
    configure_logging('ct-api', settings.log_level)

    await init_db()

    # Firebase and storage are optional outside production; the first
    # request that needs them gets a 401/503 instead.
    if settings.firebase_project_id:
        try:
            initialize_firebase()
        except ConfigurationError as e:
            if settings.environment == "production":
                raise
            logger.warning(f"Firebase initialization failed: {e}")

    try:
        get_storage_signer()
    except ConfigurationError as e:
        if settings.environment == "production":
            raise
        logger.warning(f"Object storage not configured: {e}")

    yield


app = FastAPI(
    title="Control Tower API",
    description="Backend API for the creative-operations control tower: uploads, AI captioning and review",
    version=API_VERSION,
    lifespan=lifespan
)

# CORS middleware (dashboard runs on its own origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Control Tower API",
        "version": API_VERSION,
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )

"""
Main FastAPI application entry point for Credentia.
Configures the application, middleware, and routes.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .api.v1.credentials import router as credentials_router
from .api.v1.health import router as health_router
from .api.v1.organizations import router as organizations_router
from .api.v1.recipients import router as recipients_router
from .api.v1.templates import router as templates_router
from .api.v1.verification import router as verification_router
from .core.config import get_settings
from .core.dependencies import get_font_registry
from .core.exceptions import AuthError, CredentiaError
from .core.middleware import setup_middleware_stack
from .db.mongo import close_mongo_connection, connect_to_mongo
from .utils.logger import get_logger, setup_logger

settings = get_settings()
setup_logger(level=settings.log_level)
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to MongoDB and set up the font registry before serving requests."""
    logger.info(f"Starting Credentia {__version__}")
    await connect_to_mongo()
    fonts = get_font_registry()
    logger.info(f"Rendering with font family '{fonts.family}', artifacts under {settings.storage_dir}")

    yield

    try:
        await close_mongo_connection()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")
    logger.info("Credentia stopped")


app = FastAPI(
    title="Credentia API",
    description="Credential template design, issuance, revocation and verification",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

setup_middleware_stack(app, settings.cors_origins)

app.include_router(health_router)
app.include_router(templates_router)
app.include_router(credentials_router)
app.include_router(verification_router)
app.include_router(organizations_router)
app.include_router(recipients_router)

# Template backgrounds and rendered artifacts
settings.storage_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.storage_dir), name="uploads")


@app.exception_handler(CredentiaError)
async def domain_exception_handler(request: Request, exc: CredentiaError):
    """
    Map domain errors onto HTTP responses. Server-side failures are logged
    with their detail; the response carries only the public message.
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.error} on {request.url.path}: {exc.message}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies; pydantic error details are passed through."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation Error",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors())
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything unexpected is logged with its traceback and answered generically."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred"
        }
    )


@app.get(
    "/",
    summary="Root Endpoint",
    tags=["root"]
)
async def root():
    """Basic API information."""
    return {
        "message": "Welcome to Credentia API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health"
    }

"""
Health check API endpoints.

Readiness covers everything issuance needs: the database, a writable storage
directory and a loadable default font.
"""

import os
import time
from typing import Dict

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from ... import __version__
from ...core.config import get_settings
from ...core.dependencies import get_font_registry
from ...core.exceptions import RenderError
from ...db.mongo import DatabaseDep
from ...rendering.fonts import FontRegistry
from ...rendering.layout import FontSpec
from ...utils.logger import get_logger

logger = get_logger("health")

SERVICE_NAME = "Credentia"

router = APIRouter(
    prefix="/api/v1",
    tags=["health"],
    responses={
        500: {"description": "Internal server error"}
    }
)


async def _database_status(db: AsyncIOMotorDatabase) -> str:
    try:
        await db.command("ping")
    except Exception as e:
        logger.error(f"Database ping failed: {e}")
        return "unhealthy"
    return "healthy"


def _storage_status() -> str:
    storage_dir = get_settings().storage_dir
    if storage_dir.is_dir() and os.access(storage_dir, os.W_OK):
        return "healthy"
    logger.error(f"Storage directory {storage_dir} is missing or read-only")
    return "unhealthy"


def _fonts_status(fonts: FontRegistry) -> str:
    try:
        fonts.resolve(FontSpec(fonts.family, 12))
    except RenderError as e:
        logger.error(f"Default font unavailable: {e.message}")
        return "unhealthy"
    return "healthy"


@router.get(
    "/health",
    summary="Health Check",
    description="Service status, version and database connectivity",
    response_description="Service health information"
)
async def health_check(db: AsyncIOMotorDatabase = DatabaseDep):
    database = await _database_status(db)
    return {
        "status": "ok" if database == "healthy" else "error",
        "service": SERVICE_NAME,
        "version": __version__,
        "timestamp": int(time.time()),
        "database": "connected" if database == "healthy" else "disconnected",
    }


@router.get(
    "/health/ready",
    summary="Readiness Check",
    description="Ready when the database, storage and fonts are all usable"
)
async def readiness_check(
    db: AsyncIOMotorDatabase = DatabaseDep,
    fonts: FontRegistry = Depends(get_font_registry),
):
    dependencies: Dict[str, str] = {
        "database": await _database_status(db),
        "storage": _storage_status(),
        "fonts": _fonts_status(fonts),
    }
    ready = all(state == "healthy" for state in dependencies.values())
    return {
        "status": "ready" if ready else "not_ready",
        "service": SERVICE_NAME,
        "timestamp": int(time.time()),
        "dependencies": dependencies,
    }


@router.get(
    "/health/live",
    summary="Liveness Check",
    description="Answers without touching any dependency"
)
async def liveness_check():
    return {"status": "alive", "service": SERVICE_NAME, "timestamp": int(time.time())}

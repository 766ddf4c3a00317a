"""
Authentication and service dependencies for FastAPI routes.

Routes receive the caller's organization or recipient id explicitly; services
never read ambient session state.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..db.mongo import DatabaseDep
from ..models.auth import CallerRole, TokenData
from ..rendering.fonts import FontRegistry, PdfMetricsMeasurer
from ..services.blob_storage_service import BlobStorageService
from ..services.credential_issuance_service import CredentialIssuanceService
from ..services.credential_service import CredentialService
from ..services.notification_service import NotificationService
from ..services.organization_service import OrganizationService
from ..services.qr_service import QRCodeService
from ..services.template_service import TemplateService
from ..services.verification_service import VerificationService
from ..utils.logger import get_logger
from ..utils.serialization import to_object_id
from .config import get_settings
from .exceptions import AuthError
from .security import verify_token

logger = get_logger("dependencies")

# HTTP Bearer token scheme; missing tokens are reported through AuthError
security = HTTPBearer(auto_error=False)


async def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenData:
    if credentials is None:
        raise AuthError("Not authenticated")
    return verify_token(credentials.credentials)


async def _resolve_caller(
    token_data: TokenData, role: CallerRole, collection: str, db: AsyncIOMotorDatabase
) -> str:
    if token_data.role != role:
        logger.warning(f"Token for a {token_data.role.value} used on a {role.value} route")
        raise AuthError(f"{role.value.capitalize()} credentials required")

    oid = to_object_id(token_data.subject)
    if oid is None or await db[collection].count_documents({"_id": oid}, limit=1) == 0:
        logger.warning(f"{role.value.capitalize()} not found for token: {token_data.subject}")
        raise AuthError("Could not validate credentials")
    return str(oid)


async def get_current_organization_id(
    token_data: TokenData = Depends(get_token_data),
    db: AsyncIOMotorDatabase = DatabaseDep,
) -> str:
    """Resolve the calling organization from its bearer token."""
    return await _resolve_caller(token_data, CallerRole.ORGANIZATION, "organizations", db)


async def get_current_recipient_id(
    token_data: TokenData = Depends(get_token_data),
    db: AsyncIOMotorDatabase = DatabaseDep,
) -> str:
    """Resolve the calling recipient from its bearer token."""
    return await _resolve_caller(token_data, CallerRole.RECIPIENT, "recipients", db)


# Process-wide rendering resources

@lru_cache()
def get_font_registry() -> FontRegistry:
    return FontRegistry.from_settings(get_settings())


@lru_cache()
def get_preview_measurer() -> PdfMetricsMeasurer:
    # The preview measures with the same font files the artifacts are drawn with
    return get_font_registry().metrics


@lru_cache()
def get_notification_service() -> NotificationService:
    return NotificationService(get_settings())


@lru_cache()
def get_qr_service() -> QRCodeService:
    return QRCodeService()


# Per-request services

def get_storage(db: AsyncIOMotorDatabase = DatabaseDep) -> BlobStorageService:
    return BlobStorageService(db, get_settings())


def get_template_service(
    db: AsyncIOMotorDatabase = DatabaseDep,
    storage: BlobStorageService = Depends(get_storage),
    measurer: PdfMetricsMeasurer = Depends(get_preview_measurer),
) -> TemplateService:
    return TemplateService(db, storage=storage, measurer=measurer, settings=get_settings())


def get_issuance_service(
    db: AsyncIOMotorDatabase = DatabaseDep,
    storage: BlobStorageService = Depends(get_storage),
    fonts: FontRegistry = Depends(get_font_registry),
    notifier: NotificationService = Depends(get_notification_service),
) -> CredentialIssuanceService:
    return CredentialIssuanceService(
        db, storage=storage, fonts=fonts, notifier=notifier, settings=get_settings()
    )


def get_credential_service(
    db: AsyncIOMotorDatabase = DatabaseDep,
    storage: BlobStorageService = Depends(get_storage),
) -> CredentialService:
    return CredentialService(db, storage=storage)


def get_verification_service(
    db: AsyncIOMotorDatabase = DatabaseDep,
    qr_service: QRCodeService = Depends(get_qr_service),
) -> VerificationService:
    return VerificationService(db, qr_service=qr_service, settings=get_settings())


def get_organization_service(db: AsyncIOMotorDatabase = DatabaseDep) -> OrganizationService:
    return OrganizationService(db)

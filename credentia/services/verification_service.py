"""
Public credential verification.
Answers whether a credential id refers to a live credential and who issued it.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.config import Settings, get_settings
from ..core.exceptions import NotFoundError
from ..models.credential import VerificationQRResponse, VerificationResult, VerificationStatus
from ..utils.logger import get_logger
from ..utils.serialization import to_object_id
from .qr_service import QRCodeService

logger = get_logger("verification_service")


class VerificationService:
    """Service class for public verification."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        qr_service: Optional[QRCodeService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.qr_service = qr_service or QRCodeService()

    async def verify_credential(self, credential_id: str) -> VerificationResult:
        """
        Verify a credential by id. Malformed ids are reported as not found.
        Only the issuer name and issue date are ever disclosed.
        """
        oid = to_object_id(credential_id)
        credential = await self.db.credentials.find_one({"_id": oid}) if oid else None

        if credential is None:
            logger.info(f"Verification of unknown credential {credential_id}")
            return VerificationResult(
                valid=False,
                status=VerificationStatus.NOT_FOUND,
                message="Credential not found or revoked",
            )

        if credential.get("is_revoked", False):
            logger.info(f"Verification of revoked credential {credential_id}")
            return VerificationResult(
                valid=False,
                status=VerificationStatus.REVOKED,
                message="Credential not found or revoked",
            )

        organization = await self.db.organizations.find_one(
            {"_id": credential["owner_id"]}, {"name": 1}
        )
        return VerificationResult(
            valid=True,
            status=VerificationStatus.VALID,
            issuer_name=organization.get("name") if organization else None,
            issue_date=credential["issue_date"],
        )

    async def verification_qr(self, credential_id: str, size: int = 300) -> VerificationQRResponse:
        """QR code pointing at the public verification page of a credential."""
        oid = to_object_id(credential_id)
        if oid is None or await self.db.credentials.count_documents({"_id": oid}, limit=1) == 0:
            raise NotFoundError("Credential", credential_id)

        url = self.settings.verification_link(credential_id)
        return VerificationQRResponse(
            credential_id=credential_id,
            verification_url=url,
            qr_code_image=self.qr_service.generate_base64(url, size),
        )

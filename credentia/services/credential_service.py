"""
Credential read operations for issuers and recipients.
"""

from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..core.exceptions import NotFoundError
from ..models.credential import CredentialInDB, CredentialResponse
from ..utils.logger import get_logger
from ..utils.serialization import to_object_id
from .blob_storage_service import BlobStorageService
from .recipient_service import RecipientService

logger = get_logger("credential_service")


class CredentialService:
    """Service class for listing credentials and serving their artifacts."""

    def __init__(self, db: AsyncIOMotorDatabase, storage: Optional[BlobStorageService] = None):
        self.db = db
        self.storage = storage or BlobStorageService(db)

    def to_response(self, credential: Dict[str, Any]) -> CredentialResponse:
        record = CredentialInDB(**credential)
        return CredentialResponse(
            id=str(record.id),
            template_id=str(record.template_id),
            owner_id=str(record.owner_id),
            recipient_id=str(record.recipient_id),
            issue_date=record.issue_date,
            artifact_url=self.storage.public_url(record.artifact_ref),
            is_revoked=record.is_revoked,
            revoked_at=record.revoked_at,
            downloads=record.downloads,
            featured=record.featured,
            description=record.description,
        )

    async def get_credential(self, organization_id: str, credential_id: str) -> Dict[str, Any]:
        """A credential issued by the organization, else NotFoundError."""
        oid = to_object_id(credential_id)
        owner_id = to_object_id(organization_id)
        credential = None
        if oid is not None and owner_id is not None:
            credential = await self.db.credentials.find_one({"_id": oid, "owner_id": owner_id})
        if credential is None:
            raise NotFoundError("Credential", credential_id)
        return credential

    async def list_organization_credentials(self, organization_id: str) -> List[CredentialResponse]:
        """Every credential the organization issued, newest first."""
        owner_id = to_object_id(organization_id)
        if owner_id is None:
            raise NotFoundError("Organization", organization_id)
        cursor = self.db.credentials.find({"owner_id": owner_id}).sort("issue_date", -1)
        return [self.to_response(credential) async for credential in cursor]

    async def list_recipient_credentials(self, recipient_id: str) -> List[CredentialResponse]:
        """Credentials held by a recipient, newest first; revoked ones included."""
        recipient = await RecipientService(self.db).get_recipient(recipient_id)

        cursor = self.db.credentials.find(
            {"_id": {"$in": recipient.get("credentials", [])}}
        ).sort("issue_date", -1)
        return [self.to_response(credential) async for credential in cursor]

    async def download_artifact(
        self, recipient_id: str, credential_id: str
    ) -> Tuple[bytes, str]:
        """
        Return the rendered artifact of one of the recipient's credentials and
        count the download. Revoked credentials are not served, and a download
        is only counted once its artifact has been read.

        Returns:
            Tuple of (content, filename)
        """
        oid = to_object_id(credential_id)
        recipient_oid = to_object_id(recipient_id)

        if oid is None or recipient_oid is None:
            raise NotFoundError("Credential", credential_id)
        servable = {"_id": oid, "recipient_id": recipient_oid, "is_revoked": False}

        credential = await self.db.credentials.find_one(servable)
        if credential is None:
            raise NotFoundError("Credential", credential_id)
        content = await self.storage.load(credential["artifact_ref"])

        credential = await self.db.credentials.find_one_and_update(
            servable,
            {"$inc": {"downloads": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if credential is None:
            # Revoked between the read and the count
            raise NotFoundError("Credential", credential_id)
        logger.info(f"Artifact of credential {credential_id} downloaded ({credential['downloads']} total)")
        return content, f"credential-{credential_id}.png"

    async def get_artifact(self, organization_id: str, credential_id: str) -> Tuple[bytes, str]:
        """The issuer's copy of an artifact; not counted as a download."""
        credential = await self.get_credential(organization_id, credential_id)
        content = await self.storage.load(credential["artifact_ref"])
        return content, f"credential-{credential_id}.png"

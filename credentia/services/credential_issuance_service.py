"""
Credential issuance service.

Binds recipient data to a template, renders the final artifact, persists the
credential and notifies the recipient. Also owns revocation, the only mutation
an issued credential accepts.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..core.config import Settings, get_settings
from ..core.exceptions import NotFoundError, PersistenceError, RenderError, ValidationError
from ..models.credential import IssueCredentialResponse, RevokeResponse
from ..models.template import ISSUE_DATE_KEY, TemplateInDB
from ..rendering.base import TemplateLayout
from ..rendering.fonts import FontRegistry
from ..rendering.raster import render_artifact
from ..utils.logger import get_logger
from ..utils.serialization import to_object_id
from .blob_storage_service import BlobStorageService
from .notification_service import NotificationService
from .recipient_service import RecipientService
from .template_service import TemplateService

logger = get_logger("credential_issuance_service")


def bind_values(template: TemplateInDB, data: Mapping[str, Any], issue_date: datetime) -> Dict[str, str]:
    """
    Build the bound data set for a template: caller values as strings plus the
    server-injected issue date, which overrides anything the caller sent.

    Raises:
        ValidationError: Naming the first placeholder key without a value
    """
    values = {key: str(value) for key, value in data.items() if value is not None}
    if ISSUE_DATE_KEY in template.placeholder_keys():
        values[ISSUE_DATE_KEY] = issue_date.date().isoformat()

    for key in template.placeholder_keys():
        if not values.get(key, "").strip():
            raise ValidationError(f"Missing data for placeholder {key}", field=key)
    return values


class CredentialIssuanceService:
    """Service for issuing and revoking credentials."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        storage: Optional[BlobStorageService] = None,
        fonts: Optional[FontRegistry] = None,
        notifier: Optional[NotificationService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.storage = storage or BlobStorageService(db, self.settings)
        self.fonts = fonts or FontRegistry.from_settings(self.settings)
        self.notifier = notifier or NotificationService(self.settings)
        self.templates = TemplateService(db, storage=self.storage, settings=self.settings)
        self.recipients = RecipientService(db)

    async def issue_credential(
        self,
        organization_id: str,
        template_id: str,
        recipient_email: str,
        data: Mapping[str, Any],
        description: Optional[str] = None,
    ) -> IssueCredentialResponse:
        """
        Issue one credential.

        Validation happens before any write, so a rejected request leaves no
        recipient, artifact or credential behind. A credential is only
        inserted after its artifact has been rendered and stored.

        Raises:
            NotFoundError: Organization or template missing or not owned
            ValidationError: A placeholder key has no value
            RenderError: Background or font could not be used
            PersistenceError: The credential could not be saved
        """
        owner_id = to_object_id(organization_id)
        organization = await self.db.organizations.find_one({"_id": owner_id}) if owner_id else None
        if organization is None:
            raise NotFoundError("Organization", organization_id)

        template = await self.templates.get_template(organization_id, template_id)
        issue_date = datetime.utcnow()
        values = bind_values(template, data, issue_date)

        recipient = await self.recipients.resolve_or_create_recipient(recipient_email)

        try:
            background = await self.storage.load(template.background_image_ref)
        except NotFoundError:
            logger.error(f"Background of template {template_id} is missing from storage")
            raise RenderError("Template background image is unavailable")

        rendered = await asyncio.to_thread(
            render_artifact,
            background,
            TemplateLayout.from_template(template),
            values,
            self.fonts,
            self.settings.artifact_surface_width,
            self.settings.artifact_surface_height,
        )
        artifact_ref = await self.storage.store(
            rendered.content,
            folder="credentials",
            owner_id=str(owner_id),
            extension=rendered.extension,
            content_type=rendered.content_type,
        )

        credential_id = ObjectId()
        document = {
            "_id": credential_id,
            "template_id": template.id,
            "owner_id": owner_id,
            "recipient_id": recipient["_id"],
            "issue_date": issue_date,
            "artifact_ref": artifact_ref,
            "is_revoked": False,
            "revoked_at": None,
            "downloads": 0,
            "featured": False,
            "description": description,
            "bound_data": values,
        }
        try:
            await self.db.credentials.insert_one(document)
        except Exception as e:
            logger.error(f"Credential insert failed for template {template_id}: {e}")
            await self.storage.discard(artifact_ref)
            raise PersistenceError("Credential could not be saved") from e

        await self._link_credential(owner_id, recipient["_id"], credential_id)

        link = self.settings.credential_link(str(credential_id))
        await self.notifier.notify_credential_issued(recipient, organization.get("name", ""), link)

        logger.info(
            f"Credential {credential_id} issued by organization {organization_id} "
            f"to recipient {recipient['_id']} from template {template_id}"
        )
        return IssueCredentialResponse(
            credential_id=str(credential_id),
            artifact_ref=artifact_ref,
            artifact_url=self.storage.public_url(artifact_ref),
            link=link,
        )

    async def _link_credential(self, owner_id: ObjectId, recipient_id: ObjectId, credential_id: ObjectId) -> None:
        # The credential already exists; a failed append is repaired by
        # OrganizationService.reconcile_credential_lists
        try:
            await self.recipients.add_credential(recipient_id, credential_id)
            await self.db.organizations.update_one(
                {"_id": owner_id},
                {"$addToSet": {"credentials": credential_id}},
            )
        except Exception as e:
            logger.error(f"Failed to link credential {credential_id} to its owner lists: {e}")

    async def revoke_credential(self, organization_id: str, credential_id: str) -> RevokeResponse:
        """
        Revoke a credential issued by the organization. Revoking an already
        revoked credential succeeds without changing it.
        """
        oid = to_object_id(credential_id)
        owner_id = to_object_id(organization_id)
        if oid is None or owner_id is None:
            raise NotFoundError("Credential", credential_id)

        revoked = await self.db.credentials.find_one_and_update(
            {"_id": oid, "owner_id": owner_id, "is_revoked": False},
            {"$set": {"is_revoked": True, "revoked_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if revoked is not None:
            logger.info(f"Credential {credential_id} revoked by organization {organization_id}")
            return RevokeResponse(credential_id=credential_id, revoked_at=revoked["revoked_at"])

        existing = await self.db.credentials.find_one({"_id": oid, "owner_id": owner_id})
        if existing is None:
            raise NotFoundError("Credential", credential_id)
        return RevokeResponse(
            message="Credential already revoked",
            credential_id=credential_id,
            revoked_at=existing.get("revoked_at"),
        )

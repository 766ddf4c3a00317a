"""
Recipient identity resolution.
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError

from ..core.exceptions import NotFoundError, ValidationError
from ..models.recipient import RecipientInDB
from ..utils.logger import get_logger
from ..utils.serialization import to_object_id

logger = get_logger("recipient_service")


class RecipientService:
    """Service class for recipient records."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def resolve_or_create_recipient(self, email: str, name: Optional[str] = None) -> Dict[str, Any]:
        """
        Return the recipient with this email, creating it on first use.

        The upsert is a single server-side operation; two concurrent issuances
        to a new email resolve to the same recipient.
        """
        normalized = (email or "").strip().lower()
        try:
            recipient_model = RecipientInDB(email=normalized, name=name)
        except PydanticValidationError:
            raise ValidationError(f"'{email}' is not a valid email address", field="recipient_email")
        on_insert = recipient_model.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)

        try:
            recipient = await self.db.recipients.find_one_and_update(
                {"email": normalized},
                {"$setOnInsert": on_insert},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # Lost the insert race against a concurrent upsert
            recipient = await self.db.recipients.find_one({"email": normalized})

        logger.debug(f"Resolved recipient {recipient['_id']} for {normalized}")
        return recipient

    async def get_recipient(self, recipient_id: str) -> Dict[str, Any]:
        oid = to_object_id(recipient_id)
        recipient = await self.db.recipients.find_one({"_id": oid}) if oid else None
        if recipient is None:
            raise NotFoundError("Recipient", recipient_id)
        return recipient

    async def add_credential(self, recipient_id: ObjectId, credential_id: ObjectId) -> None:
        """Idempotent, atomic append to the recipient's credential list."""
        await self.db.recipients.update_one(
            {"_id": recipient_id},
            {"$addToSet": {"credentials": credential_id}},
        )

    async def add_credentials(self, recipient_id: ObjectId, credential_ids: List[ObjectId]) -> None:
        await self.db.recipients.update_one(
            {"_id": recipient_id},
            {"$addToSet": {"credentials": {"$each": credential_ids}}},
        )

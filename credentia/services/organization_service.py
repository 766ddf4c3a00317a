"""
Organization profile, dashboard and credential-list maintenance.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.exceptions import NotFoundError
from ..models.organization import DashboardStats, ReconcileResult
from ..utils.logger import get_logger
from ..utils.serialization import to_object_id
from .recipient_service import RecipientService

logger = get_logger("organization_service")

RECENT_TEMPLATE_DAYS = 30


class OrganizationService:
    """Service class for organization operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.recipients = RecipientService(db)

    async def get_organization(self, organization_id: str) -> Dict[str, Any]:
        oid = to_object_id(organization_id)
        organization = await self.db.organizations.find_one({"_id": oid}) if oid else None
        if organization is None:
            raise NotFoundError("Organization", organization_id)
        return organization

    async def organization_dashboard(self, organization_id: str) -> DashboardStats:
        """
        Summary counters:
        - total_templates: every template owned
        - total_credentials_issued: credentials not revoked
        - recent_templates: templates created in the last 30 days
        - pending_credentials: live credentials never downloaded nor featured
        """
        organization = await self.get_organization(organization_id)
        owner_id = organization["_id"]
        since = datetime.utcnow() - timedelta(days=RECENT_TEMPLATE_DAYS)

        total_templates = await self.db.templates.count_documents({"owner_id": owner_id})
        recent_templates = await self.db.templates.count_documents(
            {"owner_id": owner_id, "created_at": {"$gte": since}}
        )
        total_credentials = await self.db.credentials.count_documents(
            {"owner_id": owner_id, "is_revoked": False}
        )
        pending_credentials = await self.db.credentials.count_documents({
            "owner_id": owner_id,
            "is_revoked": False,
            "downloads": 0,
            "featured": False,
        })

        return DashboardStats(
            name=organization.get("name", ""),
            email=organization.get("email", ""),
            total_templates=total_templates,
            total_credentials_issued=total_credentials,
            recent_templates=recent_templates,
            pending_credentials=pending_credentials,
        )

    async def reconcile_credential_lists(self, organization_id: str) -> ReconcileResult:
        """
        Re-add every credential of the organization to the organization's and
        each recipient's credential list. Safe to run repeatedly.
        """
        organization = await self.get_organization(organization_id)
        owner_id = organization["_id"]

        by_recipient: Dict[ObjectId, List[ObjectId]] = {}
        credential_ids: List[ObjectId] = []
        cursor = self.db.credentials.find({"owner_id": owner_id}, {"_id": 1, "recipient_id": 1})
        async for credential in cursor:
            credential_ids.append(credential["_id"])
            by_recipient.setdefault(credential["recipient_id"], []).append(credential["_id"])

        if credential_ids:
            await self.db.organizations.update_one(
                {"_id": owner_id},
                {"$addToSet": {"credentials": {"$each": credential_ids}}},
            )
        for recipient_id, ids in by_recipient.items():
            await self.recipients.add_credentials(recipient_id, ids)

        logger.info(
            f"Reconciled {len(credential_ids)} credentials across "
            f"{len(by_recipient)} recipients for organization {organization_id}"
        )
        return ReconcileResult(
            organization_id=str(owner_id),
            credentials_checked=len(credential_ids),
            recipients_touched=len(by_recipient),
        )

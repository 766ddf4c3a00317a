"""
Recipient notification.

Delivers a short message about a newly issued credential to the configured
webhook. Delivery is best effort: failures are logged and never raised.
"""

from typing import Any, Dict, Optional

import aiohttp

from ..core.config import Settings, get_settings
from ..utils.logger import get_logger

logger = get_logger("notification_service")


class NotificationService:
    """Posts notification payloads to a webhook, or logs them when none is set."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.webhook_url = self.settings.notification_webhook_url

    async def notify(self, recipient: Dict[str, Any], subject: str, body: str) -> bool:
        """
        Notify a recipient. Returns True when the message was handed off.
        """
        email = recipient.get("email", "")
        if not self.webhook_url:
            logger.info(f"Notification for {email} (no webhook configured): {subject}")
            return True

        payload = {
            "to": email,
            "name": recipient.get("name"),
            "subject": subject,
            "body": body,
        }
        try:
            timeout = aiohttp.ClientTimeout(total=self.settings.notification_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.webhook_url, json=payload) as response:
                    if response.status >= 400:
                        logger.warning(f"Notification webhook returned {response.status} for {email}")
                        return False
        except Exception as e:
            logger.error(f"Notification delivery failed for {email}: {e}")
            return False

        logger.info(f"Notification sent to {email}")
        return True

    async def notify_credential_issued(
        self, recipient: Dict[str, Any], organization_name: str, link: str
    ) -> bool:
        subject = f"You have received a credential from {organization_name}"
        body = (
            f"{organization_name} has issued you a new credential.\n"
            f"View it here: {link}"
        )
        return await self.notify(recipient, subject, body)

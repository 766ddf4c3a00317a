import os
import tempfile
from io import BytesIO
from typing import Any, Dict, List

# The app module mounts the storage directory at import time
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="credentia-test-"))

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient
from PIL import Image

from credentia.core.config import Settings
from credentia.db.mongo import ensure_indexes
from credentia.rendering.fonts import FontRegistry
from credentia.services.blob_storage_service import BlobStorageService
from credentia.services.credential_issuance_service import CredentialIssuanceService
from credentia.services.notification_service import NotificationService
from credentia.services.template_service import TemplateService


def make_png(width: int = 800, height: int = 600, color: str = "white") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def name_placeholder(**overrides: Any) -> Dict[str, Any]:
    placeholder = {
        "key": "name",
        "label": "Recipient Name",
        "x": 100,
        "y": 100,
        "width": 300,
        "height": 50,
        "align": "center",
    }
    placeholder.update(overrides)
    return placeholder


class RecordingNotifier(NotificationService):
    """Keeps notifications in memory instead of delivering them."""

    def __init__(self, settings: Settings, fail: bool = False):
        super().__init__(settings)
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []

    async def notify(self, recipient, subject, body):
        if self.fail:
            return False
        self.sent.append({"to": recipient["email"], "subject": subject, "body": body})
        return True


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("STORAGE_DIR", str(tmp_path / "storage"))
    monkeypatch.setenv("PUBLIC_BASE_URL", "http://credentials.test")
    monkeypatch.delenv("NOTIFICATION_WEBHOOK_URL", raising=False)
    return Settings()


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["credentia_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
async def organization_id(db):
    result = await db.organizations.insert_one({
        "name": "Analytical Society",
        "email": "registrar@analytical.test",
        "credentials": [],
    })
    return str(result.inserted_id)


@pytest.fixture
def storage(db, settings):
    return BlobStorageService(db, settings)


@pytest.fixture(scope="session")
def fonts():
    return FontRegistry()


@pytest.fixture(scope="session")
def measurer(fonts):
    return fonts.metrics


@pytest.fixture
def notifier(settings):
    return RecordingNotifier(settings)


@pytest.fixture
def template_service(db, storage, measurer, settings):
    return TemplateService(db, storage=storage, measurer=measurer, settings=settings)


@pytest.fixture
def issuance_service(db, storage, fonts, notifier, settings):
    return CredentialIssuanceService(
        db, storage=storage, fonts=fonts, notifier=notifier, settings=settings
    )


@pytest.fixture
async def template_id(template_service, organization_id):
    return await template_service.create_template(
        organization_id, "Course Completion", make_png(), [name_placeholder()]
    )


@pytest.fixture
def missing_id():
    return str(ObjectId())

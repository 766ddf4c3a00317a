import asyncio
import io
from datetime import datetime

import pytest
from bson import ObjectId
from PIL import Image, ImageOps
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from conftest import RecordingNotifier, make_png, name_placeholder
from credentia.core.exceptions import NotFoundError, PersistenceError, RenderError, ValidationError
from credentia.services.credential_issuance_service import CredentialIssuanceService


async def test_issue_renders_a_centered_name(issuance_service, organization_id, template_id, storage, db):
    result = await issuance_service.issue_credential(
        organization_id, template_id, "ada@example.com", {"name": "Ada Lovelace"}
    )

    credential = await db.credentials.find_one()
    assert str(credential["_id"]) == result.credential_id
    assert credential["is_revoked"] is False
    assert credential["downloads"] == 0
    assert result.link == f"http://credentials.test/credentials/{result.credential_id}"

    artifact = Image.open(io.BytesIO(await storage.load(result.artifact_ref))).convert("L")
    assert artifact.size == (800, 600)
    left, top, right, bottom = ImageOps.invert(artifact).point(lambda v: 255 if v > 64 else 0).getbbox()
    assert abs((left + right) / 2 - 250) <= 3
    assert 100 <= left and right <= 400
    assert 100 <= top and bottom <= 150


async def test_issue_links_credential_everywhere(issuance_service, organization_id, template_id, db, notifier):
    result = await issuance_service.issue_credential(
        organization_id, template_id, "Ada@Example.com", {"name": "Ada"}
    )
    recipient = await db.recipients.find_one({"email": "ada@example.com"})
    organization = await db.organizations.find_one()
    credential = await db.credentials.find_one()

    assert credential["recipient_id"] == recipient["_id"]
    assert recipient["credentials"] == [credential["_id"]]
    assert organization["credentials"] == [credential["_id"]]
    assert notifier.sent[0]["to"] == "ada@example.com"
    assert result.link in notifier.sent[0]["body"]


async def test_missing_value_creates_nothing(issuance_service, organization_id, template_id, db):
    with pytest.raises(ValidationError) as excinfo:
        await issuance_service.issue_credential(
            organization_id, template_id, "ada@example.com", {"course": "Engines"}
        )
    assert excinfo.value.field == "name"
    assert "name" in excinfo.value.message
    assert await db.credentials.count_documents({}) == 0
    assert await db.recipients.count_documents({}) == 0
    assert await db.file_metadata.count_documents({"key": {"$regex": "^credentials/"}}) == 0


@pytest.mark.parametrize("email", ["not-an-email", "", "ada@"])
async def test_invalid_recipient_email_creates_nothing(issuance_service, organization_id, template_id, db, email):
    with pytest.raises(ValidationError) as excinfo:
        await issuance_service.issue_credential(organization_id, template_id, email, {"name": "Ada"})
    assert excinfo.value.field == "recipient_email"
    assert await db.recipients.count_documents({}) == 0
    assert await db.credentials.count_documents({}) == 0
    assert await db.file_metadata.count_documents({"key": {"$regex": "^credentials/"}}) == 0


async def test_issue_date_is_injected(issuance_service, template_service, organization_id, db):
    template_id = await template_service.create_template(
        organization_id,
        "Dated",
        make_png(),
        [name_placeholder(), {"key": "issueDate", "label": "Issue Date", "x": 100, "y": 300}],
    )
    await issuance_service.issue_credential(
        organization_id, template_id, "ada@example.com", {"name": "Ada", "issueDate": "1843-10-01"}
    )
    credential = await db.credentials.find_one()
    assert credential["bound_data"]["issueDate"] == datetime.utcnow().date().isoformat()


async def test_concurrent_issuances_keep_both(issuance_service, organization_id, template_id, db):
    first, second = await asyncio.gather(
        issuance_service.issue_credential(organization_id, template_id, "ada@example.com", {"name": "Ada"}),
        issuance_service.issue_credential(organization_id, template_id, "ada@example.com", {"name": "Ada"}),
    )
    assert first.credential_id != second.credential_id

    recipients = [recipient async for recipient in db.recipients.find({})]
    assert len(recipients) == 1
    held = {str(credential_id) for credential_id in recipients[0]["credentials"]}
    assert held == {first.credential_id, second.credential_id}


async def test_foreign_template_is_not_found(issuance_service, template_id, db):
    other = await db.organizations.insert_one({"name": "Other", "email": "o@x.test"})
    with pytest.raises(NotFoundError):
        await issuance_service.issue_credential(
            str(other.inserted_id), template_id, "ada@example.com", {"name": "Ada"}
        )


async def test_unknown_organization(issuance_service, template_id, missing_id):
    with pytest.raises(NotFoundError):
        await issuance_service.issue_credential(missing_id, template_id, "ada@example.com", {"name": "Ada"})


async def test_missing_background_is_a_render_error(
    issuance_service, organization_id, template_id, storage, db
):
    template = await db.templates.find_one()
    await storage.delete(template["background_image_ref"])
    with pytest.raises(RenderError) as excinfo:
        await issuance_service.issue_credential(organization_id, template_id, "ada@example.com", {"name": "Ada"})
    assert "templates/" not in excinfo.value.message
    assert await db.credentials.count_documents({}) == 0


async def test_failed_insert_removes_the_artifact(
    issuance_service, organization_id, template_id, storage, db, monkeypatch
):
    # The new credential collides with this record on a unique index
    await db.credentials.create_index("template_id", unique=True)
    await db.credentials.insert_one({"template_id": ObjectId(template_id)})

    stored = []
    original_store = storage.store

    async def tracking_store(*args, **kwargs):
        ref = await original_store(*args, **kwargs)
        stored.append(ref)
        return ref

    monkeypatch.setattr(storage, "store", tracking_store)

    with pytest.raises(PersistenceError):
        await issuance_service.issue_credential(organization_id, template_id, "ada@example.com", {"name": "Ada"})
    assert len(stored) == 1
    assert not (storage.storage_dir / stored[0]).exists()


async def test_failed_cleanup_still_reports_the_insert_failure(
    issuance_service, organization_id, template_id, storage, db, monkeypatch
):
    await db.credentials.create_index("template_id", unique=True)
    await db.credentials.insert_one({"template_id": ObjectId(template_id)})

    async def unreachable_delete(ref):
        raise ServerSelectionTimeoutError("db down")

    monkeypatch.setattr(storage, "delete", unreachable_delete)

    with pytest.raises(PersistenceError) as excinfo:
        await issuance_service.issue_credential(organization_id, template_id, "ada@example.com", {"name": "Ada"})
    assert excinfo.value.message == "Credential could not be saved"
    assert isinstance(excinfo.value.__cause__, DuplicateKeyError)


async def test_notification_failure_does_not_fail_issuance(db, storage, fonts, settings, organization_id, template_id):
    service = CredentialIssuanceService(
        db, storage=storage, fonts=fonts, notifier=RecordingNotifier(settings, fail=True), settings=settings
    )
    result = await service.issue_credential(organization_id, template_id, "ada@example.com", {"name": "Ada"})
    assert await db.credentials.count_documents({"_id": {"$exists": True}}) == 1
    assert result.credential_id


async def test_revoke_twice_is_idempotent(issuance_service, organization_id, template_id, db):
    issued = await issuance_service.issue_credential(organization_id, template_id, "ada@example.com", {"name": "Ada"})

    first = await issuance_service.revoke_credential(organization_id, issued.credential_id)
    stored = await db.credentials.find_one()
    second = await issuance_service.revoke_credential(organization_id, issued.credential_id)

    assert first.is_revoked and second.is_revoked
    assert second.message == "Credential already revoked"
    assert (await db.credentials.find_one()) == stored


async def test_revoke_foreign_or_unknown(issuance_service, organization_id, template_id, db, missing_id):
    issued = await issuance_service.issue_credential(organization_id, template_id, "ada@example.com", {"name": "Ada"})
    other = await db.organizations.insert_one({"name": "Other", "email": "o@x.test"})

    with pytest.raises(NotFoundError):
        await issuance_service.revoke_credential(str(other.inserted_id), issued.credential_id)
    with pytest.raises(NotFoundError):
        await issuance_service.revoke_credential(organization_id, missing_id)
    with pytest.raises(NotFoundError):
        await issuance_service.revoke_credential(organization_id, "garbage")

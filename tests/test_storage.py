import base64
from datetime import timedelta

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from conftest import make_png
from credentia.core.exceptions import AuthError, NotFoundError, PersistenceError, ValidationError
from credentia.core.security import create_access_token, verify_token
from credentia.models.auth import CallerRole
from credentia.services.blob_storage_service import decode_data_url


def test_data_url_and_bare_base64_decode_alike():
    content = make_png(10, 10)
    encoded = base64.b64encode(content).decode()
    assert decode_data_url(f"data:image/png;base64,{encoded}") == content
    assert decode_data_url(encoded) == content


@pytest.mark.parametrize("value", ["data:image/png,plain", "data:image/png;base64,", "***"])
def test_bad_data_urls(value):
    with pytest.raises(ValidationError) as excinfo:
        decode_data_url(value, field="file")
    assert excinfo.value.field == "file"


async def test_store_load_delete(storage, db):
    ref = await storage.store(b"payload", folder="templates", owner_id="org1", extension=".bin")
    assert ref.startswith("templates/org1/")
    assert await storage.load(ref) == b"payload"
    assert await db.file_metadata.count_documents({"key": ref}) == 1

    assert await storage.delete(ref)
    assert not await storage.delete(ref)
    with pytest.raises(NotFoundError):
        await storage.load(ref)


async def test_oversized_upload_is_rejected(storage):
    storage.max_file_size = 4
    with pytest.raises(ValidationError):
        await storage.store(b"too large", folder="templates", owner_id="org1")


async def test_failed_metadata_write_removes_the_file(storage, db):
    await db.file_metadata.create_index("owner_id", unique=True)
    await db.file_metadata.insert_one({"owner_id": "org1"})

    with pytest.raises(PersistenceError) as excinfo:
        await storage.store(b"payload", folder="templates", owner_id="org1", extension=".bin")
    assert isinstance(excinfo.value.__cause__, DuplicateKeyError)
    assert [p for p in storage.storage_dir.rglob("*") if p.is_file()] == []


async def test_discard_never_raises(storage, monkeypatch):
    ref = await storage.store(b"payload", folder="templates", owner_id="org1", extension=".bin")

    async def unreachable_delete(ref):
        raise ServerSelectionTimeoutError("db down")

    monkeypatch.setattr(storage, "delete", unreachable_delete)
    await storage.discard(ref)


async def test_refs_cannot_leave_the_storage_root(storage):
    with pytest.raises(NotFoundError):
        await storage.load("../../etc/passwd")


def test_token_carries_role():
    token = create_access_token("6650c0ffee0ddba11c0ffee1", role=CallerRole.RECIPIENT)
    data = verify_token(token)
    assert data.subject == "6650c0ffee0ddba11c0ffee1"
    assert data.role == CallerRole.RECIPIENT


def test_expired_or_mistyped_tokens_fail():
    expired = create_access_token("abc", expires_delta=timedelta(minutes=-1))
    with pytest.raises(AuthError):
        verify_token(expired)
    with pytest.raises(AuthError):
        verify_token(create_access_token("abc"), token_type="refresh")
    with pytest.raises(AuthError):
        verify_token("not.a.token")

import base64
import io

import pytest
from PIL import Image

from credentia.core.exceptions import NotFoundError
from credentia.models.credential import VerificationStatus
from credentia.services.verification_service import VerificationService


@pytest.fixture
def verification_service(db, settings):
    return VerificationService(db, settings=settings)


@pytest.fixture
async def credential_id(issuance_service, organization_id, template_id):
    issued = await issuance_service.issue_credential(
        organization_id, template_id, "ada@example.com", {"name": "Ada Lovelace"}
    )
    return issued.credential_id


async def test_valid_credential_names_its_issuer(verification_service, credential_id):
    result = await verification_service.verify_credential(credential_id)
    assert result.valid
    assert result.status == VerificationStatus.VALID
    assert result.issuer_name == "Analytical Society"
    assert result.issue_date is not None


async def test_result_discloses_nothing_else(verification_service, credential_id):
    result = await verification_service.verify_credential(credential_id)
    payload = result.model_dump(exclude_none=True)
    assert set(payload) == {"valid", "status", "issuer_name", "issue_date"}


async def test_revoked_credential_is_invalid(verification_service, issuance_service, organization_id, credential_id):
    await issuance_service.revoke_credential(organization_id, credential_id)
    result = await verification_service.verify_credential(credential_id)
    assert not result.valid
    assert result.status == VerificationStatus.REVOKED
    assert result.issuer_name is None
    assert result.message == "Credential not found or revoked"


@pytest.mark.parametrize("lookup", ["6650c0ffee0ddba11c0ffee1", "not-an-object-id", ""])
async def test_unknown_credential_is_not_found(verification_service, lookup):
    result = await verification_service.verify_credential(lookup)
    assert not result.valid
    assert result.status == VerificationStatus.NOT_FOUND


async def test_qr_encodes_a_png_of_the_requested_size(verification_service, credential_id):
    response = await verification_service.verification_qr(credential_id, size=200)
    assert response.verification_url == f"http://credentials.test/verify/{credential_id}"
    image = Image.open(io.BytesIO(base64.b64decode(response.qr_code_image)))
    assert image.format == "PNG"
    assert image.size == (200, 200)


async def test_qr_for_unknown_credential(verification_service, missing_id):
    with pytest.raises(NotFoundError):
        await verification_service.verification_qr(missing_id)

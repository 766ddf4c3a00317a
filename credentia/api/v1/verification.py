"""
Public verification endpoints. No authentication required.
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ...core.dependencies import get_verification_service
from ...models.credential import VerificationQRResponse, VerificationResult
from ...services.verification_service import VerificationService

router = APIRouter(
    prefix="/api/v1/verify",
    tags=["verification"],
    responses={
        404: {"description": "Credential not found or revoked"},
        500: {"description": "Internal Server Error"}
    }
)


@router.get(
    "/{credential_id}",
    response_model=VerificationResult,
    summary="Verify credential",
    description="Check whether a credential is valid and who issued it"
)
async def verify_credential(
    credential_id: str,
    verification_service: VerificationService = Depends(get_verification_service),
):
    """
    Verify a credential.

    Revoked and unknown credentials answer 404 with ``valid: false`` and a
    status telling them apart.
    """
    result = await verification_service.verify_credential(credential_id)
    if not result.valid:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=result.model_dump(mode="json", exclude_none=True),
        )
    return result


@router.get(
    "/{credential_id}/qr",
    response_model=VerificationQRResponse,
    summary="Verification QR code",
    description="Base64 PNG QR code linking to the credential's verification page"
)
async def verification_qr(
    credential_id: str,
    size: int = Query(300, ge=64, le=1024),
    verification_service: VerificationService = Depends(get_verification_service),
):
    return await verification_service.verification_qr(credential_id, size)

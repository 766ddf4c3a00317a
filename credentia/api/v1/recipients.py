"""
Recipient endpoints: a recipient's own credentials and their artifacts.
"""

from typing import List

from fastapi import APIRouter, Depends, Response

from ...core.dependencies import get_credential_service, get_current_recipient_id
from ...models.credential import CredentialResponse
from ...services.credential_service import CredentialService

router = APIRouter(
    prefix="/api/v1/recipients",
    tags=["recipients"],
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Not Found"},
        500: {"description": "Internal Server Error"}
    }
)


@router.get(
    "/me/credentials",
    response_model=List[CredentialResponse],
    summary="My credentials",
    description="Credentials issued to the calling recipient, revoked ones included"
)
async def list_my_credentials(
    recipient_id: str = Depends(get_current_recipient_id),
    credential_service: CredentialService = Depends(get_credential_service),
):
    return await credential_service.list_recipient_credentials(recipient_id)


@router.get(
    "/me/credentials/{credential_id}/artifact",
    summary="Download my credential",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}}
)
async def download_my_credential(
    credential_id: str,
    recipient_id: str = Depends(get_current_recipient_id),
    credential_service: CredentialService = Depends(get_credential_service),
):
    """Download the rendered credential image; counts as a download."""
    content, filename = await credential_service.download_artifact(recipient_id, credential_id)
    return Response(
        content=content,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

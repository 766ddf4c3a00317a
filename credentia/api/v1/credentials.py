"""
Credential API endpoints for issuing organizations.
Handles issuance, revocation, listing and artifact retrieval.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from ...core.dependencies import (
    get_credential_service,
    get_current_organization_id,
    get_issuance_service,
)
from ...models.credential import (
    CredentialResponse,
    IssueCredentialRequest,
    IssueCredentialResponse,
    RevokeResponse,
)
from ...services.credential_issuance_service import CredentialIssuanceService
from ...services.credential_service import CredentialService
from ...utils.logger import get_logger

logger = get_logger("credentials_api")

router = APIRouter(
    prefix="/api/v1/credentials",
    tags=["credentials"],
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Not Found"},
        422: {"description": "Validation Error"},
        500: {"description": "Internal Server Error"}
    }
)


@router.post(
    "/issue",
    response_model=IssueCredentialResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue credential",
    description="Render a template with recipient data and record the credential"
)
async def issue_credential(
    request: IssueCredentialRequest,
    organization_id: str = Depends(get_current_organization_id),
    issuance_service: CredentialIssuanceService = Depends(get_issuance_service),
):
    """
    Issue a credential.

    Args:
        request: Template id, recipient email and placeholder values
        organization_id: The calling organization

    Returns:
        IssueCredentialResponse: Credential id, artifact reference and link
    """
    return await issuance_service.issue_credential(
        organization_id,
        request.template_id,
        request.recipient_email,
        request.data,
        description=request.description,
    )


@router.get(
    "",
    response_model=List[CredentialResponse],
    summary="List issued credentials"
)
async def list_credentials(
    organization_id: str = Depends(get_current_organization_id),
    credential_service: CredentialService = Depends(get_credential_service),
):
    return await credential_service.list_organization_credentials(organization_id)


@router.get(
    "/{credential_id}",
    response_model=CredentialResponse,
    summary="Get issued credential"
)
async def get_credential(
    credential_id: str,
    organization_id: str = Depends(get_current_organization_id),
    credential_service: CredentialService = Depends(get_credential_service),
):
    credential = await credential_service.get_credential(organization_id, credential_id)
    return credential_service.to_response(credential)


@router.post(
    "/{credential_id}/revoke",
    response_model=RevokeResponse,
    summary="Revoke credential",
    description="Mark a credential as revoked; repeating the call is a no-op"
)
async def revoke_credential(
    credential_id: str,
    organization_id: str = Depends(get_current_organization_id),
    issuance_service: CredentialIssuanceService = Depends(get_issuance_service),
):
    return await issuance_service.revoke_credential(organization_id, credential_id)


@router.get(
    "/{credential_id}/artifact",
    summary="Get credential artifact",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}}
)
async def get_artifact(
    credential_id: str,
    organization_id: str = Depends(get_current_organization_id),
    credential_service: CredentialService = Depends(get_credential_service),
):
    content, filename = await credential_service.get_artifact(organization_id, credential_id)
    return Response(
        content=content,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )

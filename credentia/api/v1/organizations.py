"""
Organization endpoints: profile, dashboard and credential-list maintenance.
"""

from fastapi import APIRouter, Depends

from ...core.dependencies import get_current_organization_id, get_organization_service
from ...models.organization import DashboardStats, OrganizationProfile, ReconcileResult
from ...services.organization_service import OrganizationService

router = APIRouter(
    prefix="/api/v1/organizations",
    tags=["organizations"],
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Not Found"},
        500: {"description": "Internal Server Error"}
    }
)


@router.get(
    "/me",
    response_model=OrganizationProfile,
    summary="Organization profile"
)
async def get_profile(
    organization_id: str = Depends(get_current_organization_id),
    organization_service: OrganizationService = Depends(get_organization_service),
):
    organization = await organization_service.get_organization(organization_id)
    return OrganizationProfile.from_document(organization)


@router.get(
    "/me/dashboard",
    response_model=DashboardStats,
    summary="Organization dashboard",
    description="Template and credential counters for the calling organization"
)
async def get_dashboard(
    organization_id: str = Depends(get_current_organization_id),
    organization_service: OrganizationService = Depends(get_organization_service),
):
    return await organization_service.organization_dashboard(organization_id)


@router.post(
    "/me/reconcile",
    response_model=ReconcileResult,
    summary="Reconcile credential lists",
    description="Re-add every issued credential to the organization and recipient lists"
)
async def reconcile(
    organization_id: str = Depends(get_current_organization_id),
    organization_service: OrganizationService = Depends(get_organization_service),
):
    return await organization_service.reconcile_credential_lists(organization_id)

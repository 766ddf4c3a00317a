"""
Template API endpoints: create, list, fetch and preview templates.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from ...core.dependencies import get_current_organization_id, get_template_service
from ...models.template import (
    PreviewRequest,
    TemplateCreate,
    TemplateCreatedResponse,
    TemplateResponse,
)
from ...services.template_service import TemplateService
from ...utils.logger import get_logger

logger = get_logger("templates_api")

router = APIRouter(
    prefix="/api/v1/templates",
    tags=["templates"],
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Not Found"},
        422: {"description": "Validation Error"},
        500: {"description": "Internal Server Error"}
    }
)


@router.post(
    "",
    response_model=TemplateCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create template",
    description="Create a template from a background image and its text placeholders"
)
async def create_template(
    template_data: TemplateCreate,
    organization_id: str = Depends(get_current_organization_id),
    template_service: TemplateService = Depends(get_template_service),
):
    """
    Create a new template.

    Args:
        template_data: Name, base64 background image and placeholder elements
        organization_id: The calling organization

    Returns:
        TemplateCreatedResponse: The new template id
    """
    template_id = await template_service.create_from_request(organization_id, template_data)
    return TemplateCreatedResponse(template_id=template_id)


@router.get(
    "",
    response_model=List[TemplateResponse],
    summary="List templates",
    description="List the calling organization's templates, newest first"
)
async def list_templates(
    organization_id: str = Depends(get_current_organization_id),
    template_service: TemplateService = Depends(get_template_service),
):
    templates = await template_service.list_templates(organization_id)
    return [template_service.to_response(template) for template in templates]


@router.get(
    "/{template_id}",
    response_model=TemplateResponse,
    summary="Get template"
)
async def get_template(
    template_id: str,
    organization_id: str = Depends(get_current_organization_id),
    template_service: TemplateService = Depends(get_template_service),
):
    template = await template_service.get_template(organization_id, template_id)
    return template_service.to_response(template)


@router.post(
    "/{template_id}/preview",
    summary="Preview template",
    description="Render the template as SVG with the given values; unbound fields show their labels",
    response_class=Response,
    responses={200: {"content": {"image/svg+xml": {}}}}
)
async def preview_template(
    template_id: str,
    preview: PreviewRequest,
    organization_id: str = Depends(get_current_organization_id),
    template_service: TemplateService = Depends(get_template_service),
):
    """
    Render an issuer preview of a template.

    Args:
        template_id: Template to preview
        preview: Values to bind, optional width cap and selected placeholder

    Returns:
        SVG document
    """
    svg = await template_service.render_preview(
        organization_id,
        template_id,
        preview.data,
        max_width=preview.max_width,
        selected_key=preview.selected_key,
    )
    return Response(content=svg, media_type="image/svg+xml")

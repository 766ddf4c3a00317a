"""
Template service: validation, persistence and preview of credential templates.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.config import Settings, get_settings
from ..core.exceptions import NotFoundError, PersistenceError, RenderError, ValidationError
from ..models.template import (
    PlaceholderSchema,
    TemplateCreate,
    TemplateInDB,
    TemplateResponse,
    parse_placeholder,
)
from ..rendering.fonts import PdfMetricsMeasurer
from ..rendering.preview import PreviewCanvas
from ..rendering.raster import read_image_size
from ..rendering.transform import RenderSurface
from ..utils.logger import get_logger
from ..utils.serialization import to_object_id
from .blob_storage_service import BlobStorageService, decode_data_url

logger = get_logger("template_service")

# Builder element types that carry bound text; anything else (shapes, images) is ignored
TEXT_ELEMENT_TYPES = (None, "text")


def parse_placeholders(raw_placeholders: Iterable[Any]) -> List[PlaceholderSchema]:
    """
    Build the placeholder list of a template, in the order given.

    Raises:
        ValidationError: Naming the first malformed attribute, a duplicate key,
            or an empty list
    """
    placeholders: List[PlaceholderSchema] = []
    seen: Dict[str, int] = {}

    for index, raw in enumerate(raw_placeholders):
        if isinstance(raw, Mapping) and raw.get("type") not in TEXT_ELEMENT_TYPES:
            continue
        placeholder = raw if isinstance(raw, PlaceholderSchema) else parse_placeholder(
            raw, field_prefix=f"placeholders[{index}]"
        )
        if placeholder.key in seen:
            raise ValidationError(
                f"Duplicate placeholder key '{placeholder.key}' "
                f"(placeholders {seen[placeholder.key]} and {index})",
                field=f"placeholders[{index}].key",
            )
        seen[placeholder.key] = index
        placeholders.append(placeholder)

    if not placeholders:
        raise ValidationError("A template needs at least one placeholder", field="placeholders")
    return placeholders


class TemplateService:
    """Service class for template operations."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        storage: Optional[BlobStorageService] = None,
        measurer: Optional[PdfMetricsMeasurer] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.storage = storage or BlobStorageService(db, self.settings)
        self.measurer = measurer or PdfMetricsMeasurer.from_settings(self.settings)

    async def _require_organization(self, organization_id: str) -> ObjectId:
        oid = to_object_id(organization_id)
        if oid is None or await self.db.organizations.count_documents({"_id": oid}, limit=1) == 0:
            raise NotFoundError("Organization", organization_id)
        return oid

    async def create_template(
        self,
        organization_id: str,
        name: str,
        background_image: bytes,
        placeholders: Iterable[Any],
    ) -> str:
        """
        Validate and persist a new template.

        The background's decoded size becomes the template's native
        resolution; nothing is written unless every check passes.

        Returns:
            str: The new template id
        """
        owner_id = await self._require_organization(organization_id)

        name = (name or "").strip()
        if not name:
            raise ValidationError("Template name is required", field="name")
        parsed = parse_placeholders(placeholders)

        try:
            width, height, image_format = await asyncio.to_thread(read_image_size, background_image)
        except RenderError as e:
            raise ValidationError(e.message, field="background_image")

        ref = await self.storage.store(
            background_image,
            folder="templates",
            owner_id=str(owner_id),
            extension=self.storage.extension_for(image_format),
        )

        document = {
            "owner_id": owner_id,
            "name": name,
            "background_image_ref": ref,
            "native_width": width,
            "native_height": height,
            "placeholders": [placeholder.model_dump(mode="json") for placeholder in parsed],
            "created_at": datetime.utcnow(),
        }

        try:
            result = await self.db.templates.insert_one(document)
        except Exception as e:
            logger.error(f"Template insert failed for organization {organization_id}: {e}")
            await self.storage.discard(ref)
            raise PersistenceError("Template could not be saved") from e

        template_id = str(result.inserted_id)
        logger.info(
            f"Template {template_id} '{name}' created for organization {organization_id} "
            f"({width}x{height}, {len(parsed)} placeholders)"
        )
        return template_id

    async def create_from_request(self, organization_id: str, request: TemplateCreate) -> str:
        """Create a template from the builder's JSON payload."""
        image = decode_data_url(request.background_image)
        return await self.create_template(organization_id, request.name, image, request.placeholders)

    async def list_templates(self, organization_id: str) -> List[TemplateInDB]:
        """Templates owned by the organization, newest first."""
        owner_id = to_object_id(organization_id)
        if owner_id is None:
            return []
        cursor = self.db.templates.find({"owner_id": owner_id}).sort("created_at", -1)
        return [TemplateInDB(**document) async for document in cursor]

    async def get_template(self, organization_id: str, template_id: str) -> TemplateInDB:
        """
        Fetch one template. Templates of other organizations are reported as
        not found.
        """
        oid = to_object_id(template_id)
        owner_id = to_object_id(organization_id)
        document = None
        if oid is not None and owner_id is not None:
            document = await self.db.templates.find_one({"_id": oid, "owner_id": owner_id})
        if document is None:
            raise NotFoundError("Template", template_id)
        return TemplateInDB(**document)

    def to_response(self, template: TemplateInDB) -> TemplateResponse:
        return TemplateResponse(
            id=str(template.id),
            owner_id=str(template.owner_id),
            name=template.name,
            background_image_url=self.storage.public_url(template.background_image_ref),
            native_width=template.native_width,
            native_height=template.native_height,
            placeholders=template.placeholders,
            created_at=template.created_at,
        )

    async def render_preview(
        self,
        organization_id: str,
        template_id: str,
        values: Optional[Mapping[str, Any]] = None,
        max_width: Optional[int] = None,
        selected_key: Optional[str] = None,
    ) -> str:
        """
        Render the issuer preview of a template as SVG. Unbound keys show their
        labels; the stage is sized to the width cap with the image's aspect.
        """
        template = await self.get_template(organization_id, template_id)
        surface = RenderSurface.fit_width(
            template.native_width,
            template.native_height,
            min(max_width or self.settings.preview_max_width, template.native_width),
        )
        canvas = PreviewCanvas(
            self.storage.public_url(template.background_image_ref),
            template.native_width,
            template.native_height,
            surface.surface_width,
            surface.surface_height,
            self.measurer,
            template.placeholders,
        )
        if selected_key is not None:
            canvas.select(selected_key)

        bound = {key: str(value) for key, value in (values or {}).items() if value is not None}
        return canvas.render(bound)


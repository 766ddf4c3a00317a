"""
Template authoring session.

Holds a builder's local, unsaved state: the background image, the preview
canvas and its placeholders. Nothing is persisted until ``save``.

    empty -> image-loaded -> editing -> saved
    (any state) -> empty via remove_template()
"""

import base64
from enum import Enum
from typing import Any, Optional

from ..core.exceptions import BuilderStateError, ValidationError
from ..models.template import PlaceholderSchema, key_from_label, parse_placeholder
from .fonts import PdfMetricsMeasurer
from .preview import PreviewCanvas
from .raster import read_image_size

DEFAULT_STAGE_WIDTH = 800


class BuilderState(str, Enum):
    EMPTY = "empty"
    IMAGE_LOADED = "image-loaded"
    EDITING = "editing"
    SAVED = "saved"


class TemplateBuilder:
    """State machine around a PreviewCanvas for one authoring session."""

    def __init__(self, measurer: PdfMetricsMeasurer, stage_width: float = DEFAULT_STAGE_WIDTH):
        self.measurer = measurer
        self.stage_width = stage_width
        self.name = ""
        self.state = BuilderState.EMPTY
        self.canvas: Optional[PreviewCanvas] = None
        self.image_bytes: Optional[bytes] = None
        self.template_id: Optional[str] = None

    def _require(self, *states: BuilderState) -> None:
        if self.state not in states:
            allowed = ", ".join(state.value for state in states)
            raise BuilderStateError(f"Not allowed while {self.state.value} (needs {allowed})")

    def load_image(self, image_bytes: bytes) -> None:
        """Set the background; its size becomes the native resolution."""
        self._require(BuilderState.EMPTY)
        width, height, image_format = read_image_size(image_bytes)
        mime = f"image/{image_format.lower()}"
        href = f"data:{mime};base64,{base64.b64encode(image_bytes).decode()}"

        self.canvas = PreviewCanvas(
            href,
            width,
            height,
            self.stage_width,
            self.stage_width * height / width,
            self.measurer,
        )
        self.image_bytes = image_bytes
        self.state = BuilderState.IMAGE_LOADED

    def set_name(self, name: str) -> None:
        self._require(BuilderState.EMPTY, BuilderState.IMAGE_LOADED, BuilderState.EDITING)
        self.name = name

    def _begin_edit(self) -> PreviewCanvas:
        self._require(BuilderState.IMAGE_LOADED, BuilderState.EDITING)
        self.state = BuilderState.EDITING
        return self.canvas

    def add_placeholder(
        self,
        label: str,
        surface_x: float,
        surface_y: float,
        key: Optional[str] = None,
        **style: Any,
    ) -> PlaceholderSchema:
        """Drop a new text field at a stage position."""
        canvas = self._begin_edit()
        x, y = canvas.transform.inverse(surface_x, surface_y)
        placeholder = parse_placeholder(
            {"key": key or key_from_label(label), "label": label, "x": max(0.0, x), "y": max(0.0, y), **style}
        )
        return canvas.add(placeholder)

    def move_placeholder(self, key: str, surface_x: float, surface_y: float) -> PlaceholderSchema:
        return self._begin_edit().move_to(key, surface_x, surface_y)

    def resize_placeholder(self, key: str, scale_x: float, scale_y: float) -> bool:
        return self._begin_edit().resize(key, scale_x, scale_y)

    def restyle_placeholder(self, key: str, **changes: Any) -> PlaceholderSchema:
        return self._begin_edit().restyle(key, **changes)

    def remove_placeholder(self, key: str) -> None:
        self._begin_edit().remove(key)

    def select(self, key: Optional[str]) -> None:
        self._require(BuilderState.IMAGE_LOADED, BuilderState.EDITING)
        self.canvas.select(key)

    def render(self) -> str:
        self._require(BuilderState.IMAGE_LOADED, BuilderState.EDITING, BuilderState.SAVED)
        return self.canvas.render()

    def validate(self) -> None:
        if not self.name.strip():
            raise ValidationError("Template name is required", field="name")
        if self.canvas is None or not self.canvas.placeholders:
            raise ValidationError("A template needs at least one placeholder", field="placeholders")

    async def save(self, template_service, owner_id: str) -> str:
        """Validate and submit the template. Returns the new template id."""
        self._require(BuilderState.EDITING)
        self.validate()
        self.template_id = await template_service.create_template(
            owner_id,
            self.name.strip(),
            self.image_bytes,
            [placeholder.model_dump(mode="json") for placeholder in self.canvas.placeholders],
        )
        self.state = BuilderState.SAVED
        return self.template_id

    def remove_template(self) -> None:
        """Discard the image and every unsaved edit."""
        self.name = ""
        self.canvas = None
        self.image_bytes = None
        self.template_id = None
        self.state = BuilderState.EMPTY

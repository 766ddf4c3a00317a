"""
Template and placeholder models.

A placeholder describes one positioned, styled text field on a template's
background image. Coordinates are expressed in the background image's native
pixel space; defaults are filled once, when the model is constructed.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError
from .recipient import PyObjectId


DEFAULT_PLACEHOLDER_LABEL = "Placeholder"
DEFAULT_BOX_WIDTH = 150
DEFAULT_BOX_HEIGHT = 50
DEFAULT_FONT_SIZE = 20
DEFAULT_FONT_FAMILY = "Arial"
DEFAULT_FILL_COLOR = "black"

ISSUE_DATE_KEY = "issueDate"
SERVER_INJECTED_KEYS = frozenset({ISSUE_DATE_KEY})


class TextAlign(str, Enum):
    """Horizontal alignment of text inside its box."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class FontWeight(str, Enum):
    NORMAL = "normal"
    BOLD = "bold"


class FontSlant(str, Enum):
    NORMAL = "normal"
    ITALIC = "italic"


class FontStyle(BaseModel):
    """
    Font weight and slant.

    Accepts the builder's compact string form ("bold italic", "normal italic",
    "bold", "normal") as well as a mapping with ``weight`` and ``slant``.
    """

    weight: FontWeight = FontWeight.NORMAL
    slant: FontSlant = FontSlant.NORMAL

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def parse_compact(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, str):
            return value
        style: Dict[str, str] = {}
        for token in value.lower().split():
            if token == "bold":
                style["weight"] = "bold"
            elif token == "italic":
                style["slant"] = "italic"
            elif token != "normal":
                raise ValueError(f"Unsupported font style token: {token!r}")
        return style

    @property
    def is_bold(self) -> bool:
        return self.weight == FontWeight.BOLD

    @property
    def is_italic(self) -> bool:
        return self.slant == FontSlant.ITALIC

    def css(self) -> str:
        """Compact form used by the builder, e.g. ``"bold normal"``."""
        return f"{self.weight.value} {self.slant.value}"


def key_from_label(label: str) -> str:
    """
    Derive a lookup key from a label: ``"Issue Date"`` -> ``"issueDate"``.
    A label that is already camelCase is kept as is.
    """
    words = re.findall(r"[A-Za-z0-9]+", label or "")
    if not words:
        return "placeholder"
    first, rest = words[0], words[1:]
    head = first[0].lower() + first[1:]
    return head + "".join(word[0].upper() + word[1:] for word in rest)


class PlaceholderSchema(BaseModel):
    """One positioned, styled text field on a template."""

    key: str = Field(..., min_length=1, description="Bound-data lookup key, unique per template")
    label: str = Field(DEFAULT_PLACEHOLDER_LABEL, description="Human-readable name")
    x: float = Field(..., ge=0, description="Left edge in native pixels")
    y: float = Field(..., ge=0, description="Top edge in native pixels")
    width: float = Field(DEFAULT_BOX_WIDTH, gt=0, description="Box width in native pixels")
    height: float = Field(DEFAULT_BOX_HEIGHT, gt=0, description="Box height in native pixels")
    font_size: int = Field(
        DEFAULT_FONT_SIZE, gt=0,
        validation_alias=AliasChoices("font_size", "fontSize"),
    )
    font_family: str = Field(
        DEFAULT_FONT_FAMILY, min_length=1,
        validation_alias=AliasChoices("font_family", "fontFamily"),
    )
    font_style: FontStyle = Field(
        default_factory=FontStyle,
        validation_alias=AliasChoices("font_style", "fontStyle"),
    )
    align: TextAlign = TextAlign.LEFT
    fill_color: str = Field(
        DEFAULT_FILL_COLOR,
        validation_alias=AliasChoices("fill_color", "fillColor", "fill"),
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, data: Any) -> Any:
        """Treat absent, null and empty builder values as "use the default"."""
        if not isinstance(data, dict):
            return data
        cleaned = {name: value for name, value in data.items() if value is not None and value != ""}
        if not cleaned.get("label"):
            cleaned["label"] = DEFAULT_PLACEHOLDER_LABEL
        if not cleaned.get("key"):
            cleaned["key"] = key_from_label(cleaned["label"])
        return cleaned


class TemplateCreate(BaseModel):
    """Schema for creating a template from the builder."""

    name: str = Field(..., description="Template name")
    background_image: str = Field(
        ...,
        validation_alias=AliasChoices("background_image", "backgroundImage", "file"),
        description="Background image as a data URL or bare base64 string",
    )
    placeholders: List[Dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("placeholders", "elements"),
        description="Raw placeholder definitions; non-text builder elements are ignored",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Course Completion",
                "background_image": "data:image/png;base64,iVBORw0KGgo...",
                "placeholders": [
                    {
                        "key": "name",
                        "label": "Recipient Name",
                        "x": 100,
                        "y": 100,
                        "width": 300,
                        "height": 50,
                        "fontSize": 24,
                        "fontStyle": "bold normal",
                        "align": "center",
                    }
                ],
            }
        }
    )


class TemplateInDB(BaseModel):
    """Template as stored in database."""

    id: PyObjectId = Field(default_factory=PyObjectId, alias="_id")
    owner_id: PyObjectId
    name: str
    background_image_ref: str
    native_width: int = Field(..., gt=0)
    native_height: int = Field(..., gt=0)
    placeholders: List[PlaceholderSchema]
    created_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str},
    )

    def placeholder_keys(self) -> List[str]:
        return [placeholder.key for placeholder in self.placeholders]

    def required_keys(self) -> List[str]:
        """Keys the issuer must supply; server-injected keys are excluded."""
        return [key for key in self.placeholder_keys() if key not in SERVER_INJECTED_KEYS]


class TemplateResponse(BaseModel):
    """Template returned to API callers."""

    id: str
    owner_id: str
    name: str
    background_image_url: str
    native_width: int
    native_height: int
    placeholders: List[PlaceholderSchema]
    created_at: datetime


class TemplateCreatedResponse(BaseModel):
    message: str = "Template created"
    template_id: str


class PreviewRequest(BaseModel):
    """Bound values for an unsaved-data preview; missing keys show labels."""

    data: Dict[str, Any] = Field(default_factory=dict)
    max_width: Optional[int] = Field(None, gt=0, description="Preview surface width cap")
    selected_key: Optional[str] = Field(None, description="Placeholder to draw transform handles on")


def parse_placeholder(data: Any, field_prefix: str = "") -> PlaceholderSchema:
    """
    Build a placeholder, reporting the first invalid attribute as a domain
    ValidationError that names it.
    """
    try:
        return PlaceholderSchema.model_validate(data)
    except PydanticValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        field = f"{field_prefix}.{location}" if field_prefix and location else (field_prefix or location)
        raise ValidationError(f"Invalid placeholder attribute '{field}': {error['msg']}", field=field)

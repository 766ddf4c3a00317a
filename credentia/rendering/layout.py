"""
Text layout engine shared by every render backend.

Backends differ only in how they measure and draw glyphs; where the text goes
is decided here, from the placeholder box, the measured string width and the
font size.
"""

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Protocol

from ..core.exceptions import ValidationError
from ..models.template import PlaceholderSchema, TextAlign
from ..utils.logger import get_logger
from .transform import Box, CoordinateTransform

logger = get_logger("layout")


@dataclass(frozen=True)
class FontSpec:
    """Font attributes at the size they are drawn on the surface."""

    family: str
    size: float
    bold: bool = False
    italic: bool = False

    @classmethod
    def for_placeholder(cls, placeholder: PlaceholderSchema, scale: float = 1.0) -> "FontSpec":
        return cls(
            family=placeholder.font_family,
            size=placeholder.font_size * scale,
            bold=placeholder.font_style.is_bold,
            italic=placeholder.font_style.is_italic,
        )


class TextMeasurer(Protocol):
    """Text-measurement capability a render backend provides."""

    def measure(self, text: str, font: FontSpec) -> float:
        ...


@dataclass(frozen=True)
class PlacedText:
    """One placeholder's text, resolved and positioned in surface space."""

    key: str
    text: str
    box: Box
    font: FontSpec
    align: TextAlign
    fill: str
    x: float
    baseline_y: float
    measured_width: float

    @property
    def overflow(self) -> bool:
        return self.measured_width > self.box.width

    @property
    def center_x(self) -> float:
        """Horizontal midpoint of the drawn string."""
        return self.x + self.measured_width / 2


def horizontal_origin(box: Box, measured_width: float, align: TextAlign) -> float:
    if align == TextAlign.CENTER:
        return box.x + (box.width - measured_width) / 2
    if align == TextAlign.RIGHT:
        return box.x + box.width - measured_width
    return box.x


def baseline_origin(box: Box, font_size: float) -> float:
    # Approximates ascent/descent centering; kept as is so output does not shift.
    return box.y + (box.height - font_size) / 2 + font_size


def resolve_text(
    placeholder: PlaceholderSchema,
    values: Mapping[str, str],
    fallback_to_label: bool = False,
) -> str:
    """
    Look up the bound value for a placeholder. Previews show the label for an
    unbound key; final renders treat it as a hard failure.
    """
    value = values.get(placeholder.key)
    text = "" if value is None else str(value)
    if text.strip():
        return text
    if fallback_to_label:
        return placeholder.label
    raise ValidationError(f"Missing data for placeholder {placeholder.key}", field=placeholder.key)


def layout_placeholder(
    placeholder: PlaceholderSchema,
    transform: CoordinateTransform,
    text: str,
    measurer: TextMeasurer,
) -> PlacedText:
    """Transform the box to surface space, scale the font and place the text."""
    box = transform.to_surface(
        Box(placeholder.x, placeholder.y, placeholder.width, placeholder.height)
    )
    font = FontSpec.for_placeholder(placeholder, transform.scale)
    measured_width = measurer.measure(text, font)

    placed = PlacedText(
        key=placeholder.key,
        text=text,
        box=box,
        font=font,
        align=placeholder.align,
        fill=placeholder.fill_color,
        x=horizontal_origin(box, measured_width, placeholder.align),
        baseline_y=baseline_origin(box, font.size),
        measured_width=measured_width,
    )
    if placed.overflow:
        logger.debug(
            f"Text for '{placeholder.key}' overflows its box "
            f"({measured_width:.1f}px > {box.width:.1f}px)"
        )
    return placed


def layout_all(
    placeholders: Iterable[PlaceholderSchema],
    transform: CoordinateTransform,
    values: Mapping[str, str],
    measurer: TextMeasurer,
    fallback_to_label: bool = False,
) -> List[PlacedText]:
    """Lay out every placeholder in template order."""
    placed = []
    for placeholder in placeholders:
        text = resolve_text(placeholder, values, fallback_to_label)
        placed.append(layout_placeholder(placeholder, transform, text, measurer))
    return placed

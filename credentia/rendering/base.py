"""
Render backend interface and the compositing routine both backends share.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Mapping, Sequence

from ..models.template import PlaceholderSchema, TemplateInDB
from .layout import PlacedText, TextMeasurer, layout_all
from .transform import Box, CoordinateTransform, RenderSurface


@dataclass(frozen=True)
class TemplateLayout:
    """What a backend needs from a template: native size and placeholders."""

    native_width: int
    native_height: int
    placeholders: Sequence[PlaceholderSchema]

    @classmethod
    def from_template(cls, template: TemplateInDB) -> "TemplateLayout":
        return cls(template.native_width, template.native_height, tuple(template.placeholders))


class RenderBackend(ABC):
    """Drawing primitives; everything geometric is decided by ``compose``."""

    @property
    @abstractmethod
    def measurer(self) -> TextMeasurer:
        ...

    @abstractmethod
    def begin(self, surface: RenderSurface) -> None:
        """Start a fresh drawing target of the surface's size."""

    @abstractmethod
    def draw_background(self, rect: Box) -> None:
        """Draw the background image stretched to ``rect``."""

    @abstractmethod
    def draw_text(self, placed: PlacedText) -> None:
        """Draw one string with its baseline origin at ``(placed.x, placed.baseline_y)``."""


def compose(
    layout: TemplateLayout,
    surface: RenderSurface,
    values: Mapping[str, str],
    backend: RenderBackend,
    fallback_to_label: bool = False,
) -> List[PlacedText]:
    """
    Draw the background and every placeholder onto the backend.

    All text is laid out before anything is drawn, so a missing value or an
    unresolvable font fails the render without a half-drawn surface.
    """
    transform = CoordinateTransform(surface)
    placed = layout_all(
        layout.placeholders, transform, values, backend.measurer, fallback_to_label
    )

    backend.begin(surface)
    backend.draw_background(transform.image_rect())
    for item in placed:
        backend.draw_text(item)
    return placed

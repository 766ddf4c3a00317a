"""
Interactive preview backend.

Keeps a mutable scene of placeholders over a background image, supports the
edits a builder performs on it (select, drag, resize, restyle), and serializes
the scene to SVG for the browser. Geometry comes from the same transform and
layout code the raster backend uses.
"""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional
from xml.sax.saxutils import escape, quoteattr

from ..core.exceptions import NotFoundError, ValidationError
from ..models.template import PlaceholderSchema, parse_placeholder
from .base import RenderBackend, TemplateLayout, compose
from .fonts import PdfMetricsMeasurer
from .layout import PlacedText
from .transform import Box, CoordinateTransform, RenderSurface

# Smallest box the transform handles may shrink an element to, in surface pixels
MIN_ELEMENT_SIZE = 10
HANDLE_SIZE = 8
SELECTION_COLOR = "#0d99ff"

RESTYLABLE_FIELDS = frozenset(
    {"label", "font_size", "font_family", "font_style", "align", "fill_color"}
)


def _num(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


class PreviewCanvas(RenderBackend):
    """Mutable, selectable preview surface rendered to SVG."""

    def __init__(
        self,
        background_href: str,
        native_width: float,
        native_height: float,
        surface_width: float,
        surface_height: float,
        measurer: PdfMetricsMeasurer,
        placeholders: Iterable[PlaceholderSchema] = (),
    ):
        self.background_href = background_href
        self.surface = RenderSurface(native_width, native_height, surface_width, surface_height)
        self.transform = CoordinateTransform(self.surface)
        self._measurer = measurer
        self._elements: "OrderedDict[str, PlaceholderSchema]" = OrderedDict()
        self.selected_key: Optional[str] = None
        self._parts: List[str] = []

        for placeholder in placeholders:
            self.add(placeholder)

    # Scene editing

    @property
    def placeholders(self) -> List[PlaceholderSchema]:
        return list(self._elements.values())

    def element(self, key: str) -> PlaceholderSchema:
        try:
            return self._elements[key]
        except KeyError:
            raise NotFoundError("Placeholder", key)

    def add(self, placeholder: PlaceholderSchema) -> PlaceholderSchema:
        if placeholder.key in self._elements:
            raise ValidationError(f"Duplicate placeholder key '{placeholder.key}'", field=placeholder.key)
        self._elements[placeholder.key] = placeholder
        return placeholder

    def remove(self, key: str) -> None:
        self.element(key)
        del self._elements[key]
        if self.selected_key == key:
            self.selected_key = None

    def select(self, key: Optional[str]) -> None:
        if key is not None:
            self.element(key)
        self.selected_key = key

    def move_to(self, key: str, surface_x: float, surface_y: float) -> PlaceholderSchema:
        """Drop an element's top-left corner at a surface position."""
        x, y = self.transform.inverse(surface_x, surface_y)
        return self._replace(key, {"x": max(0.0, x), "y": max(0.0, y)})

    def resize(self, key: str, scale_x: float, scale_y: float) -> bool:
        """
        Apply a transform-handle drag. Returns False, leaving the element
        untouched, when the result would be smaller than the minimum size.
        """
        current = self.element(key)
        width = current.width * scale_x
        height = current.height * scale_y
        if (
            self.transform.scale_length(width) < MIN_ELEMENT_SIZE
            or self.transform.scale_length(height) < MIN_ELEMENT_SIZE
        ):
            return False
        self._replace(key, {"width": width, "height": height})
        return True

    def restyle(self, key: str, **changes: Any) -> PlaceholderSchema:
        unknown = set(changes) - RESTYLABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot restyle field(s): {', '.join(sorted(unknown))}")
        return self._replace(key, changes)

    def resize_surface(self, surface_width: float, surface_height: float) -> None:
        """The stage changed size; native layout is unaffected."""
        self.surface = RenderSurface(
            self.surface.native_width, self.surface.native_height, surface_width, surface_height
        )
        self.transform = CoordinateTransform(self.surface)

    def _replace(self, key: str, changes: Dict[str, Any]) -> PlaceholderSchema:
        current = self.element(key)
        data = current.model_dump()
        data.update(changes)
        updated = parse_placeholder(data)
        self._elements[key] = updated
        return updated

    # Rendering

    @property
    def measurer(self) -> PdfMetricsMeasurer:
        return self._measurer

    def layout(self) -> TemplateLayout:
        return TemplateLayout(
            int(self.surface.native_width), int(self.surface.native_height), tuple(self.placeholders)
        )

    def render(self, values: Optional[Mapping[str, str]] = None) -> str:
        """Serialize the scene to SVG, showing labels for unbound keys."""
        placed = compose(self.layout(), self.surface, values or {}, self, fallback_to_label=True)
        if self.selected_key is not None:
            self._draw_selection(next(p for p in placed if p.key == self.selected_key))
        self._parts.append("</svg>")
        return "\n".join(self._parts)

    def begin(self, surface: RenderSurface) -> None:
        width, height = _num(surface.surface_width), _num(surface.surface_height)
        self._parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
            f'viewBox="0 0 {width} {height}">'
        ]

    def draw_background(self, rect: Box) -> None:
        self._parts.append(
            f'<image id="background" href={quoteattr(self.background_href)} '
            f'x="{_num(rect.x)}" y="{_num(rect.y)}" '
            f'width="{_num(rect.width)}" height="{_num(rect.height)}" preserveAspectRatio="none"/>'
        )

    def draw_text(self, placed: PlacedText) -> None:
        weight = "bold" if placed.font.bold else "normal"
        style = "italic" if placed.font.italic else "normal"
        self._parts.append(
            f'<text id={quoteattr("placeholder-" + placed.key)} data-key={quoteattr(placed.key)} '
            f'x="{_num(placed.x)}" y="{_num(placed.baseline_y)}" '
            f'font-family={quoteattr(placed.font.family)} font-size="{_num(placed.font.size)}" '
            f'font-weight="{weight}" font-style="{style}" fill={quoteattr(placed.fill)}>'
            f'{escape(placed.text)}</text>'
        )

    def _draw_selection(self, placed: PlacedText) -> None:
        box = placed.box
        self._parts.append(
            f'<g id="selection" data-key={quoteattr(placed.key)}>'
            f'<rect x="{_num(box.x)}" y="{_num(box.y)}" width="{_num(box.width)}" '
            f'height="{_num(box.height)}" fill="none" stroke="{SELECTION_COLOR}" stroke-dasharray="4 2"/>'
        )
        half = HANDLE_SIZE / 2
        for hx in (box.x, box.center_x, box.right):
            for hy in (box.y, box.center_y, box.bottom):
                if hx == box.center_x and hy == box.center_y:
                    continue
                self._parts.append(
                    f'<rect class="handle" x="{_num(hx - half)}" y="{_num(hy - half)}" '
                    f'width="{HANDLE_SIZE}" height="{HANDLE_SIZE}" fill="white" stroke="{SELECTION_COLOR}"/>'
                )
        self._parts.append("</g>")

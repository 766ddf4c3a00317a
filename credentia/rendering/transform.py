"""
Coordinate transform between a template's native image space and a render
surface.

Placeholder coordinates are authored against the background image's native
resolution. Any surface (a preview stage of variable size or the final output
raster) shows the image scaled uniformly to fit and centered, so a single scale
and a pair of offsets map every native point onto the surface.
"""

from dataclasses import dataclass
from typing import Tuple

from ..core.exceptions import SurfaceNotReadyError


@dataclass(frozen=True)
class Box:
    """Axis-aligned rectangle: top-left corner plus size."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass(frozen=True)
class RenderSurface:
    """Native resolution of the template and resolution of the drawing target."""

    native_width: float
    native_height: float
    surface_width: float
    surface_height: float

    @classmethod
    def native(cls, width: float, height: float) -> "RenderSurface":
        """A surface drawn at the template's own resolution."""
        return cls(width, height, width, height)

    @classmethod
    def fit_width(cls, native_width: float, native_height: float, max_width: float) -> "RenderSurface":
        """
        A surface of the given width whose height follows the image aspect
        ratio, the way the issuer preview sizes its stage.
        """
        if native_width <= 0 or native_height <= 0:
            raise SurfaceNotReadyError("Background image dimensions are not known yet")
        return cls(native_width, native_height, max_width, max_width * native_height / native_width)


class CoordinateTransform:
    """Uniform scale plus centering offset for one surface."""

    def __init__(self, surface: RenderSurface):
        if surface.native_width <= 0 or surface.native_height <= 0:
            raise SurfaceNotReadyError("Background image dimensions are not known yet")
        if surface.surface_width <= 0 or surface.surface_height <= 0:
            raise SurfaceNotReadyError("Render surface has no area")

        self.surface = surface
        self.scale = min(
            surface.surface_width / surface.native_width,
            surface.surface_height / surface.native_height,
        )
        self.offset_x = (surface.surface_width - surface.native_width * self.scale) / 2
        self.offset_y = (surface.surface_height - surface.native_height * self.scale) / 2

    @classmethod
    def from_dimensions(
        cls,
        native_width: float,
        native_height: float,
        surface_width: float,
        surface_height: float,
    ) -> "CoordinateTransform":
        return cls(RenderSurface(native_width, native_height, surface_width, surface_height))

    def forward(self, x: float, y: float) -> Tuple[float, float]:
        """Native point to surface point."""
        return self.offset_x + x * self.scale, self.offset_y + y * self.scale

    def inverse(self, surface_x: float, surface_y: float) -> Tuple[float, float]:
        """Surface point (a click or drag position) back to native space."""
        return (surface_x - self.offset_x) / self.scale, (surface_y - self.offset_y) / self.scale

    def scale_length(self, value: float) -> float:
        """Scale a length: font size, stroke width or box side."""
        return value * self.scale

    def to_surface(self, box: Box) -> Box:
        x, y = self.forward(box.x, box.y)
        return Box(x, y, self.scale_length(box.width), self.scale_length(box.height))

    def to_native(self, box: Box) -> Box:
        x, y = self.inverse(box.x, box.y)
        return Box(x, y, box.width / self.scale, box.height / self.scale)

    def image_rect(self) -> Box:
        """Where the scaled background image lands on the surface."""
        return Box(
            self.offset_x,
            self.offset_y,
            self.surface.native_width * self.scale,
            self.surface.native_height * self.scale,
        )

    def __repr__(self) -> str:
        return (
            f"CoordinateTransform(scale={self.scale:.4f}, "
            f"offset=({self.offset_x:.2f}, {self.offset_y:.2f}))"
        )

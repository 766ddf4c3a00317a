"""
Final render backend: flattens a template and its bound values into a raster
image with Pillow and encodes it for storage.
"""

import io
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from PIL import Image, ImageDraw, UnidentifiedImageError

from ..core.exceptions import RenderError
from ..utils.logger import get_logger
from .base import RenderBackend, TemplateLayout, compose
from .fonts import FontRegistry
from .layout import PlacedText
from .transform import Box, RenderSurface

logger = get_logger("raster")


def decode_image(content: bytes) -> Image.Image:
    """Decode raster bytes, raising RenderError for anything Pillow rejects."""
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise RenderError(f"Background image could not be decoded: {e}")
    return image


def read_image_size(content: bytes) -> Tuple[int, int, str]:
    """Native width, height and format of an encoded image."""
    image = decode_image(content)
    return image.width, image.height, (image.format or "PNG").upper()


class RasterBackend(RenderBackend):
    """Pillow drawing surface with no interactivity."""

    def __init__(self, background: bytes, fonts: FontRegistry, background_color: str = "white"):
        self._background = decode_image(background).convert("RGBA")
        self._fonts = fonts
        self._background_color = background_color
        self.image: Optional[Image.Image] = None
        self._draw: Optional[ImageDraw.ImageDraw] = None

    @property
    def measurer(self) -> FontRegistry:
        return self._fonts

    @property
    def native_size(self) -> Tuple[int, int]:
        return self._background.size

    def begin(self, surface: RenderSurface) -> None:
        size = (round(surface.surface_width), round(surface.surface_height))
        self.image = Image.new("RGBA", size, self._background_color)
        self._draw = ImageDraw.Draw(self.image)

    def draw_background(self, rect: Box) -> None:
        size = (max(1, round(rect.width)), max(1, round(rect.height)))
        background = self._background
        if background.size != size:
            background = background.resize(size, Image.Resampling.LANCZOS)
        self.image.alpha_composite(background, dest=(round(rect.x), round(rect.y)))

    def draw_text(self, placed: PlacedText) -> None:
        font = self._fonts.resolve(placed.font)
        try:
            self._draw.text(
                (placed.x, placed.baseline_y),
                placed.text,
                font=font,
                fill=placed.fill,
                anchor="ls",
            )
        except ValueError as e:
            raise RenderError(f"Placeholder '{placed.key}' could not be drawn: {e}")

    def encode(self, image_format: str = "PNG") -> bytes:
        if self.image is None:
            raise RenderError("Nothing has been rendered")
        buffer = io.BytesIO()
        self.image.convert("RGB").save(buffer, format=image_format)
        return buffer.getvalue()


@dataclass(frozen=True)
class RenderedArtifact:
    content: bytes
    width: int
    height: int
    placed: List[PlacedText]
    content_type: str = "image/png"
    extension: str = ".png"


def render_artifact(
    background: bytes,
    layout: TemplateLayout,
    values: Mapping[str, str],
    fonts: FontRegistry,
    surface_width: Optional[int] = None,
    surface_height: Optional[int] = None,
) -> RenderedArtifact:
    """
    Render the final credential image. Blocking; callers on the event loop run
    it in a worker thread.

    The output surface defaults to the template's native resolution; a width
    given alone keeps the image aspect ratio.
    """
    backend = RasterBackend(background, fonts)
    if backend.native_size != (layout.native_width, layout.native_height):
        logger.warning(
            f"Background is {backend.native_size[0]}x{backend.native_size[1]} but the template "
            f"was authored at {layout.native_width}x{layout.native_height}"
        )

    if surface_width and not surface_height:
        surface = RenderSurface.fit_width(layout.native_width, layout.native_height, surface_width)
    else:
        surface = RenderSurface(
            layout.native_width,
            layout.native_height,
            surface_width or layout.native_width,
            surface_height or layout.native_height,
        )
    placed = compose(layout, surface, values, backend)
    content = backend.encode("PNG")
    return RenderedArtifact(
        content=content,
        width=backend.image.width,
        height=backend.image.height,
        placed=placed,
    )

"""
Font resolution and text measurement for the two render backends.

One font family is registered for the whole service, one TrueType file per
style. Text is measured once, from the advance widths reportlab reads out of
those files, and both backends lay out with that measurement: the preview
through ``PdfMetricsMeasurer`` directly, the raster backend through the
``FontRegistry`` that wraps it and draws the same files with Pillow.

Without configured files the family is drawn with the Bitstream Vera faces
that ship inside reportlab.
"""

import threading
from pathlib import Path
from typing import Dict, Optional, Tuple

import reportlab
from PIL import ImageFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from ..core.config import Settings
from ..core.exceptions import RenderError
from ..utils.logger import get_logger
from .layout import FontSpec

logger = get_logger("fonts")

StyleKey = Tuple[bool, bool]

STYLE_NAMES: Dict[StyleKey, str] = {
    (False, False): "regular",
    (True, False): "bold",
    (False, True): "italic",
    (True, True): "bold italic",
}

BUNDLED_FONT_DIR = Path(reportlab.__file__).parent / "fonts"
BUNDLED_FACES: Dict[StyleKey, Path] = {
    (False, False): BUNDLED_FONT_DIR / "Vera.ttf",
    (True, False): BUNDLED_FONT_DIR / "VeraBd.ttf",
    (False, True): BUNDLED_FONT_DIR / "VeraIt.ttf",
    (True, True): BUNDLED_FONT_DIR / "VeraBI.ttf",
}

# reportlab keeps registered faces in a process-wide table
_registered: Dict[Path, str] = {}
_register_lock = threading.Lock()


def _same_family(requested: str, registered: str) -> bool:
    return requested.strip().lower() == registered.strip().lower()


def _register_face(path: Path) -> str:
    """Register a TrueType file with reportlab once and return its face name."""
    with _register_lock:
        face_name = _registered.get(path)
        if face_name is None:
            face_name = f"credentia-{len(_registered)}-{path.stem}"
            try:
                pdfmetrics.registerFont(TTFont(face_name, str(path)))
            except (OSError, TTFError) as e:
                logger.error(f"Failed to read font file {path}: {e}")
                raise RenderError(f"Font file '{path.name}' could not be loaded")
            _registered[path] = face_name
        return face_name


class PdfMetricsMeasurer:
    """
    Text measurement from the registered TrueType files. Needs no raster
    surface, so the interactive preview uses it directly.
    """

    def __init__(
        self,
        family: str = "Arial",
        regular_path: Optional[Path] = None,
        bold_path: Optional[Path] = None,
        italic_path: Optional[Path] = None,
        bold_italic_path: Optional[Path] = None,
    ):
        self.family = family
        if regular_path is None:
            logger.info(f"No font files configured for '{family}', using the bundled Vera faces")
            self._paths: Dict[StyleKey, Optional[Path]] = dict(BUNDLED_FACES)
        else:
            self._paths = {
                (False, False): Path(regular_path),
                (True, False): Path(bold_path) if bold_path else None,
                (False, True): Path(italic_path) if italic_path else None,
                (True, True): Path(bold_italic_path) if bold_italic_path else None,
            }

    @classmethod
    def from_settings(cls, settings: Settings) -> "PdfMetricsMeasurer":
        return cls(
            family=settings.font_family,
            regular_path=settings.font_regular_path,
            bold_path=settings.font_bold_path,
            italic_path=settings.font_italic_path,
            bold_italic_path=settings.font_bold_italic_path,
        )

    def supports(self, family: str) -> bool:
        return _same_family(family, self.family)

    def path_for(self, font: FontSpec) -> Path:
        """The file drawing this family and style, or RenderError."""
        if not self.supports(font.family):
            raise RenderError(f"Font family '{font.family}' is not available")
        style = (font.bold, font.italic)
        path = self._paths.get(style)
        if path is None:
            raise RenderError(f"Font family '{self.family}' has no {STYLE_NAMES[style]} face")
        return path

    def measure(self, text: str, font: FontSpec) -> float:
        face_name = _register_face(self.path_for(font))
        return pdfmetrics.stringWidth(text, face_name, font.size)


class FontRegistry:
    """
    Pillow fonts for the registered family, cached per style and size.
    Measures through the same metrics the preview uses.
    """

    def __init__(
        self,
        family: str = "Arial",
        regular_path: Optional[Path] = None,
        bold_path: Optional[Path] = None,
        italic_path: Optional[Path] = None,
        bold_italic_path: Optional[Path] = None,
    ):
        self.metrics = PdfMetricsMeasurer(family, regular_path, bold_path, italic_path, bold_italic_path)
        self._cache: Dict[Tuple[bool, bool, float], ImageFont.FreeTypeFont] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "FontRegistry":
        return cls(
            family=settings.font_family,
            regular_path=settings.font_regular_path,
            bold_path=settings.font_bold_path,
            italic_path=settings.font_italic_path,
            bold_italic_path=settings.font_bold_italic_path,
        )

    @property
    def family(self) -> str:
        return self.metrics.family

    def supports(self, family: str) -> bool:
        return self.metrics.supports(family)

    def resolve(self, font: FontSpec) -> ImageFont.FreeTypeFont:
        """Return the Pillow font for a FontSpec, or raise RenderError."""
        path = self.metrics.path_for(font)
        if font.size <= 0:
            raise RenderError("Font size must be positive")

        cache_key = (font.bold, font.italic, round(font.size, 3))
        with self._lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached
            try:
                loaded = ImageFont.truetype(str(path), font.size)
            except OSError as e:
                logger.error(f"Failed to load font file for '{self.family}': {e}")
                raise RenderError(f"Font family '{self.family}' could not be loaded")
            self._cache[cache_key] = loaded
            return loaded

    def measure(self, text: str, font: FontSpec) -> float:
        return self.metrics.measure(text, font)

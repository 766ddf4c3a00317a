import io

import pytest
from PIL import Image, ImageOps

from conftest import make_png
from credentia.core.exceptions import RenderError, ValidationError
from credentia.models.template import PlaceholderSchema
from credentia.rendering.base import TemplateLayout
from credentia.core.dependencies import get_font_registry, get_preview_measurer
from credentia.rendering.fonts import BUNDLED_FACES, FontRegistry, PdfMetricsMeasurer
from credentia.rendering.layout import FontSpec
from credentia.rendering.raster import read_image_size, render_artifact


def _layout(**overrides):
    data = {"key": "name", "x": 100, "y": 100, "width": 300, "height": 50, "align": "center"}
    data.update(overrides)
    return TemplateLayout(800, 600, (PlaceholderSchema.model_validate(data),))


def _ink_bbox(content):
    """Bounding box of non-white pixels."""
    image = Image.open(io.BytesIO(content)).convert("L")
    return ImageOps.invert(image).point(lambda value: 255 if value > 64 else 0).getbbox()


def test_unknown_font_family_is_a_render_error(fonts):
    with pytest.raises(RenderError):
        fonts.resolve(FontSpec("Comic Sans MS", 20))
    with pytest.raises(RenderError):
        PdfMetricsMeasurer().measure("x", FontSpec("Comic Sans MS", 20))


def test_family_match_ignores_case(fonts):
    assert fonts.supports("arial")
    assert fonts.measure("Ada", FontSpec("ARIAL", 20)) > 0


def test_missing_font_file_is_a_render_error(tmp_path):
    registry = FontRegistry(regular_path=tmp_path / "missing.ttf")
    with pytest.raises(RenderError):
        registry.resolve(FontSpec("Arial", 20))


def test_read_image_size():
    assert read_image_size(make_png(320, 200)) == (320, 200, "PNG")


def test_undecodable_background_is_a_render_error(fonts):
    with pytest.raises(RenderError):
        render_artifact(b"not an image", _layout(), {"name": "Ada"}, fonts)


def test_centered_name_lands_in_its_box(fonts):
    artifact = render_artifact(make_png(), _layout(), {"name": "Ada Lovelace"}, fonts)

    assert (artifact.width, artifact.height) == (800, 600)
    left, top, right, bottom = _ink_bbox(artifact.content)
    assert abs((left + right) / 2 - 250) <= 3
    assert 100 <= left and right <= 400
    assert 100 <= top and bottom <= 150

    placed = artifact.placed[0]
    assert abs(placed.center_x - 250) <= 1


def test_surface_width_scales_the_output(fonts):
    artifact = render_artifact(
        make_png(), _layout(), {"name": "Ada Lovelace"}, fonts, surface_width=400
    )
    assert (artifact.width, artifact.height) == (400, 300)
    assert artifact.placed[0].font.size == 10
    left, _, right, _ = _ink_bbox(artifact.content)
    assert abs((left + right) / 2 - 125) <= 3


def test_missing_value_fails_before_drawing(fonts):
    with pytest.raises(ValidationError) as excinfo:
        render_artifact(make_png(), _layout(), {}, fonts)
    assert excinfo.value.field == "name"


def test_render_leaves_layout_untouched(fonts):
    layout = _layout()
    before = layout.placeholders[0].model_dump()
    render_artifact(make_png(), layout, {"name": "Ada"}, fonts, surface_width=200)
    assert layout.placeholders[0].model_dump() == before


def test_missing_style_face_is_a_render_error():
    registry = FontRegistry(regular_path=BUNDLED_FACES[(False, False)])
    assert registry.measure("Ada", FontSpec("Arial", 20)) > 0
    with pytest.raises(RenderError):
        registry.resolve(FontSpec("Arial", 20, bold=True))
    with pytest.raises(RenderError):
        registry.measure("Ada", FontSpec("Arial", 20, italic=True))


def test_preview_measures_with_the_artifact_fonts():
    assert get_preview_measurer() is get_font_registry().metrics


def test_measurement_matches_the_drawn_face(fonts):
    font = FontSpec("Arial", 40)
    measured = fonts.measure("Ada Lovelace", font)
    drawn = fonts.resolve(font).getlength("Ada Lovelace")
    assert abs(measured - drawn) <= measured * 0.03

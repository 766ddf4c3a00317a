import pytest

from credentia.core.exceptions import ValidationError
from credentia.models.template import PlaceholderSchema, TextAlign
from credentia.rendering.layout import (
    FontSpec,
    baseline_origin,
    horizontal_origin,
    layout_all,
    layout_placeholder,
    resolve_text,
)
from credentia.rendering.transform import Box, CoordinateTransform, RenderSurface


class FixedWidthMeasurer:
    """Every character is half the font size wide."""

    def measure(self, text, font):
        return len(text) * font.size / 2


def _placeholder(**values):
    data = {"key": "name", "x": 100, "y": 100, "width": 300, "height": 50}
    data.update(values)
    return PlaceholderSchema.model_validate(data)


def test_horizontal_origin_per_alignment():
    box = Box(100, 100, 300, 50)
    assert horizontal_origin(box, 120, TextAlign.LEFT) == 100
    assert horizontal_origin(box, 120, TextAlign.CENTER) == 190
    assert horizontal_origin(box, 120, TextAlign.RIGHT) == 280


def test_baseline_uses_box_and_font_size():
    assert baseline_origin(Box(100, 100, 300, 50), 20) == 135


@pytest.mark.parametrize("text", ["A", "Ada Lovelace", "Grace Brewster Murray Hopper"])
@pytest.mark.parametrize("surface", [(800, 600), (400, 300), (1200, 500)])
def test_centered_text_midpoint_matches_box_midpoint(text, surface):
    transform = CoordinateTransform(RenderSurface(800, 600, *surface))
    placed = layout_placeholder(
        _placeholder(align="center", font_size=16), transform, text, FixedWidthMeasurer()
    )
    assert not placed.overflow
    assert abs(placed.center_x - placed.box.center_x) <= 1


def test_font_scales_with_surface():
    transform = CoordinateTransform(RenderSurface(800, 600, 400, 300))
    placed = layout_placeholder(_placeholder(font_size=20), transform, "x", FixedWidthMeasurer())
    assert placed.font == FontSpec("Arial", 10)
    assert placed.box == Box(50, 50, 150, 25)


def test_overflow_is_flagged_not_rejected():
    transform = CoordinateTransform(RenderSurface.native(800, 600))
    placed = layout_placeholder(
        _placeholder(width=40, align="center"), transform, "far too long", FixedWidthMeasurer()
    )
    assert placed.overflow
    assert placed.x < 100


def test_missing_value_names_the_key():
    with pytest.raises(ValidationError) as excinfo:
        resolve_text(_placeholder(), {"other": "value"})
    assert excinfo.value.field == "name"


def test_blank_value_counts_as_missing():
    with pytest.raises(ValidationError):
        resolve_text(_placeholder(), {"name": "   "})


def test_preview_falls_back_to_label():
    assert resolve_text(_placeholder(label="Full Name"), {}, fallback_to_label=True) == "Full Name"


def test_layout_all_keeps_template_order():
    transform = CoordinateTransform(RenderSurface.native(800, 600))
    placeholders = [_placeholder(key="name"), _placeholder(key="course", y=200)]
    placed = layout_all(
        placeholders, transform, {"name": "Ada", "course": "Engines"}, FixedWidthMeasurer()
    )
    assert [p.key for p in placed] == ["name", "course"]
    assert [p.text for p in placed] == ["Ada", "Engines"]

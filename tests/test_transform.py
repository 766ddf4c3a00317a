import pytest

from credentia.core.exceptions import RenderError, SurfaceNotReadyError
from credentia.rendering.transform import Box, CoordinateTransform, RenderSurface


def test_native_surface_is_identity():
    transform = CoordinateTransform(RenderSurface.native(800, 600))
    assert transform.scale == 1
    assert transform.offset_x == 0
    assert transform.offset_y == 0
    assert transform.forward(123.5, 42) == (123.5, 42)


@pytest.mark.parametrize(
    "surface_size",
    [(400, 300), (1000, 300), (333, 900), (1920, 1080), (801, 599)],
)
def test_inverse_undoes_forward(surface_size):
    transform = CoordinateTransform.from_dimensions(800, 600, *surface_size)
    for point in [(0, 0), (100, 100), (799.5, 0.25), (400, 599)]:
        x, y = transform.inverse(*transform.forward(*point))
        assert x == pytest.approx(point[0])
        assert y == pytest.approx(point[1])


def test_wide_surface_letterboxes_horizontally():
    transform = CoordinateTransform.from_dimensions(800, 600, 1000, 300)
    assert transform.scale == 0.5
    assert transform.offset_x == 300
    assert transform.offset_y == 0
    assert transform.image_rect() == Box(300, 0, 400, 300)


def test_box_and_lengths_scale_uniformly():
    transform = CoordinateTransform.from_dimensions(800, 600, 400, 300)
    box = transform.to_surface(Box(100, 100, 300, 50))
    assert box == Box(50, 50, 150, 25)
    assert transform.scale_length(20) == 10
    assert transform.to_native(box) == Box(100, 100, 300, 50)


def test_fit_width_keeps_aspect_ratio():
    surface = RenderSurface.fit_width(1600, 1200, 800)
    assert (surface.surface_width, surface.surface_height) == (800, 600)


@pytest.mark.parametrize("native", [(0, 600), (800, 0)])
def test_unknown_native_size_is_not_ready(native):
    with pytest.raises(SurfaceNotReadyError):
        CoordinateTransform.from_dimensions(native[0], native[1], 800, 600)


def test_empty_surface_is_not_ready():
    with pytest.raises(SurfaceNotReadyError) as excinfo:
        CoordinateTransform.from_dimensions(800, 600, 0, 600)
    assert isinstance(excinfo.value, RenderError)

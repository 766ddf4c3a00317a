import pytest

from credentia.core.exceptions import ValidationError
from credentia.models.template import (
    FontStyle,
    PlaceholderSchema,
    TemplateInDB,
    TextAlign,
    key_from_label,
    parse_placeholder,
)


def test_builder_element_gets_defaults():
    placeholder = PlaceholderSchema.model_validate(
        {"label": "Issue Date", "x": 10, "y": 20, "width": None, "fontSize": None, "fill": ""}
    )
    assert placeholder.key == "issueDate"
    assert placeholder.width == 150
    assert placeholder.height == 50
    assert placeholder.font_size == 20
    assert placeholder.font_family == "Arial"
    assert placeholder.align == TextAlign.LEFT
    assert placeholder.fill_color == "black"
    assert not placeholder.font_style.is_bold


def test_missing_label_defaults():
    placeholder = PlaceholderSchema.model_validate({"x": 0, "y": 0})
    assert placeholder.label == "Placeholder"
    assert placeholder.key == "placeholder"


@pytest.mark.parametrize(
    "label, key",
    [("Issue Date", "issueDate"), ("courseName", "courseName"), ("  full name! ", "fullName")],
)
def test_key_from_label(label, key):
    assert key_from_label(label) == key


@pytest.mark.parametrize(
    "value, bold, italic",
    [("bold italic", True, True), ("normal italic", False, True), ("bold", True, False), ("normal", False, False)],
)
def test_compact_font_style(value, bold, italic):
    style = FontStyle.model_validate(value)
    assert (style.is_bold, style.is_italic) == (bold, italic)


def test_font_style_round_trips_through_css_form():
    style = FontStyle.model_validate("bold italic")
    assert FontStyle.model_validate(style.css()) == style


@pytest.mark.parametrize(
    "attribute, value",
    [("height", -5), ("width", 0), ("fontSize", 0), ("fontSize", -1), ("x", -10), ("align", "justify")],
)
def test_invalid_attribute_is_named(attribute, value):
    data = {"key": "name", "x": 0, "y": 0, attribute: value}
    with pytest.raises(ValidationError) as excinfo:
        parse_placeholder(data, field_prefix="placeholders[2]")
    assert excinfo.value.field == f"placeholders[2].{attribute}"


def test_unknown_font_style_token_is_rejected():
    with pytest.raises(ValidationError):
        parse_placeholder({"key": "name", "x": 0, "y": 0, "fontStyle": "heavy"})


def test_server_injected_keys_are_not_required():
    template = TemplateInDB(
        owner_id="6650c0ffee0ddba11c0ffee1",
        name="Course",
        background_image_ref="templates/a.png",
        native_width=800,
        native_height=600,
        placeholders=[
            {"key": "name", "x": 0, "y": 0},
            {"key": "issueDate", "x": 0, "y": 100},
        ],
    )
    assert template.placeholder_keys() == ["name", "issueDate"]
    assert template.required_keys() == ["name"]

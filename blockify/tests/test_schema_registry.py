import pytest

from blockify.core.exceptions import SchemaConfigurationError
from blockify.core.schema import (
    DEFAULT_ALLOWED_TAGS,
    ContentTypeSchema,
    SchemaRegistry,
    builtin_schemas,
    default_registry,
    files_schema,
    gallery_schema,
    header_schema,
    paragraph_schema,
)
from blockify.core.schema.builtin import clean_file_item, source_regex_check
from blockify.core.validation import Rule


def test_default_registry_contains_builtin_types():
    registry = default_registry()

    assert registry.names() == [
        "p", "h1", "h2", "h3", "h4", "h5", "h6", "ol", "ul", "code", "files", "gallery",
    ]
    assert len(registry) == len(builtin_schemas())
    assert "p" in registry
    assert registry.get_schema("video") is None
    assert registry.get_schema(None) is None


def test_duplicate_registration_fails_unless_replacing():
    registry = SchemaRegistry([paragraph_schema()])

    with pytest.raises(SchemaConfigurationError):
        registry.register(paragraph_schema())

    custom = paragraph_schema().with_changes(allowed_tags={"b"})
    registry.register(custom, replace=True)
    assert registry.get_schema("p") is custom


def test_registry_rejects_non_schema_values():
    with pytest.raises(SchemaConfigurationError):
        SchemaRegistry([{"name": "p"}])


def test_registry_schemas_returns_a_copy():
    registry = default_registry()
    registry.schemas().clear()
    assert len(registry) == 12


def test_schema_defaults():
    schema = ContentTypeSchema(name="quote")

    assert schema.allowed_tags == DEFAULT_ALLOWED_TAGS
    assert schema.merge_similar and schema.escape_text
    assert list(schema.block_structure_rules) == ["type", "data", "attr"]
    assert schema.block_structure_rules["data"] == Rule(required=True, type="array")
    assert schema.attribute_rules_for("a")["href"].allowed_protocol == ("https", "http", "ftp")
    assert dict(schema.attribute_rules_for("b")) == {}


def test_schema_is_immutable():
    schema = paragraph_schema()

    with pytest.raises(Exception):
        schema.name = "x"
    with pytest.raises(TypeError):
        schema.block_structure_rules["extra"] = Rule()


def test_with_changes_leaves_original_untouched():
    base = paragraph_schema()
    derived = base.with_changes(merge_similar=False, css_classes="lead")

    assert base.merge_similar is True
    assert derived.merge_similar is False
    assert derived.css_classes == "lead"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": ""},
        {"name": "p", "allowed_tags": "b"},
        {"name": "p", "primary_child_types": [""]},
        {"name": "p", "block_structure_rules": {"type": "type:float"}},
        {"name": "p", "tag_attribute_rules": {"a": {"href": "nonsense"}}},
        {"name": "p", "render_block": "not callable"},
    ],
)
def test_invalid_schema_configuration_fails_closed(kwargs):
    with pytest.raises(SchemaConfigurationError):
        ContentTypeSchema(**kwargs)


def test_header_levels():
    assert header_schema(3).name == "h3"
    assert header_schema(3).allowed_tags == frozenset({"a", "sub", "sup"})
    with pytest.raises(ValueError):
        header_schema(7)


def test_files_schema_item_rules():
    schema = files_schema(source_hosts=["cdn.example.com"])
    url_rule = schema.item_structure_rules["url"]

    assert url_rule.required and url_rule.url
    assert url_rule.allowed_host == ("cdn.example.com",)
    assert schema.item_structure_rules["type"].values == schema.source_mime_types
    assert schema.is_custom_block_structure and schema.is_custom_item_structure
    assert schema.merge_similar is False


def test_gallery_schema_extends_files():
    schema = gallery_schema()

    assert schema.name == "gallery"
    assert schema.block_structure_rules["style"].values == ("grid", "slider", "single")
    assert schema.item_structure_rules["thumbnail"].required is False
    assert "video/mp4" in schema.source_mime_types
    assert "video/quicktime" not in schema.source_mime_types


def test_source_regex_check_accepts_any_pattern():
    check = source_regex_check([r"^https://a\.com/", r"\.png$"])

    assert check("https://a.com/x.gif") == "https://a.com/x.gif"
    assert check("https://b.com/x.png") == "https://b.com/x.png"
    assert check("https://b.com/x.gif") is False
    assert check(5) is False


def test_clean_file_item_escapes_and_drops_empty_text():
    item = {"url": "https://a.com/a.png", "caption": " <b>hi</b> ", "desc": "  "}

    out = clean_file_item(item)

    assert out == {"url": "https://a.com/a.png", "caption": "&lt;b&gt;hi&lt;/b&gt;"}
    assert item["desc"] == "  "


def test_summary_is_plain_data():
    summary = files_schema().summary()

    assert summary["name"] == "files"
    assert summary["item_fields"] == ["url", "type", "size", "caption", "desc"]
    assert summary["custom_render_block"] is True

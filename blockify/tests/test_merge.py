from blockify.core.normalization import merge_similar_items
from blockify.core.schema import ContentTypeSchema, ordered_list_schema, paragraph_schema


def test_adjacent_text_merges_and_element_is_left_alone():
    out = merge_similar_items(["a", "b", {"type": "b"}], paragraph_schema())
    assert out == ["a b", {"type": "b"}]


def test_merge_does_not_cascade():
    schema = paragraph_schema()

    assert merge_similar_items(["a", "b", "c"], schema) == ["a b", "c"]
    assert merge_similar_items(["a", "b", "c", "d"], schema) == ["a b", "c d"]


def test_same_type_elements_without_attributes_merge():
    out = merge_similar_items(
        [{"type": "b", "data": ["x"]}, {"type": "b", "data": ["y", {"type": "i", "data": ["z"]}]}],
        paragraph_schema(),
    )
    assert out == [{"type": "b", "data": ["x", "y", {"type": "i", "data": ["z"]}]}]


def test_elements_with_attributes_or_different_types_do_not_merge():
    link = {"type": "a", "data": ["x"], "attr": {"href": "https://a.com"}}
    items = [link, {"type": "a", "data": ["y"]}, {"type": "b", "data": ["z"]}]

    assert merge_similar_items(items, paragraph_schema()) == items


def test_primary_child_schemas_keep_elements_separate():
    items = [{"type": "li", "data": ["one"]}, {"type": "li", "data": ["two"]}]
    assert merge_similar_items(items, ordered_list_schema()) == items


def test_merge_can_be_disabled_per_schema():
    schema = ContentTypeSchema(name="raw", merge_similar=False)
    assert merge_similar_items(["a", "b"], schema) == ["a", "b"]


def test_inputs_are_not_mutated():
    first = {"type": "b", "data": ["x"]}
    second = {"type": "b", "data": ["y"]}
    items = [first, second]

    merge_similar_items(items, paragraph_schema())

    assert items == [first, second]
    assert first == {"type": "b", "data": ["x"]}

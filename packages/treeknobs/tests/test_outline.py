import pytest

from treeknobs import OutlineParseError, as_string, build_items_from_string, unflatten


def test_build_items():
    items = build_items_from_string("(1 (2 (4 7)) 3) 5 6")
    assert items == [
        {"id": 1, "parentId": 0},
        {"id": 2, "parentId": 1},
        {"id": 4, "parentId": 2},
        {"id": 7, "parentId": 4},
        {"id": 3, "parentId": 1},
        {"id": 5, "parentId": 0},
        {"id": 6, "parentId": 0},
    ]


def test_outline_round_trip():
    outline = "(root (a (b d e) (c f)))"
    assert as_string(unflatten(build_items_from_string(outline))) == outline


def test_string_labels_and_custom_fields():
    items = build_items_from_string("(a b)", id="key", parent_id="up", root_parent_id=None)
    assert items == [{"key": "a", "up": None}, {"key": "b", "up": "a"}]


def test_label_function(sample_items):
    roots = unflatten(sample_items)
    assert as_string(roots[1:], label=lambda item: item["title"].split()[-1]) == "5 6"


def test_multiline(sample_items):
    roots = unflatten(sample_items)
    assert as_string(roots, delim="  ", multiline=True) == (
        "(1\n"
        "  (2\n"
        "    (4\n"
        "      7))\n"
        "  3)\n"
        "5\n"
        "6"
    )


def test_empty():
    assert as_string([]) == ""
    assert build_items_from_string("   ") == []


@pytest.mark.parametrize("outline", ["(1 (2", "((1) 2)", "()"])
def test_malformed_outline(outline):
    with pytest.raises(OutlineParseError):
        build_items_from_string(outline)


def test_labels_that_do_not_survive_parsing():
    assert build_items_from_string("007") == [{"id": 7, "parentId": 0}]
    outline = as_string([{"id": "a b", "children": []}])
    assert outline == "a b"
    assert [item["id"] for item in build_items_from_string(outline)] == ["a", "b"]

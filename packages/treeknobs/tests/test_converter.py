import copy
import logging

import pytest

from treeknobs import (
    DuplicateIdError,
    OrphanedItemError,
    OrphanPolicy,
    as_string,
    flatten,
    unflatten,
)


def ids(nodes):
    return [node["id"] for node in nodes]


def test_unflatten_example(sample_items):
    roots = unflatten(sample_items)
    assert ids(roots) == [1, 5, 6]
    one, five, six = roots
    assert ids(one["children"]) == [2, 3]
    assert ids(one["children"][0]["children"]) == [4]
    assert ids(one["children"][0]["children"][0]["children"]) == [7]
    assert one["children"][1]["children"] == []
    assert five["children"] == []
    assert six["children"] == []
    assert as_string(roots) == "(1 (2 (4 7)) 3) 5 6"


def test_unflatten_reuses_items(sample_items):
    roots = unflatten(sample_items)
    assert roots[0] is sample_items[0]
    roots[0]["children"][0]["title"] = "changed"
    assert sample_items[1]["title"] == "changed"


def test_sibling_order_follows_input():
    items = [
        {"id": "c", "parentId": "p"},
        {"id": "p", "parentId": None},
        {"id": "a", "parentId": "p"},
        {"id": "b", "parentId": "p"},
    ]
    roots = unflatten(items)
    assert ids(roots) == ["p"]
    assert ids(roots[0]["children"]) == ["c", "a", "b"]


def test_unflatten_custom_fields():
    items = [
        {"key": 10, "up": -1},
        {"key": 11, "up": 10},
    ]
    roots = unflatten(items, id="key", parent_id="up", children="kids", root_parent_id=-1)
    assert [r["key"] for r in roots] == [10]
    assert [c["key"] for c in roots[0]["kids"]] == [11]


def test_empty_and_missing_parent_field_are_roots():
    items = [{"id": 1}, {"id": 2, "parentId": ""}, {"id": 3, "parentId": None}]
    assert ids(unflatten(items)) == [1, 2, 3]


def test_unflatten_is_idempotent(sample_items):
    first = copy.deepcopy(unflatten(sample_items))
    second = unflatten(sample_items)
    assert first == second


def test_orphans_dropped_with_warning(caplog):
    items = [
        {"id": 1, "parentId": 0},
        {"id": 2, "parentId": 99},
        {"id": 3, "parentId": 2},
    ]
    with caplog.at_level(logging.WARNING, logger="treeknobs.converter"):
        roots = unflatten(items)
    assert ids(roots) == [1]
    assert ids(flatten(roots)) == [1]
    assert "Dropped 2" in caplog.text


def test_orphans_raise_when_asked():
    items = [{"id": 1, "parentId": 0}, {"id": 2, "parentId": 99}]
    with pytest.raises(OrphanedItemError) as exc_info:
        unflatten(items, orphans=OrphanPolicy.RAISE)
    assert exc_info.value.context["ids"] == [2]


def test_cycle_is_unreachable():
    items = [
        {"id": 1, "parentId": 0},
        {"id": 2, "parentId": 3},
        {"id": 3, "parentId": 2},
    ]
    assert ids(flatten(unflatten(items))) == [1]
    with pytest.raises(OrphanedItemError):
        unflatten(items, orphans=OrphanPolicy.RAISE)


def test_duplicate_ids_rejected():
    with pytest.raises(DuplicateIdError):
        unflatten([{"id": 1, "parentId": 0}, {"id": 1, "parentId": 0}])


@pytest.mark.parametrize(
    "items, policy, error",
    [
        (
            [{"id": 1, "parentId": 0}, {"id": 2, "parentId": 1}, {"id": 2, "parentId": 0}],
            OrphanPolicy.DROP,
            DuplicateIdError,
        ),
        (
            [{"id": 1, "parentId": 0}, {"id": 2, "parentId": 1}, {"id": 3, "parentId": 99}],
            OrphanPolicy.RAISE,
            OrphanedItemError,
        ),
    ],
)
def test_failed_unflatten_leaves_items_alone(items, policy, error):
    original = copy.deepcopy(items)
    with pytest.raises(error):
        unflatten(items, orphans=policy)
    assert items == original
    assert all("children" not in item for item in items)


def test_flatten_is_preorder(sample_items):
    flat = flatten(unflatten(sample_items))
    assert ids(flat) == [1, 2, 4, 7, 3, 5, 6]


def test_round_trip(sample_items):
    pairs = {(item["id"], item["parentId"]) for item in sample_items}
    flat = flatten(unflatten(sample_items), keep_children=False)
    assert len(flat) == len(sample_items)
    assert {(item["id"], item["parentId"]) for item in flat} == pairs
    assert all("children" not in item for item in flat)
    assert as_string(unflatten(flat)) == "(1 (2 (4 7)) 3) 5 6"


def test_flatten_without_children_leaves_tree_alone(sample_items):
    roots = unflatten(sample_items)
    flatten(roots, keep_children=False)
    assert ids(roots[0]["children"]) == [2, 3]


def test_flatten_empty():
    assert flatten([]) == []
    assert unflatten([]) == []

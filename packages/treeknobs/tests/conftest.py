"""Pytest configuration and fixtures for treeknobs tests."""

import pytest

from treeknobs import EditableOptions, TreeEditor, TreeOptions


@pytest.fixture
def sample_items():
    """Seven items: roots 1, 5, 6; 1 -> [2, 3]; 2 -> [4]; 4 -> [7]."""
    return [
        {"id": 1, "parentId": 0, "title": "My id is 1"},
        {"id": 2, "parentId": 1, "title": "My id is 2"},
        {"id": 3, "parentId": 1, "title": "My id is 3"},
        {"id": 4, "parentId": 2, "title": "My id is 4"},
        {"id": 5, "parentId": 0, "title": "My id is 5"},
        {"id": 6, "parentId": 0, "title": "My id is 6"},
        {"id": 7, "parentId": 4, "title": "My id is 7"},
    ]


class CountingFactory:
    """Item factory handing out ids 100, 101, ... and recording its calls."""

    def __init__(self, start=100):
        self.next_id = start
        self.calls = []

    def __call__(self, parent, depth, width):
        self.calls.append((parent["id"] if parent else None, depth, width))
        item = {"id": self.next_id, "title": f"New item {self.next_id}"}
        self.next_id += 1
        return item


@pytest.fixture
def factory():
    return CountingFactory()


@pytest.fixture
def make_editor(sample_items, factory):
    """Build an editor over the sample items with everything editable."""

    def _make(**kwargs):
        kwargs.setdefault("name", "title")
        kwargs.setdefault("editable", EditableOptions.all())
        kwargs.setdefault("create", factory)
        return TreeEditor.from_flat(sample_items, TreeOptions(**kwargs))

    return _make

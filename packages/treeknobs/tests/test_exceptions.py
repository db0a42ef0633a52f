"""Tests for the exception hierarchy."""

import pytest

from treeknobs import (
    ConfigurationError,
    DuplicateIdError,
    ItemNotFoundError,
    OrphanedItemError,
    OutlineParseError,
    TreeDataError,
    TreeknobsError,
)


def test_context_and_details():
    error = TreeknobsError("Bad tree", context={"item_id": 3})
    assert str(error) == "Bad tree"
    assert error.context == {"item_id": 3}
    assert error.details is error.context


def test_details_take_precedence():
    error = TreeknobsError("x", context={"a": 1}, details={"b": 2})
    assert error.context == {"b": 2}


def test_default_context():
    assert TreeknobsError("x").context == {}


@pytest.mark.parametrize(
    "error",
    [
        ConfigurationError("bad"),
        DuplicateIdError(1),
        OrphanedItemError([2, 3]),
        ItemNotFoundError("a"),
        OutlineParseError("bad"),
    ],
)
def test_hierarchy(error):
    assert isinstance(error, TreeknobsError)


def test_data_errors():
    assert isinstance(DuplicateIdError(1), TreeDataError)
    assert isinstance(OrphanedItemError([]), TreeDataError)
    assert DuplicateIdError(7).context == {"id": 7}
    assert OrphanedItemError([2, 3]).context == {"ids": [2, 3]}
    assert "2 item(s)" in str(OrphanedItemError([2, 3]))

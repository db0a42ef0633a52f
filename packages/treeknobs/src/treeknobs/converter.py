"""Conversion between flat item lists and nested trees.

A *flat collection* is an ordered list of items that point at their parent
through a parent id field. A *nested tree* is an ordered list of root items,
each holding its children in a children field, recursively.

Typical usage example:

    ```python
    from treeknobs import flatten, unflatten

    items = [
        {"id": 1, "parentId": 0},
        {"id": 2, "parentId": 1},
        {"id": 3, "parentId": 0},
    ]
    roots = unflatten(items)
    # roots == [{"id": 1, ..., "children": [{"id": 2, ...}]}, {"id": 3, ...}]

    flatten(roots)  # same three items, parents before children
    ```
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any, Dict, List

from .exceptions import DuplicateIdError, OrphanedItemError
from .options import Item

logger = logging.getLogger(__name__)


class OrphanPolicy(Enum):
    """What unflatten does with items whose parent does not exist."""

    DROP = "drop"
    """Leave the item out of the tree and log a warning."""

    RAISE = "raise"
    """Raise OrphanedItemError listing every orphan."""


def unflatten(
    items: Iterable[Item],
    id: str = "id",
    parent_id: str = "parentId",
    children: str = "children",
    root_parent_id: Any = 0,
    orphans: OrphanPolicy = OrphanPolicy.DROP,
) -> List[Item]:
    """Turn a flat list of items into a nested tree.

    The items themselves become the tree nodes; nothing is copied, and every
    item's children field is reset to a fresh list. Siblings keep the order
    in which they appear in the input. The input is checked in full before any
    children field is written, so the items are left as they were when an
    error is raised.

    Args:
        items: The flat collection.
        id: Name of the id field.
        parent_id: Name of the parent id field.
        children: Name of the children field to fill in.
        root_parent_id: Parent id marking a root. None and "" also do.
        orphans: Policy for items whose parent is missing. Items on a parent
            cycle never reach a root and count as orphans too.

    Returns:
        The ordered list of root items.

    Raises:
        DuplicateIdError: If two items share an id.
        OrphanedItemError: If orphans exist and the policy is RAISE.
    """
    items = list(items)
    by_id: Dict[Any, Item] = {}
    for item in items:
        key = item[id]
        if key in by_id:
            raise DuplicateIdError(key)
        by_id[key] = item

    # nothing is written to the items until the whole input checks out
    kids: Dict[Any, List[Item]] = {key: [] for key in by_id}
    roots: List[Item] = []
    missing: List[Any] = []
    for item in items:
        pid = item.get(parent_id)
        if pid is None or pid == "" or pid == root_parent_id:
            roots.append(item)
        elif pid in kids:
            kids[pid].append(item)
        else:
            missing.append(item[id])

    # descendants of a missing parent, and cycles, are not reachable from roots
    reachable = set()
    stack = list(roots)
    while stack:
        key = stack.pop()[id]
        reachable.add(key)
        stack.extend(kids[key])
    if len(reachable) < len(items):
        lost = [item[id] for item in items if item[id] not in reachable]
        if orphans is OrphanPolicy.RAISE:
            raise OrphanedItemError(lost)
        logger.warning(
            "Dropped %d unreachable item(s) (missing parents: %r): %r",
            len(lost),
            missing,
            lost,
        )

    for key, item in by_id.items():
        item[children] = kids[key]
    return roots


def iter_items(tree: Iterable[Item], children: str = "children") -> Iterator[Item]:
    """Yield every node of a nested tree in depth-first pre-order.

    Parents come before their children and siblings keep their order.
    """
    stack = list(reversed(list(tree)))
    while stack:
        node = stack.pop()
        yield node
        kids = node.get(children)
        if kids:
            stack.extend(reversed(kids))


def flatten(
    tree: Iterable[Item],
    children: str = "children",
    keep_children: bool = True,
) -> List[Item]:
    """Turn a nested tree back into a flat list.

    Args:
        tree: The ordered list of root items.
        children: Name of the children field.
        keep_children: If True, the tree nodes themselves are returned.
            If False, shallow copies without the children field are returned,
            leaving the tree untouched.

    Returns:
        Every node exactly once, in depth-first pre-order, each still
        carrying its parent id field. Unflattening the result rebuilds an
        equivalent tree.
    """
    if keep_children:
        return list(iter_items(tree, children))
    return [
        {key: value for key, value in node.items() if key != children}
        for node in iter_items(tree, children)
    ]

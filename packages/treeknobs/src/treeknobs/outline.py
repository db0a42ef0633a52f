"""Parenthesised outline notation for nested trees.

An item without children is written as its label; an item with children is
written as ``(label child child ...)``. A tree with several roots is the
roots' outlines separated by spaces:

    (1 (2 (4 7)) 3) 5 6

is root 1 with children 2 and 3, where 2 has child 4 and 4 has child 7,
followed by the childless roots 5 and 6.

Example:
    ```python
    from treeknobs.outline import as_string, build_items_from_string
    from treeknobs import unflatten

    items = build_items_from_string("(1 (2 (4 7)) 3) 5 6")
    roots = unflatten(items)
    as_string(roots)  # "(1 (2 (4 7)) 3) 5 6"
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, List, Union

from pyparsing import ParseException, nestedExpr

from .exceptions import OutlineParseError
from .options import Item


def as_string(
    tree: Iterable[Item],
    label: Union[str, Callable[[Item], Any]] = "id",
    children: str = "children",
    delim: str = " ",
    multiline: bool = False,
) -> str:
    """Get the outline of a nested tree.

    Args:
        tree: The ordered list of root items.
        label: Field name, or function of the item, giving each node's label.
        children: Name of the children field.
        delim: Separator between siblings, repeated per level as indentation
            when multiline.
        multiline: If True, put every child on its own indented line.

    Returns:
        The outline string; empty for an empty tree.

    Labels are written with ``str()`` as they are. Reading an outline back
    with :func:`build_items_from_string` only reproduces labels that are
    single tokens without parentheses, and all-digit labels come back as
    ints, so ``"007"`` returns as ``7``.

    Example:
        ```python
        print(as_string(roots, delim="  ", multiline=True))
        # (1
        #   (2
        #     (4
        #       7))
        #   3)
        # 5
        # 6
        ```
    """
    label_fn = label if callable(label) else (lambda item: item[label])
    sep = "\n" if multiline else delim
    return sep.join(
        _node_string(root, label_fn, children, delim, multiline, 0) for root in tree
    )


def _node_string(
    node: Item,
    label_fn: Callable[[Item], Any],
    children: str,
    delim: str,
    multiline: bool,
    depth: int,
) -> str:
    kids = node.get(children)
    if not kids:
        return str(label_fn(node))
    btwn = "\n" if multiline else ""
    indent = delim * (depth + 1) if multiline else delim
    result = "(" + str(label_fn(node))
    for child in kids:
        result += (
            btwn + indent + _node_string(child, label_fn, children, delim, multiline, depth + 1)
        )
    return result + ")"


def build_items_from_string(
    from_string: str,
    id: str = "id",
    parent_id: str = "parentId",
    root_parent_id: Any = 0,
) -> List[Item]:
    """Build a flat collection from an outline string.

    Labels made of digits become integer ids (``"007"`` becomes ``7``);
    anything else stays a string. Whitespace and parentheses always separate
    labels, so a label cannot contain them.

    Args:
        from_string: The outline, e.g. ``"(a b (c d)) e"``.
        id: Name of the id field on the produced items.
        parent_id: Name of the parent id field on the produced items.
        root_parent_id: Parent id given to root items.

    Returns:
        Items in depth-first pre-order, each ``{id: ..., parent_id: ...}``.

    Raises:
        OutlineParseError: If the string is not a well-formed outline.
    """
    if not from_string.strip():
        return []
    try:
        data = nestedExpr().parseString("(" + from_string + ")", parseAll=True)
    except ParseException as e:
        raise OutlineParseError(
            f"Invalid outline: {e}", context={"outline": from_string}
        ) from e

    items: List[Item] = []
    for entry in data.as_list()[0]:
        _collect(entry, root_parent_id, items, id, parent_id, from_string)
    return items


def _collect(
    entry: Union[str, list],
    parent: Any,
    items: List[Item],
    id: str,
    parent_id: str,
    outline: str,
) -> None:
    if isinstance(entry, list):
        if not entry or isinstance(entry[0], list):
            raise OutlineParseError(
                "Every parenthesised group must start with a label",
                context={"outline": outline},
            )
        key = _to_id(entry[0])
        items.append({id: key, parent_id: parent})
        for child in entry[1:]:
            _collect(child, key, items, id, parent_id, outline)
    else:
        items.append({id: _to_id(entry), parent_id: parent})


def _to_id(token: str) -> Union[int, str]:
    return int(token) if token.isdigit() else token

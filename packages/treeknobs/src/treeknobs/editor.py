"""Stateful editor for a nested tree of items.

The :class:`TreeEditor` owns a nested tree and is the only way it should be
changed. Every structural edit is checked against the configured
:class:`~treeknobs.options.TreeOptions` (editability, maximum depth, single
or multiple roots) and then passes through a before-hook that may veto it and
an after-hook that is told about it.

Edits never raise for refusals or vetoes. They return an :class:`EditResult`
which is truthy only when the edit was applied.

Typical usage example:

    ```python
    import asyncio
    from treeknobs import EditableOptions, TreeEditor, TreeOptions

    items = [
        {"id": 1, "parentId": 0, "title": "Root"},
        {"id": 2, "parentId": 1, "title": "Child"},
    ]
    options = TreeOptions(
        name="title",
        editable=EditableOptions.all(),
        on_before_delete=lambda item: item["title"] != "Root",
    )
    editor = TreeEditor.from_flat(items, options)

    async def main():
        result = await editor.create(parent_id=2)
        print(result.status, editor.depth(result.item))  # EditStatus.APPLIED 2

        result = await editor.delete(1)
        print(result.status)  # EditStatus.VETOED

    asyncio.run(main())
    ```

Concurrency:
    All mutating operations share one ``asyncio.Lock``. A call that arrives
    while another edit is waiting on a hook is queued and runs afterwards,
    in arrival order. Preconditions are checked once the lock is held.
    Read-only queries never wait on the lock.

    A hook that calls back into the editor runs inside the edit that fired
    it, so such a call cannot wait for that edit to finish. It is refused
    instead, with reason "edit already in progress". Work started from a hook
    as a separate task (``asyncio.create_task``) is queued as usual.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from .converter import OrphanPolicy, flatten, iter_items, unflatten
from .exceptions import ConfigurationError, DuplicateIdError, ItemNotFoundError
from .hooks import call_hook, should_proceed
from .options import Item, TreeOptions
from .outline import as_string

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class EditStatus(Enum):
    """Outcome of a mutating operation."""

    APPLIED = "applied"
    """The tree was changed."""

    REFUSED = "refused"
    """The options or the current tree do not allow the edit."""

    VETOED = "vetoed"
    """A before-hook returned False."""


class TreeItemAction(str, Enum):
    """The kind of edit performed on an item.

    EDIT and MOVE are the two update actions handed to the update hooks.
    """

    CREATE = "create"
    DELETE = "delete"
    ADD_CHILD = "add_child"
    EDIT = "edit"
    MOVE = "move"
    EXPAND = "expand_more"
    COLLAPSE = "expand_less"


@dataclass(frozen=True)
class EditResult:
    """Result of a mutating operation.

    Attributes:
        status: Whether the edit was applied, refused or vetoed.
        action: The kind of edit.
        item: The affected item: the new, removed or updated item. For a
            refused create there may be no item at all.
        parent: The item's (new) parent, None for root level.
        reason: Why the edit was refused or vetoed; empty when applied.
    """

    status: EditStatus
    action: TreeItemAction
    item: Item | None = None
    parent: Item | None = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.status is EditStatus.APPLIED

    @property
    def applied(self) -> bool:
        return self.status is EditStatus.APPLIED

    @property
    def cancelled(self) -> bool:
        return self.status is not EditStatus.APPLIED


class TreeEditor:
    """Manages a nested tree of items under a set of options.

    The editor keeps the root list it was given and edits it in place, so a
    caller holding on to that list always sees the current tree. An id index
    is maintained alongside the tree for constant-time lookups.

    Attributes:
        options: The tree options. Treat as read-only once the editor exists.
    """

    def __init__(self, tree: List[Item] | None = None, options: TreeOptions | None = None):
        """Initialize an editor over an already nested tree.

        Args:
            tree: The ordered list of root items. Edited in place.
            options: Tree options; defaults apply when omitted.

        Raises:
            DuplicateIdError: If two items in the tree share an id.
        """
        self.options = options if options is not None else TreeOptions()
        self._roots: List[Item] = tree if tree is not None else []
        self._index: Dict[Any, Item] = {}
        self._parents: Dict[Any, Item | None] = {}
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None
        self._build_index()

    @classmethod
    def from_flat(
        cls,
        items: List[Item],
        options: TreeOptions | None = None,
        orphans: OrphanPolicy = OrphanPolicy.DROP,
    ) -> TreeEditor:
        """Create an editor from a flat collection.

        Args:
            items: Flat items carrying id and parent id fields.
            options: Tree options, whose field names drive the conversion.
            orphans: What to do with items whose parent is missing.
        """
        options = options if options is not None else TreeOptions()
        roots = unflatten(
            items,
            id=options.id,
            parent_id=options.parent_id,
            children=options.children,
            root_parent_id=options.root_parent_id,
            orphans=orphans,
        )
        return cls(roots, options)

    def _build_index(self) -> None:
        opts = self.options
        self._index.clear()
        self._parents.clear()
        stack: List[tuple[Item, Item | None]] = [(root, None) for root in reversed(self._roots)]
        while stack:
            node, parent = stack.pop()
            key = node[opts.id]
            if key in self._index:
                raise DuplicateIdError(key)
            self._index[key] = node
            self._parents[key] = parent
            kids = node.get(opts.children)
            if kids is None:
                kids = node[opts.children] = []
            stack.extend((child, node) for child in reversed(kids))

    # -------------------------------------------------------------------------
    # Read-only queries
    # -------------------------------------------------------------------------

    @property
    def tree(self) -> List[Item]:
        """The current ordered list of root items."""
        return self._roots

    @property
    def count(self) -> int:
        """Number of items in the tree."""
        return len(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, item_or_id: Any) -> bool:
        return self._resolve(item_or_id) is not None

    def find(self, item_id: Any) -> Item | None:
        """Look up an item by id, or None if it is not in the tree."""
        return self._index.get(item_id)

    def find_children(self, item: Any) -> List[Item]:
        """The children of an item (or item id), as a new list."""
        return list(self._require(item)[self.options.children])

    def parent_of(self, item: Any) -> Item | None:
        """The parent of an item (or item id), None for a root."""
        node = self._require(item)
        return self._parents[node[self.options.id]]

    def has_children(self, item: Any) -> bool:
        """Whether an item has children.

        The configured ``has_children`` predicate wins when present, so
        items whose children are loaded elsewhere can still report them.

        Raises:
            ConfigurationError: If the predicate is async; use
                :meth:`has_children_async` for those.
        """
        node = self._require(item)
        if self.options.has_children is not None:
            answer = self.options.has_children(node)
            if inspect.isawaitable(answer):
                if inspect.iscoroutine(answer):
                    answer.close()
                raise ConfigurationError(
                    "has_children predicate is async, use has_children_async",
                    context={"item_id": node[self.options.id]},
                )
            return bool(answer)
        return bool(node[self.options.children])

    async def has_children_async(self, item: Any) -> bool:
        """Like :meth:`has_children`, awaiting the predicate if it is async."""
        return await self._has_children(self._require(item))

    async def _has_children(self, node: Item) -> bool:
        if self.options.has_children is not None:
            return bool(await call_hook(self.options.has_children, node))
        return bool(node[self.options.children])

    def depth(self, item: Any) -> int:
        """Distance from an item to its root; roots have depth 0.

        Raises:
            ItemNotFoundError: If the item is not in the tree.
        """
        node = self._require(item)
        result = 0
        parent = self._parents[node[self.options.id]]
        while parent is not None:
            result += 1
            parent = self._parents[parent[self.options.id]]
        return result

    def is_expanded(self, item: Any) -> bool:
        """Read an item's open state through the configured accessor."""
        return self.options.open_state.get(self._require(item))

    def to_flat(self, keep_children: bool = False) -> List[Item]:
        """Flatten the current tree for external consumers.

        Args:
            keep_children: Return the tree's own items instead of copies
                stripped of the children field.
        """
        return flatten(self._roots, self.options.children, keep_children=keep_children)

    def as_string(self, label: Any = None, delim: str = " ", multiline: bool = False) -> str:
        """Outline of the current tree, labelled by id unless told otherwise."""
        return as_string(
            self._roots,
            label=label if label is not None else self.options.id,
            children=self.options.children,
            delim=delim,
            multiline=multiline,
        )

    # -------------------------------------------------------------------------
    # Mutating operations
    # -------------------------------------------------------------------------

    async def create(self, parent_id: Any = None, width: int | None = None) -> EditResult:
        """Create a new item as the last child of a parent, or as a root.

        Args:
            parent_id: Id of the parent; None (or the root sentinel) for a
                new root item.
            width: Passed to the item factory; defaults to the number of
                siblings the new item will have before insertion.

        Returns:
            EditResult carrying the new item when applied.
        """
        if self._in_edit():
            return self._busy(TreeItemAction.CREATE)
        async with self._exclusive():
            return await self._create(parent_id, width, TreeItemAction.CREATE)

    async def create_sibling(self, sibling_id: Any, width: int | None = None) -> EditResult:
        """Create a new item at the end of an existing item's sibling list."""
        if self._in_edit():
            return self._busy(TreeItemAction.CREATE)
        async with self._exclusive():
            sibling = self._index.get(sibling_id)
            if sibling is None:
                return self._refuse(
                    TreeItemAction.CREATE, None, f"sibling {sibling_id!r} not found"
                )
            parent = self._parents[sibling_id]
            parent_id = parent[self.options.id] if parent is not None else None
            return await self._create(parent_id, width, TreeItemAction.CREATE)

    async def add_child(self, item_id: Any, width: int | None = None) -> EditResult:
        """Create a new child under an existing item and expand the item.

        Refused when ``item_id`` is unknown or means "no parent"; use
        :meth:`create` for new roots.
        """
        action = TreeItemAction.ADD_CHILD
        if self._in_edit():
            return self._busy(action)
        if self.options.is_root_parent(item_id):
            return self._refuse(action, None, "a child needs an existing parent item")
        async with self._exclusive():
            result = await self._create(item_id, width, action)
            if result and result.parent is not None:
                await self._set_expanded(result.parent, True)
            return result

    async def _create(self, parent_id: Any, width: int | None, action: TreeItemAction) -> EditResult:
        opts = self.options
        if not opts.editable.can_create:
            return self._refuse(action, None, "creating items is not allowed")

        parent: Item | None = None
        if not opts.is_root_parent(parent_id):
            parent = self._index.get(parent_id)
            if parent is None:
                return self._refuse(action, None, f"parent {parent_id!r} not found")
        elif not opts.multiple_roots and self._roots:
            return self._refuse(action, None, "only one root item is allowed")

        parent_depth = self.depth(parent) if parent is not None else -1
        if not self._depth_allowed(parent_depth + 1):
            return self._refuse(
                action, None, f"depth {parent_depth + 1} exceeds max_depth {opts.max_depth}", parent
            )

        siblings = parent[opts.children] if parent is not None else self._roots
        if width is None:
            width = len(siblings)
        factory = opts.create if opts.create is not None else opts.default_item
        item = await call_hook(factory, parent, parent_depth, width)
        if item is None:
            return self._refuse(action, None, "item factory returned no item", parent)

        key = item.get(opts.id)
        if key is None:
            return self._refuse(action, item, "new item has no id", parent)
        if key in self._index:
            return self._refuse(action, item, f"id {key!r} already in use", parent)
        if item.get(opts.children):
            return self._refuse(action, item, "new item already has children", parent)
        item[opts.parent_id] = parent[opts.id] if parent is not None else opts.root_parent_id
        item[opts.children] = []

        if not await should_proceed(opts.on_before_create, item):
            return self._veto(action, item, parent)

        siblings.append(item)
        self._index[key] = item
        self._parents[key] = parent
        self._log_applied(action, item)
        await call_hook(opts.on_create, item)
        return EditResult(EditStatus.APPLIED, action, item, parent)

    async def delete(self, item_id: Any) -> EditResult:
        """Delete an item together with its subtree.

        Items with children can only be deleted when ``can_delete_parent``
        is set; otherwise the delete is refused before any hook runs.

        Returns:
            EditResult carrying the removed item when applied.
        """
        action = TreeItemAction.DELETE
        opts = self.options
        if self._in_edit():
            return self._busy(action)
        async with self._exclusive():
            if not opts.editable.can_delete:
                return self._refuse(action, None, "deleting items is not allowed")
            node = self._index.get(item_id)
            if node is None:
                return self._refuse(action, None, f"item {item_id!r} not found")
            parent = self._parents[item_id]
            if not opts.editable.can_delete_parent and await self._has_children(node):
                return self._refuse(action, node, "deleting items with children is not allowed", parent)

            if not await should_proceed(opts.on_before_delete, node):
                return self._veto(action, node, parent)

            self._detach(node)
            for removed in list(iter_items([node], opts.children)):
                del self._index[removed[opts.id]]
                del self._parents[removed[opts.id]]
            self._log_applied(action, node)
            await call_hook(opts.on_delete, node)
            return EditResult(EditStatus.APPLIED, action, node, parent)

    async def update(
        self,
        item_id: Any,
        changes: Dict[str, Any] | None = None,
        new_parent_id: Any = _UNSET,
    ) -> EditResult:
        """Change an item's fields and optionally move it under a new parent.

        Args:
            item_id: Id of the item to update.
            changes: Payload fields to set. The id, parent id and children
                fields cannot be changed this way.
            new_parent_id: When given, move the item to the end of this
                parent's children. None (or the root sentinel) moves it to
                the root level.

        Returns:
            EditResult with action EDIT, or MOVE when a new parent was given.
        """
        opts = self.options
        action = TreeItemAction.EDIT if new_parent_id is _UNSET else TreeItemAction.MOVE
        changes = dict(changes or {})
        if self._in_edit():
            return self._busy(action)
        async with self._exclusive():
            if not opts.editable.can_update:
                return self._refuse(action, None, "updating items is not allowed")
            node = self._index.get(item_id)
            if node is None:
                return self._refuse(action, None, f"item {item_id!r} not found")
            old_parent = self._parents[item_id]
            protected = sorted({opts.id, opts.parent_id, opts.children} & changes.keys())
            if protected:
                return self._refuse(
                    action, node, f"structural fields cannot be updated: {protected}", old_parent
                )

            new_parent = old_parent
            if action is TreeItemAction.MOVE:
                new_parent = None
                if not opts.is_root_parent(new_parent_id):
                    new_parent = self._index.get(new_parent_id)
                    if new_parent is None:
                        return self._refuse(action, node, f"parent {new_parent_id!r} not found")
                    if new_parent is node or self._is_descendant(new_parent, node):
                        return self._refuse(
                            action, node, "an item cannot move below itself", new_parent
                        )
                elif old_parent is not None and not opts.multiple_roots and self._roots:
                    return self._refuse(action, node, "only one root item is allowed")
                new_depth = self.depth(new_parent) + 1 if new_parent is not None else 0
                if not self._depth_allowed(new_depth):
                    return self._refuse(
                        action, node, f"depth {new_depth} exceeds max_depth {opts.max_depth}", new_parent
                    )

            # hooks only get a parent for moves
            hook_parent = new_parent if action is TreeItemAction.MOVE else None
            if not await should_proceed(opts.on_before_update, node, action, hook_parent):
                return self._veto(action, node, new_parent)

            node.update(changes)
            if action is TreeItemAction.MOVE:
                self._detach(node)
                siblings = new_parent[opts.children] if new_parent is not None else self._roots
                siblings.append(node)
                node[opts.parent_id] = (
                    new_parent[opts.id] if new_parent is not None else opts.root_parent_id
                )
                self._parents[item_id] = new_parent
            self._log_applied(action, node)
            await call_hook(opts.on_update, node, action, hook_parent)
            return EditResult(EditStatus.APPLIED, action, node, new_parent)

    async def move(self, item_id: Any, new_parent_id: Any) -> EditResult:
        """Move an item under a new parent (None for the root level)."""
        return await self.update(item_id, new_parent_id=new_parent_id)

    async def toggle(self, item: Any) -> EditResult:
        """Flip an item's open state and notify ``on_toggle``.

        Returns:
            EditResult with action EXPAND or COLLAPSE for the new state. An
            unknown item is refused (reported as EXPAND).
        """
        if self._in_edit():
            return self._busy(TreeItemAction.EXPAND)
        async with self._exclusive():
            node = self._resolve(item)
            if node is None:
                return self._refuse(
                    TreeItemAction.EXPAND, None, f"item {self._key(item)!r} not found"
                )
            expanded = not self.options.open_state.get(node)
            return await self._set_expanded(node, expanded)

    async def set_expanded(self, item: Any, expanded: bool) -> EditResult:
        """Open or close an item; ``on_toggle`` only fires on a change."""
        action = TreeItemAction.EXPAND if expanded else TreeItemAction.COLLAPSE
        if self._in_edit():
            return self._busy(action)
        async with self._exclusive():
            node = self._resolve(item)
            if node is None:
                return self._refuse(action, None, f"item {self._key(item)!r} not found")
            return await self._set_expanded(node, expanded)

    async def select(self, item: Any, is_selected: bool = True) -> bool:
        """Tell ``on_select`` that an item was (de)selected.

        Returns:
            False, without calling the hook, if the item is not in the tree.
        """
        node = self._resolve(item)
        if node is None:
            if self.options.logging:
                logger.debug("Ignored select of unknown item %r", self._key(item))
            return False
        await call_hook(self.options.on_select, node, is_selected)
        return True

    async def _set_expanded(self, node: Item, expanded: bool) -> EditResult:
        opts = self.options
        action = TreeItemAction.EXPAND if expanded else TreeItemAction.COLLAPSE
        parent = self._parents[node[opts.id]]
        if opts.open_state.get(node) != expanded:
            opts.open_state.set(node, expanded)
            self._log_applied(action, node)
            await call_hook(opts.on_toggle, node, expanded)
        return EditResult(EditStatus.APPLIED, action, node, parent)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        async with self._lock:
            self._owner = asyncio.current_task()
            try:
                yield
            finally:
                self._owner = None

    def _in_edit(self) -> bool:
        """Whether the calling task is the one holding the edit lock."""
        return self._owner is not None and self._owner is asyncio.current_task()

    def _busy(self, action: TreeItemAction) -> EditResult:
        return self._refuse(action, None, "edit already in progress")

    def _key(self, item_or_id: Any) -> Any:
        if isinstance(item_or_id, Mapping):
            return item_or_id.get(self.options.id)
        return item_or_id

    def _resolve(self, item_or_id: Any) -> Item | None:
        return self._index.get(self._key(item_or_id))

    def _require(self, item_or_id: Any) -> Item:
        node = self._resolve(item_or_id)
        if node is None:
            raise ItemNotFoundError(self._key(item_or_id))
        return node

    def _depth_allowed(self, depth: int) -> bool:
        return self.options.max_depth is None or depth <= self.options.max_depth

    def _is_descendant(self, node: Item, ancestor: Item) -> bool:
        parent = self._parents[node[self.options.id]]
        while parent is not None:
            if parent is ancestor:
                return True
            parent = self._parents[parent[self.options.id]]
        return False

    def _detach(self, node: Item) -> None:
        parent = self._parents[node[self.options.id]]
        siblings = parent[self.options.children] if parent is not None else self._roots
        for idx, sibling in enumerate(siblings):
            if sibling is node:
                del siblings[idx]
                break

    def _label(self, item: Item | None) -> str:
        if item is None:
            return "<no item>"
        name = item.get(self.options.name)
        return repr(name) if name is not None else repr(item.get(self.options.id))

    def _refuse(
        self,
        action: TreeItemAction,
        item: Item | None,
        reason: str,
        parent: Item | None = None,
    ) -> EditResult:
        if self.options.logging:
            logger.debug("Refused %s of %s: %s", action.value, self._label(item), reason)
        return EditResult(EditStatus.REFUSED, action, item, parent, reason)

    def _veto(self, action: TreeItemAction, item: Item, parent: Item | None) -> EditResult:
        if self.options.logging:
            logger.debug("Cancelled %s of %s by hook", action.value, self._label(item))
        return EditResult(EditStatus.VETOED, action, item, parent, "cancelled by hook")

    def _log_applied(self, action: TreeItemAction, item: Item) -> None:
        if self.options.logging:
            logger.debug("Applied %s of %s", action.value, self._label(item))

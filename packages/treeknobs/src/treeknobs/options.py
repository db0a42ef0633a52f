"""Tree options: field bindings, structural limits, editability and hooks.

A :class:`TreeOptions` instance is handed to the editor once and treated as
read-only afterwards. Every field defaults independently, so partial options
are fine:

```python
from treeknobs import TreeOptions, EditableOptions

options = TreeOptions(
    name="title",
    max_depth=3,
    editable=EditableOptions(can_create=True, can_delete=True),
    on_before_delete=lambda item: item["title"] != "keep me",
)
```

Options can also be loaded from plain data, using either the snake_case
field names or the camelCase keys of the browser component this library
mirrors. Callables may be given as dotted import paths:

```yaml
# tree.yaml
parentId: parent
maxDepth: 2
multipleRoots: false
editable:
  canCreate: true
  canDeleteParent: true
onBeforeDelete: myapp.tree_hooks.confirm_delete
```

```python
options = TreeOptions.from_file("tree.yaml")
```
"""

from __future__ import annotations

import importlib
import json
import logging
import uuid
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Protocol, Union, runtime_checkable

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Item = MutableMapping[str, Any]
OpenStateFunction = Callable[..., Any]


@runtime_checkable
class OpenStateAccessor(Protocol):
    """Reads and writes the expanded/collapsed state of an item."""

    def get(self, item: Item) -> bool:
        ...

    def set(self, item: Item, value: bool) -> None:
        ...


class FieldOpenState:
    """Open state stored in a field of the item itself."""

    def __init__(self, field_name: str):
        self.field_name = field_name

    def get(self, item: Item) -> bool:
        return bool(item.get(self.field_name, False))

    def set(self, item: Item, value: bool) -> None:
        item[self.field_name] = value

    def __repr__(self) -> str:
        return f"FieldOpenState({self.field_name!r})"


class FunctionOpenState:
    """Open state kept by the caller and reached through a function.

    The function is called as ``fn(item_id, "get")`` to read the state and as
    ``fn(item_id, "set", value)`` to write it.
    """

    def __init__(self, fn: OpenStateFunction, id_field: str):
        self.fn = fn
        self.id_field = id_field

    def get(self, item: Item) -> bool:
        return bool(self.fn(item[self.id_field], "get"))

    def set(self, item: Item, value: bool) -> None:
        self.fn(item[self.id_field], "set", value)

    def __repr__(self) -> str:
        return f"FunctionOpenState({self.fn!r})"


@dataclass(frozen=True)
class EditableOptions:
    """Which edits the tree allows. Everything is off by default.

    Attributes:
        can_create: Allow creating new items.
        can_delete: Allow deleting items.
        can_delete_parent: Allow deleting items that have children (the
            whole subtree goes with them). Only consulted when can_delete
            is also set.
        can_update: Allow editing and moving items.
    """

    can_create: bool = False
    can_delete: bool = False
    can_delete_parent: bool = False
    can_update: bool = False

    @classmethod
    def all(cls) -> EditableOptions:
        """Options with every kind of edit enabled."""
        return cls(True, True, True, True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EditableOptions:
        """Create editable options from snake_case or camelCase keys.

        Raises:
            ConfigurationError: If an unknown key is present
        """
        return cls(**_normalize_keys(data, _EDITABLE_ALIASES, cls, "editable"))

    def to_dict(self) -> Dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class TreeOptions:
    """Configuration of a tree editor.

    Attributes:
        id: Name of the id field.
        parent_id: Name of the parent id field.
        name: Name of the display name field. Only used in log messages.
        children: Name of the field holding an item's children.
        is_open: Name of the open-state field, or a function
            ``fn(item_id, "get" | "set", value=None)`` that keeps the open
            state outside the items.
        root_parent_id: Parent id value that marks a root item. None and the
            empty string are always treated as "no parent" as well.
        max_depth: Deepest level at which new items may be placed, where
            roots are at depth 0. 1 allows children of roots, 2 allows
            grandchildren, and so on. None means unbounded.
        multiple_roots: Whether more than one root item may exist.
        logging: Log refused, vetoed and applied edits at DEBUG level.
        editable: Which edits are allowed.
        create: Item factory called as ``create(parent, depth, width)``. The
            depth is the parent's depth, or -1 for a new root. May return an
            awaitable. When None, :meth:`default_item` is used.
        on_select: ``(item, is_selected)`` notification.
        on_toggle: ``(item, is_expanded)`` notification.
        on_before_create: ``(item)``; returning False cancels the create.
        on_create: ``(item)`` after the item was inserted.
        on_before_delete: ``(item)``; returning False cancels the delete.
        on_delete: ``(item)`` after the item (and its subtree) was removed.
        on_before_update: ``(item, action, new_parent)``; returning False
            cancels the update. The action is "edit" or "move"; new_parent
            is the target parent of a move (None for the root level) and
            always None for an edit.
        on_update: ``(item, action, new_parent)`` after the update.
        has_children: Optional predicate deciding whether an item has
            children, e.g. when children are loaded lazily.
    """

    id: str = "id"
    parent_id: str = "parentId"
    name: str = "name"
    children: str = "children"
    is_open: Union[str, OpenStateFunction] = "isOpen"
    root_parent_id: Any = 0
    max_depth: int | None = None
    multiple_roots: bool = True
    logging: bool = False
    editable: EditableOptions = field(default_factory=EditableOptions)
    create: Callable[..., Any] | None = None
    on_select: Callable[..., Any] | None = None
    on_toggle: Callable[..., Any] | None = None
    on_before_create: Callable[..., Any] | None = None
    on_create: Callable[..., Any] | None = None
    on_before_delete: Callable[..., Any] | None = None
    on_delete: Callable[..., Any] | None = None
    on_before_update: Callable[..., Any] | None = None
    on_update: Callable[..., Any] | None = None
    has_children: Callable[[Item], Any] | None = None

    open_state: OpenStateAccessor = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_depth is not None and (
            isinstance(self.max_depth, bool)
            or not isinstance(self.max_depth, int)
            or self.max_depth < 0
        ):
            raise ConfigurationError(
                f"max_depth must be a non-negative integer or None, got {self.max_depth!r}",
                context={"max_depth": self.max_depth},
            )
        if isinstance(self.editable, dict):
            self.editable = EditableOptions.from_dict(self.editable)
        if self.is_open is None:
            self.is_open = "isOpen"
        if callable(self.is_open):
            self.open_state = FunctionOpenState(self.is_open, self.id)
        else:
            self.open_state = FieldOpenState(self.is_open)

    def is_root_parent(self, value: Any) -> bool:
        """Check whether a parent id value means "no parent"."""
        return value is None or value == "" or value == self.root_parent_id

    def default_item(self, parent: Item | None, depth: int, width: int) -> Item:
        """Build a new item when no factory is configured.

        The item gets a random hex id, the parent's id (or the root
        sentinel) and a placeholder name.
        """
        return {
            self.id: uuid.uuid4().hex,
            self.parent_id: parent[self.id] if parent is not None else self.root_parent_id,
            self.name: "New item",
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TreeOptions:
        """Create options from a dictionary.

        Keys may be snake_case field names or camelCase equivalents
        (``parentId``, ``maxDepth``, ``onBeforeCreate``, ...). Hook, factory
        and ``isOpen`` values may be dotted import paths naming a callable.

        Args:
            data: Options dictionary

        Returns:
            TreeOptions instance

        Raises:
            ConfigurationError: On unknown keys or unresolvable callables
        """
        kwargs = _normalize_keys(data, _OPTION_ALIASES, cls, "options")
        for key in _CALLABLE_FIELDS:
            if isinstance(kwargs.get(key), str):
                kwargs[key] = _load_callable(kwargs[key])
        is_open = kwargs.get("is_open")
        if isinstance(is_open, str) and "." in is_open:
            kwargs["is_open"] = _load_callable(is_open)
        if isinstance(kwargs.get("editable"), dict):
            kwargs["editable"] = EditableOptions.from_dict(kwargs["editable"])
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> TreeOptions:
        """Create options from a YAML or JSON file.

        Args:
            path: Path to the options file

        Returns:
            TreeOptions instance
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"Options file not found: {path}", context={"path": str(path)}
            )

        suffix = path.suffix.lower()
        with open(path) as f:
            if suffix in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ConfigurationError(
                    f"Unsupported options file format: {suffix}",
                    context={"path": str(path)},
                )

        logger.debug("Loaded tree options from %s", path)
        return cls.from_dict(data or {})


_OPTION_ALIASES = {
    "parentId": "parent_id",
    "isOpen": "is_open",
    "rootParentId": "root_parent_id",
    "maxDepth": "max_depth",
    "multipleRoots": "multiple_roots",
    "onSelect": "on_select",
    "onToggle": "on_toggle",
    "onBeforeCreate": "on_before_create",
    "onCreate": "on_create",
    "onBeforeDelete": "on_before_delete",
    "onDelete": "on_delete",
    "onBeforeUpdate": "on_before_update",
    "onUpdate": "on_update",
    "hasChildren": "has_children",
}

_EDITABLE_ALIASES = {
    "canCreate": "can_create",
    "canDelete": "can_delete",
    "canDeleteParent": "can_delete_parent",
    "canUpdate": "can_update",
}

_CALLABLE_FIELDS = (
    "create",
    "on_select",
    "on_toggle",
    "on_before_create",
    "on_create",
    "on_before_delete",
    "on_delete",
    "on_before_update",
    "on_update",
    "has_children",
)


def _normalize_keys(
    data: Dict[str, Any], aliases: Dict[str, str], target: type, what: str
) -> Dict[str, Any]:
    known = {f.name for f in fields(target) if f.init}
    result: Dict[str, Any] = {}
    for key, value in data.items():
        name = aliases.get(key, key)
        if name not in known:
            raise ConfigurationError(
                f"Unknown {what} key: {key!r}",
                context={"key": key, "known": sorted(known)},
            )
        result[name] = value
    return result


def _load_callable(path: str) -> Callable[..., Any]:
    """Import a callable from a dotted path such as ``"pkg.module.func"``."""
    if "." not in path:
        raise ConfigurationError(f"Invalid callable path: {path}", context={"path": path})
    module_path, attr_name = path.rsplit(".", 1)
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigurationError(
            f"Failed to import {path}: {e}", context={"path": path}
        ) from e
    fn = getattr(module, attr_name, None)
    if not callable(fn):
        raise ConfigurationError(
            f"{attr_name} in {module_path} is not callable", context={"path": path}
        )
    return fn

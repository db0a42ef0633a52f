"""Editable item hierarchies with flat and nested representations.

The treeknobs package keeps a hierarchy of arbitrary items consistent while
it is edited, and converts it between two shapes:

- a **flat collection**: an ordered list of items pointing at their parent
  through a parent id field, as loaded from a table or an API
- a **nested tree**: an ordered list of root items, each holding its
  children, as consumed by a tree view

## Modules

### converter - Flat <-> nested conversion
`unflatten` groups a flat list into a nested tree, keeping sibling order and
reusing the item objects. `flatten` walks a nested tree back into a list.

### editor - Transactional edits
`TreeEditor` owns a nested tree and applies create, delete, update, move,
add-child and expand/collapse edits. Edits respect the configured limits and
go through before/after hooks; a before-hook can cancel an edit by returning
False. Hooks may be sync or async.

### options - Configuration
`TreeOptions` binds field names, limits, editability flags, the item factory
and the hooks. It can be loaded from a dict, YAML or JSON.

### outline - Text notation
`as_string` and `build_items_from_string` read and write trees as
parenthesised outlines such as `(1 (2 (4 7)) 3) 5 6`.

## Quick example

```python
from treeknobs import EditableOptions, TreeEditor, TreeOptions

editor = TreeEditor.from_flat(
    [{"id": 1, "parentId": 0}, {"id": 2, "parentId": 1}],
    TreeOptions(editable=EditableOptions.all(), max_depth=2),
)
result = await editor.add_child(2)
editor.as_string()  # "(1 (2 <new id>))"
```
"""

from treeknobs.converter import OrphanPolicy, flatten, iter_items, unflatten
from treeknobs.editor import EditResult, EditStatus, TreeEditor, TreeItemAction
from treeknobs.exceptions import (
    ConfigurationError,
    DuplicateIdError,
    ItemNotFoundError,
    OrphanedItemError,
    OutlineParseError,
    TreeDataError,
    TreeknobsError,
)
from treeknobs.options import (
    EditableOptions,
    FieldOpenState,
    FunctionOpenState,
    OpenStateAccessor,
    TreeOptions,
)
from treeknobs.outline import as_string, build_items_from_string

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Converter
    "OrphanPolicy",
    "flatten",
    "iter_items",
    "unflatten",
    # Editor
    "EditResult",
    "EditStatus",
    "TreeEditor",
    "TreeItemAction",
    # Options
    "EditableOptions",
    "FieldOpenState",
    "FunctionOpenState",
    "OpenStateAccessor",
    "TreeOptions",
    # Outline
    "as_string",
    "build_items_from_string",
    # Exceptions
    "TreeknobsError",
    "ConfigurationError",
    "TreeDataError",
    "DuplicateIdError",
    "OrphanedItemError",
    "ItemNotFoundError",
    "OutlineParseError",
]

"""Exception hierarchy for treeknobs.

Exceptions are reserved for programming and data errors: bad configuration,
duplicate identifiers, orphaned items when the caller asked to be told about
them, unparseable outline strings. Edits that are refused by configuration
or vetoed by a hook are *not* errors; they come back as an
:class:`~treeknobs.editor.EditResult`.

Example:
    ```python
    from treeknobs.exceptions import TreeknobsError, OrphanedItemError

    try:
        roots = unflatten(items, orphans=OrphanPolicy.RAISE)
    except OrphanedItemError as e:
        logger.error("Orphans: %s", e.context["ids"])
    except TreeknobsError as e:
        logger.error("Tree error: %s", e)
    ```
"""

from typing import Any, Dict


class TreeknobsError(Exception):
    """Base exception for all treeknobs errors.

    Attributes:
        context: Dictionary containing contextual information about the error
        details: Alias for context

    Example:
        ```python
        error = TreeknobsError("Bad tree", context={"item_id": 3})
        error.context
        # {'item_id': 3}
        ```
    """

    def __init__(
        self,
        message: str,
        context: Dict[str, Any] | None = None,
        details: Dict[str, Any] | None = None,
    ):
        """Initialize the exception with optional context.

        Args:
            message: Error message
            context: Optional context dictionary
            details: Optional details dictionary (takes precedence over context)
        """
        super().__init__(message)
        self.context = details or context or {}
        self.details = self.context


class ConfigurationError(TreeknobsError):
    """Raised when tree options are invalid.

    Example:
        ```python
        raise ConfigurationError(
            "Unknown option",
            context={"key": "maxDepht", "known": ["maxDepth", "multipleRoots"]}
        )
        ```
    """

    pass


class TreeDataError(TreeknobsError):
    """Raised when item data violates the structural invariants."""

    pass


class DuplicateIdError(TreeDataError):
    """Raised when two items share the same identifier."""

    def __init__(self, item_id: Any):
        super().__init__(f"Duplicate item id: {item_id!r}", context={"id": item_id})


class OrphanedItemError(TreeDataError):
    """Raised when items reference a parent that does not exist.

    Only raised under ``OrphanPolicy.RAISE``; the default policy drops such
    items instead.
    """

    def __init__(self, ids: list[Any]):
        super().__init__(
            f"{len(ids)} item(s) reference a missing parent: {ids!r}",
            context={"ids": ids},
        )


class ItemNotFoundError(TreeknobsError):
    """Raised by read-only queries given an id that is not in the tree.

    Mutating operations never raise this; they report a refusal instead.
    """

    def __init__(self, item_id: Any):
        super().__init__(f"Item not found: {item_id!r}", context={"id": item_id})


class OutlineParseError(TreeknobsError):
    """Raised when an outline string cannot be parsed."""

    pass


__all__ = [
    "TreeknobsError",
    "ConfigurationError",
    "TreeDataError",
    "DuplicateIdError",
    "OrphanedItemError",
    "ItemNotFoundError",
    "OutlineParseError",
]

class RepositoryError(RuntimeError):
    """Raised when repository operations fail.

    Base class for the errors this package raises itself. Driver failures
    (``pymongo.errors.PyMongoError``) are not wrapped and propagate as-is.
    """

    pass


class InvalidArgumentError(RepositoryError, ValueError):
    """A required key, entity or predicate was missing.

    Always raised before any call reaches the store.
    """

    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(f"Argument '{argument}' must not be empty")


class EntityNotFoundError(RepositoryError):
    def __init__(self, entity_type: str, key: str):
        self.entity_type = entity_type
        self.key = key
        super().__init__(f"{entity_type} '{key}' not found")


class HierarchyError(RepositoryError):
    """A stored tree is malformed (too deep or cyclic)."""

    pass


class HierarchyDepthExceededError(HierarchyError):
    def __init__(self, key: str, max_depth: int):
        self.key = key
        self.max_depth = max_depth
        super().__init__(f"Subtree below '{key}' is deeper than {max_depth} levels")


class HierarchyCycleError(HierarchyError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Cycle detected in hierarchy at '{key}'")

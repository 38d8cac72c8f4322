"""
Tree operations for entities carrying ``parent_id`` and ``level``.
"""

from typing import List, Optional, Set, Type

from loguru import logger

from .base import Repository, T
from .exceptions import EntityNotFoundError, HierarchyCycleError, HierarchyDepthExceededError, InvalidArgumentError

# Deepest level a parent may sit at and still accept children
MAX_LEVEL = 6


class HierarchicalRepository(Repository[T]):
    """Repository with cascade delete and depth checks for tree-shaped entities.

    ``max_level`` drives ``is_level_exceeded``. ``max_depth`` bounds how far
    below the starting node a cascade delete may walk, so a cyclic or
    over-deep tree is reported instead of recursing forever.
    """

    def __init__(self, entity_type: Type[T], *args, max_level: int = MAX_LEVEL,
                 max_depth: int = MAX_LEVEL, **kwargs):
        missing = {"parent_id", "level"} - set(entity_type.model_fields)
        if missing:
            raise TypeError(f"{entity_type.__name__} is not hierarchical; missing fields {sorted(missing)}")
        super().__init__(entity_type, *args, **kwargs)
        self.max_level = max_level
        self.max_depth = max_depth

    # ---------- Cascade delete ----------

    def delete_hierarchical_entity(self, key: str) -> bool:
        """Delete the entity and all of its descendants, leaves first.

        The whole subtree is walked before anything is deleted, so depth and
        cycle errors leave the tree untouched. A failure half-way through the
        deletes leaves a partially deleted subtree.
        """
        root = self._require_node(self.get(key), key)
        ordered: List[T] = []
        self._collect(root, 0, set(), ordered)

        acknowledged = True
        for node in ordered:
            acknowledged = self.delete(node.id) and acknowledged
        logger.info(f"Cascade deleted {len(ordered)} {self.entity_type.__name__} under {key}")
        return acknowledged

    async def delete_hierarchical_entity_async(self, key: str) -> bool:
        root = self._require_node(await self.get_async(key), key)
        ordered: List[T] = []
        await self._collect_async(root, 0, set(), ordered)

        acknowledged = True
        for node in ordered:
            acknowledged = await self.delete_async(node.id) and acknowledged
        logger.info(f"Cascade deleted {len(ordered)} {self.entity_type.__name__} under {key}")
        return acknowledged

    def _collect(self, node: T, depth: int, visited: Set[str], ordered: List[T]) -> None:
        self._visit(node, depth, visited)
        for child in list(self.where({"parent_id": node.id})):
            self._collect(child, depth + 1, visited, ordered)
        ordered.append(node)

    async def _collect_async(self, node: T, depth: int, visited: Set[str], ordered: List[T]) -> None:
        self._visit(node, depth, visited)
        for child in await self.where_async({"parent_id": node.id}):
            await self._collect_async(child, depth + 1, visited, ordered)
        ordered.append(node)

    def _visit(self, node: T, depth: int, visited: Set[str]) -> None:
        if node.id in visited:
            raise HierarchyCycleError(node.id)
        if depth > self.max_depth:
            raise HierarchyDepthExceededError(node.id, self.max_depth)
        visited.add(node.id)

    def _require_node(self, node: Optional[T], key: str) -> T:
        if node is None:
            raise EntityNotFoundError(self.entity_type.__name__, key)
        return node

    # ---------- Checks ----------

    def is_level_exceeded(self, parent_id: str) -> bool:
        """Whether ``parent_id`` already sits at the deepest allowed level.

        Advisory: callers check this before inserting a child; ``insert``
        itself never enforces it. False when the parent does not exist.
        """
        return self._level_exceeded(self.get(parent_id))

    async def is_level_exceeded_async(self, parent_id: str) -> bool:
        return self._level_exceeded(await self.get_async(parent_id))

    def _level_exceeded(self, parent: Optional[T]) -> bool:
        return parent is not None and parent.level >= self.max_level

    def has_children(self, key: str) -> bool:
        if not key:
            raise InvalidArgumentError("key")
        return self.any({"parent_id": key})

    async def has_children_async(self, key: str) -> bool:
        if not key:
            raise InvalidArgumentError("key")
        return await self.any_async({"parent_id": key})

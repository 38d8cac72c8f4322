"""Catalog module repository implementations."""

from typing import List
from mongo_repository.repository.hierarchical import HierarchicalRepository
from .models import Category

# The API only uses the asyncio path; retry its reads on transient failures
ASYNC_READ_OPERATIONS = frozenset({"get_async", "first_or_default_async", "where_async", "any_async"})


class CategoryRepository(HierarchicalRepository[Category]):
    """Category repository."""

    def __init__(self, async_collection, **kwargs):
        super().__init__(Category, async_collection=async_collection, **kwargs)

    async def list_children(self, parent_id: str) -> List[Category]:
        """Direct children of a category."""
        return await self.where_async({"parent_id": parent_id})

    async def list_roots(self) -> List[Category]:
        return await self.where_async({"parent_id": None})

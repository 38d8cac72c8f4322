from typing import List, Optional
from loguru import logger
from mongo_repository.exceptions.handler import BusinessException
from .models import Category
from .repository import CategoryRepository


class CategoryService:
    def __init__(self, repository: CategoryRepository):
        """Initialize Category Service with its repository."""
        self.repository = repository

    async def create_category(
        self,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Category:
        """Create a root category, or a child one level below its parent."""
        level = 0
        if parent_id:
            parent = await self.get_category(parent_id)
            if await self.repository.is_level_exceeded_async(parent_id):
                raise BusinessException(
                    f"Category '{parent.name}' is at the maximum depth ({self.repository.max_level})",
                    code=400,
                )
            level = parent.level + 1

        category = await self.repository.insert_async(
            Category(name=name, description=description, parent_id=parent_id or None, level=level)
        )
        logger.info(f"Category {category.id} '{name}' created at level {level}")
        return category

    async def get_category(self, category_id: str) -> Category:
        category = await self.repository.get_async(category_id)
        if category is None:
            raise BusinessException("Category not found", status_code=404, code=404)
        return category

    async def list_children(self, category_id: str) -> List[Category]:
        await self.get_category(category_id)
        return await self.repository.list_children(category_id)

    async def list_roots(self) -> List[Category]:
        return await self.repository.list_roots()

    async def update_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Category:
        """Rename or re-describe a category; its place in the tree is fixed."""
        category = await self.get_category(category_id)
        changes = {}
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        return await self.repository.save_async(category.model_copy(update=changes))

    async def delete_category(self, category_id: str) -> bool:
        """Delete a category and everything below it."""
        await self.get_category(category_id)
        acknowledged = await self.repository.delete_hierarchical_entity_async(category_id)
        if not acknowledged:
            logger.warning(f"Cascade delete of category {category_id} was not fully acknowledged")
        return acknowledged

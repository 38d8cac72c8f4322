from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from mongo_repository.config import settings
from mongo_repository.database.manager import DatabaseManager
from mongo_repository.response import ResponseModel
from ..models import Category
from ..repository import ASYNC_READ_OPERATIONS, CategoryRepository
from ..service import CategoryService

router = APIRouter()


class CreateCategorySchema(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=1000)
    parent_id: Optional[str] = None


class UpdateCategorySchema(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=1000)


def get_category_repository() -> CategoryRepository:
    """Dependency: repository over the shared async client."""
    manager = DatabaseManager.get_instance()
    return CategoryRepository(
        manager.mongo.get_async_collection(Category),
        retry_policy=settings.build_retry_policy(),
        retried_operations=ASYNC_READ_OPERATIONS,
    )


def get_category_service(
    repository: CategoryRepository = Depends(get_category_repository)
) -> CategoryService:
    """Dependency: create CategoryService."""
    return CategoryService(repository)


@router.post("/")
async def create_category(
    data: CreateCategorySchema,
    service: CategoryService = Depends(get_category_service)
):
    """Create a category, optionally under a parent."""
    category = await service.create_category(data.name, data.description, data.parent_id)
    return ResponseModel.success(data=category)


@router.get("/")
async def list_root_categories(service: CategoryService = Depends(get_category_service)):
    """List top-level categories."""
    return ResponseModel.success(data=await service.list_roots())


@router.get("/{category_id}")
async def get_category(
    category_id: str,
    service: CategoryService = Depends(get_category_service)
):
    return ResponseModel.success(data=await service.get_category(category_id))


@router.get("/{category_id}/children")
async def list_children(
    category_id: str,
    service: CategoryService = Depends(get_category_service)
):
    return ResponseModel.success(data=await service.list_children(category_id))


@router.put("/{category_id}")
async def update_category(
    category_id: str,
    data: UpdateCategorySchema,
    service: CategoryService = Depends(get_category_service)
):
    category = await service.update_category(category_id, data.name, data.description)
    return ResponseModel.success(data=category)


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    service: CategoryService = Depends(get_category_service)
):
    """Delete a category and all of its descendants."""
    acknowledged = await service.delete_category(category_id)
    return ResponseModel.success(data={"id": category_id, "acknowledged": acknowledged})

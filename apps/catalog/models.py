from typing import ClassVar, Optional
from pydantic import Field
from mongo_repository.repository.entity import HierarchicalEntity


class Category(HierarchicalEntity):
    """Product category; categories nest up to MAX_LEVEL deep."""
    __collection_name__: ClassVar[Optional[str]] = "categories"

    name: str = Field(min_length=1, max_length=120, description="Display name")
    description: Optional[str] = Field(default=None, max_length=1000)

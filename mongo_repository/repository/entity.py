"""
Entity model: the document shape every repository works with.

``Entity`` carries the identifier and bookkeeping fields. Tree support is a
separate capability (``HierarchicalMixin``) that can be composed into any
entity type instead of forcing one inheritance chain.
"""

import uuid
from datetime import datetime
from typing import Any, ClassVar, Dict, Mapping, Optional, Protocol, Tuple, runtime_checkable

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_object_id(key: str) -> Any:
    """Stored form of an identifier: an ObjectId when the string is one, else the string."""
    if isinstance(key, str) and len(key) == 24 and ObjectId.is_valid(key):
        return ObjectId(key)
    return key


def new_id() -> str:
    return str(ObjectId())


@runtime_checkable
class EntityLike(Protocol):
    """Capabilities the generic repository relies on."""

    id: Optional[str]
    created_on: Optional[datetime]
    modified_on: Optional[datetime]


@runtime_checkable
class Hierarchical(Protocol):
    """Extra capabilities required by the tree operations."""

    id: Optional[str]
    parent_id: Optional[str]
    level: int


class Entity(BaseModel):
    """Base document for all repository-managed entities."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Collection name override; defaults to the lower-cased class name
    __collection_name__: ClassVar[Optional[str]] = None
    # Single-field indexes created by MongoDriver.ensure_indexes, merged across bases
    __indexes__: ClassVar[Tuple[str, ...]] = ()

    id: Optional[str] = Field(default=None, alias="_id", description="Document identifier")
    created_on: Optional[datetime] = Field(default=None, description="Set once, on first write")
    modified_on: Optional[datetime] = Field(default=None, description="Set on every write")
    is_deleted: bool = Field(default=False, description="Soft-delete flag")
    unique_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Client-generated token, distinct from id",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _object_id_to_str(cls, value: Any) -> Any:
        if isinstance(value, ObjectId):
            return str(value)
        return value

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a MongoDB document keyed by ``_id``."""
        document = self.model_dump(by_alias=True, exclude={"id"})
        if self.id is not None:
            document["_id"] = to_object_id(self.id)
        return document

    @classmethod
    def from_document(cls, document: Mapping[str, Any]):
        return cls.model_validate(document)


class HierarchicalMixin(BaseModel):
    """Parent reference and depth level for entities stored as a tree."""

    model_config = ConfigDict(extra="ignore")

    __indexes__: ClassVar[Tuple[str, ...]] = ("parent_id",)

    parent_id: Optional[str] = Field(default=None, description="Parent id; None for roots")
    level: int = Field(default=0, ge=0, description="Root = 0, child = parent.level + 1")


class HierarchicalEntity(HierarchicalMixin, Entity):
    """Convenience base combining Entity with the hierarchical capability."""

    pass

"""
Repository abstract base class and generic MongoDB implementation.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Collection as CollectionOf,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Type,
    TypeVar,
    Union,
)

from loguru import logger
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.collection import Collection

from .entity import Entity, new_id, to_object_id
from .exceptions import InvalidArgumentError, RepositoryError
from .retry import RetryPolicy

T = TypeVar("T", bound=Entity)
R = TypeVar("R")

# MongoDB filter document, e.g. {"parent_id": "65f0..."}
Predicate = Mapping[str, Any]

OPERATIONS = frozenset({
    "get", "get_async",
    "get_all", "get_all_async",
    "first_or_default", "first_or_default_async",
    "where", "where_async",
    "any", "any_async",
    "insert", "insert_async", "insert_batch", "insert_batch_async",
    "update", "update_async",
    "delete", "delete_async",
})

# Only the blocking get is retried unless configured otherwise
DEFAULT_RETRIED_OPERATIONS = frozenset({"get"})

# Query operators whose operands are identifiers when applied to ``id``
ID_OPERATORS = frozenset({"$eq", "$ne", "$in", "$nin"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require(value: Any, name: str) -> None:
    if value is None or (isinstance(value, str) and not value):
        raise InvalidArgumentError(name)


def _stored_id(value: Any) -> Any:
    if isinstance(value, str):
        return to_object_id(value)
    if isinstance(value, Mapping):
        return {
            op: _stored_id_operand(operand) if op in ID_OPERATORS else operand
            for op, operand in value.items()
        }
    return value


def _stored_id_operand(operand: Any) -> Any:
    if isinstance(operand, (list, tuple)):
        return [to_object_id(item) for item in operand]
    return to_object_id(operand)


class IRepository(ABC, Generic[T]):
    """Repository interface; defines standard data access API."""

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        """Get entity by id."""

    @abstractmethod
    async def get_async(self, key: str) -> Optional[T]:
        """Get entity by id."""

    @abstractmethod
    def get_all(self) -> Iterator[T]:
        """Lazily iterate all entities."""

    @abstractmethod
    async def get_all_async(self) -> List[T]:
        """Load all entities."""

    @abstractmethod
    def first_or_default(self, predicate: Predicate) -> Optional[T]:
        """First entity matching predicate."""

    @abstractmethod
    async def first_or_default_async(self, predicate: Predicate) -> Optional[T]:
        """First entity matching predicate."""

    @abstractmethod
    def where(self, predicate: Predicate) -> Iterator[T]:
        """Lazily iterate entities matching predicate."""

    @abstractmethod
    async def where_async(self, predicate: Predicate) -> List[T]:
        """Load entities matching predicate."""

    @abstractmethod
    def any(self, predicate: Predicate) -> bool:
        """Whether any entity matches predicate."""

    @abstractmethod
    def insert(self, entity: T) -> T:
        """Insert entity."""

    @abstractmethod
    async def insert_async(self, entity: T) -> T:
        """Insert entity."""

    @abstractmethod
    def update(self, entity: T) -> T:
        """Upsert entity."""

    @abstractmethod
    async def update_async(self, entity: T) -> T:
        """Upsert entity."""

    @abstractmethod
    def delete(self, entity_or_id: Union[T, str]) -> bool:
        """Delete entity."""

    @abstractmethod
    async def delete_async(self, entity_or_id: Union[T, str]) -> bool:
        """Delete entity."""


class Repository(IRepository[T]):
    """Generic MongoDB repository over a single entity type.

    Holds a blocking ``Collection`` and/or an asyncio ``AsyncCollection`` for
    the entity's collection; blocking methods need the former, ``*_async``
    methods the latter. Writes return a stamped copy of the entity and never
    mutate the argument.

    Args:
        entity_type: Entity subclass stored in the collection.
        collection: pymongo collection for blocking calls.
        async_collection: pymongo asyncio collection for ``*_async`` calls.
        retry_policy: Strategy applied to ``retried_operations``.
        retried_operations: Operation names (see ``OPERATIONS``) wrapped
            in the retry policy.
    """

    def __init__(
        self,
        entity_type: Type[T],
        collection: Optional[Collection] = None,
        async_collection: Optional[AsyncCollection] = None,
        retry_policy: Optional[RetryPolicy] = None,
        retried_operations: CollectionOf[str] = DEFAULT_RETRIED_OPERATIONS,
    ):
        unknown = set(retried_operations) - OPERATIONS
        if unknown:
            raise ValueError(f"Unknown repository operations: {sorted(unknown)}")

        self.entity_type = entity_type
        self._collection = collection
        self._async_collection = async_collection
        self.retry_policy = retry_policy or RetryPolicy()
        self.retried_operations = frozenset(retried_operations)

    @classmethod
    def from_connection_string(cls, entity_type: Type[T], connection_string: str, **kwargs):
        """Build a repository with fresh blocking and asyncio clients for the URL."""
        from mongo_repository.database.collection import get_async_collection, get_collection

        return cls(
            entity_type,
            collection=get_collection(entity_type, connection_string),
            async_collection=get_async_collection(entity_type, connection_string),
            **kwargs,
        )

    @property
    def collection(self) -> Collection:
        if self._collection is None:
            raise RepositoryError(f"{type(self).__name__} has no blocking collection configured")
        return self._collection

    @property
    def async_collection(self) -> AsyncCollection:
        if self._async_collection is None:
            raise RepositoryError(f"{type(self).__name__} has no async collection configured")
        return self._async_collection

    # ---------- Queries ----------

    def get(self, key: str) -> Optional[T]:
        _require(key, "key")
        return self._run("get", lambda: self._to_entity(self.collection.find_one(self._key_filter(key))))

    async def get_async(self, key: str) -> Optional[T]:
        _require(key, "key")

        async def _find():
            return self._to_entity(await self.async_collection.find_one(self._key_filter(key)))

        return await self._run_async("get_async", _find)

    def get_all(self) -> Iterator[T]:
        """Lazily iterate all entities; the cursor is consumed as you iterate."""
        return self._iterate("get_all", {})

    async def get_all_async(self) -> List[T]:
        return await self._run_async("get_all_async", lambda: self._find_list({}))

    def first_or_default(self, predicate: Predicate) -> Optional[T]:
        _require(predicate, "predicate")
        query = self._filter(predicate)
        return self._run("first_or_default", lambda: self._to_entity(self.collection.find_one(query)))

    async def first_or_default_async(self, predicate: Predicate) -> Optional[T]:
        _require(predicate, "predicate")
        query = self._filter(predicate)

        async def _find():
            return self._to_entity(await self.async_collection.find_one(query))

        return await self._run_async("first_or_default_async", _find)

    def where(self, predicate: Predicate) -> Iterator[T]:
        """Lazily iterate entities matching ``predicate``."""
        _require(predicate, "predicate")
        query = self._filter(predicate)
        return self._iterate("where", query)

    async def where_async(self, predicate: Predicate) -> List[T]:
        _require(predicate, "predicate")
        query = self._filter(predicate)
        return await self._run_async("where_async", lambda: self._find_list(query))

    def any(self, predicate: Predicate) -> bool:
        _require(predicate, "predicate")
        query = self._filter(predicate)
        return self._run("any", lambda: self.collection.count_documents(query, limit=1) > 0)

    async def any_async(self, predicate: Predicate) -> bool:
        _require(predicate, "predicate")
        query = self._filter(predicate)

        async def _count():
            return await self.async_collection.count_documents(query, limit=1) > 0

        return await self._run_async("any_async", _count)

    # ---------- Insert ----------

    def insert(self, entity: T) -> T:
        _require(entity, "entity")
        stamped = self._before_insert(entity)
        self._run("insert", lambda: self.collection.insert_one(stamped.to_document()))
        logger.debug(f"Inserted {self.entity_type.__name__} {stamped.id}")
        return stamped

    def insert_all(self, entities: Iterable[T]) -> List[T]:
        """Insert entities one at a time (one round trip each)."""
        _require(entities, "entities")
        return [self.insert(entity) for entity in entities]

    def insert_batch(self, entities: Iterable[T]) -> List[T]:
        """Stamp every entity, then persist them in a single bulk write."""
        _require(entities, "entities")
        stamped = [self._before_insert(entity) for entity in entities]
        if stamped:
            documents = [entity.to_document() for entity in stamped]
            self._run("insert_batch", lambda: self.collection.insert_many(documents))
            logger.debug(f"Inserted batch of {len(stamped)} {self.entity_type.__name__}")
        return stamped

    async def insert_async(self, entity: T) -> T:
        _require(entity, "entity")
        stamped = self._before_insert(entity)
        await self._run_async("insert_async", lambda: self.async_collection.insert_one(stamped.to_document()))
        logger.debug(f"Inserted {self.entity_type.__name__} {stamped.id}")
        return stamped

    async def insert_batch_async(self, entities: Iterable[T]) -> List[T]:
        _require(entities, "entities")
        stamped = [self._before_insert(entity) for entity in entities]
        if stamped:
            documents = [entity.to_document() for entity in stamped]
            await self._run_async("insert_batch_async", lambda: self.async_collection.insert_many(documents))
            logger.debug(f"Inserted batch of {len(stamped)} {self.entity_type.__name__}")
        return stamped

    # ---------- Update / Save ----------

    def update(self, entity: T) -> T:
        """Replace the document with the entity's id, inserting it if missing."""
        _require(entity, "entity")
        stamped = self._before_update(entity)
        self._run(
            "update",
            lambda: self.collection.replace_one(
                self._key_filter(stamped.id), stamped.to_document(), upsert=True
            ),
        )
        return stamped

    def update_all(self, entities: Iterable[T]) -> List[T]:
        _require(entities, "entities")
        return [self.update(entity) for entity in entities]

    async def update_async(self, entity: T) -> T:
        _require(entity, "entity")
        stamped = self._before_update(entity)
        await self._run_async(
            "update_async",
            lambda: self.async_collection.replace_one(
                self._key_filter(stamped.id), stamped.to_document(), upsert=True
            ),
        )
        return stamped

    def save(self, entity: T) -> T:
        """Insert if missing, replace otherwise; same as ``update``."""
        return self.update(entity)

    def save_all(self, entities: Iterable[T]) -> List[T]:
        return self.update_all(entities)

    async def save_async(self, entity: T) -> T:
        return await self.update_async(entity)

    # ---------- Delete ----------

    def delete(self, entity_or_id: Union[T, str]) -> bool:
        """Delete by entity or id.

        Returns whether the server acknowledged the request, which is true
        even when no document matched.
        """
        key = self._resolve_key(entity_or_id)
        result = self._run("delete", lambda: self.collection.delete_one(self._key_filter(key)))
        logger.debug(f"Deleted {self.entity_type.__name__} {key} (matched {self._deleted_count(result)})")
        return result.acknowledged

    async def delete_async(self, entity_or_id: Union[T, str]) -> bool:
        key = self._resolve_key(entity_or_id)
        result = await self._run_async(
            "delete_async", lambda: self.async_collection.delete_one(self._key_filter(key))
        )
        logger.debug(f"Deleted {self.entity_type.__name__} {key} (matched {self._deleted_count(result)})")
        return result.acknowledged

    # ---------- Entity helpers ----------

    def _before_insert(self, entity: T) -> T:
        now = _utcnow()
        return entity.model_copy(update={
            "id": entity.id or new_id(),
            "created_on": now,
            "modified_on": now,
        })

    def _before_update(self, entity: T) -> T:
        now = _utcnow()
        return entity.model_copy(update={
            "id": entity.id or new_id(),
            "created_on": entity.created_on or now,
            "modified_on": now,
        })

    def _to_entity(self, document: Optional[Mapping[str, Any]]) -> Optional[T]:
        if document is None:
            return None
        return self.entity_type.from_document(document)

    def _iterate(self, operation: str, query: Dict[str, Any]) -> Iterator[T]:
        """Open the cursor and fetch its first document under the retry policy.

        Later batches are fetched outside the policy; a failure there ends
        the iteration with the driver error.
        """

        def _open():
            cursor = iter(self.collection.find(query))
            return cursor, next(cursor, None)

        cursor, first = self._run(operation, _open)
        if first is None:
            return
        yield self._to_entity(first)
        for document in cursor:
            yield self._to_entity(document)

    async def _find_list(self, query: Dict[str, Any]) -> List[T]:
        documents = await self.async_collection.find(query).to_list(None)
        return [self._to_entity(doc) for doc in documents]

    def _resolve_key(self, entity_or_id: Union[T, str]) -> str:
        if isinstance(entity_or_id, Entity):
            _require(entity_or_id.id, "entity.id")
            return entity_or_id.id
        _require(entity_or_id, "id")
        return entity_or_id

    @staticmethod
    def _key_filter(key: str) -> Dict[str, Any]:
        return {"_id": to_object_id(key)}

    @staticmethod
    def _filter(predicate: Predicate) -> Dict[str, Any]:
        """Copy the predicate, translating a top-level ``id`` key to ``_id``.

        String ids are converted to their stored form, both as a plain value
        and as operands of ``$eq``, ``$ne``, ``$in`` and ``$nin``.
        """
        query = dict(predicate)
        if "id" in query:
            query["_id"] = _stored_id(query.pop("id"))
        return query

    @staticmethod
    def _deleted_count(result) -> Any:
        # deleted_count raises on unacknowledged writes
        return result.deleted_count if result.acknowledged else "unknown"

    # ---------- Retry ----------

    def _run(self, operation: str, action: Callable[[], R]) -> R:
        if operation in self.retried_operations:
            return self.retry_policy.execute(action)
        return action()

    async def _run_async(self, operation: str, action: Callable[[], Awaitable[R]]) -> R:
        if operation in self.retried_operations:
            return await self.retry_policy.execute_async(action)
        return await action()

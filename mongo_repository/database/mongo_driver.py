from typing import Iterable, Optional, Type

from loguru import logger
from pymongo import ASCENDING, AsyncMongoClient, MongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .base import BaseDatabaseDriver
from .collection import _redact, get_async_collection, get_collection, get_database_name, get_index_fields


class MongoDriver(BaseDatabaseDriver):
    """Owns the blocking and asyncio MongoDB clients for one connection string."""

    def __init__(self, url: str, server_selection_timeout_ms: int = 5000):
        self.url = url
        self.database_name = get_database_name(url)
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client: Optional[MongoClient] = None
        self.async_client: Optional[AsyncMongoClient] = None

    async def connect(self):
        """Create both clients and verify the server answers a ping."""
        options = dict(tz_aware=True, serverSelectionTimeoutMS=self.server_selection_timeout_ms)
        self.client = MongoClient(self.url, **options)
        self.async_client = AsyncMongoClient(self.url, **options)
        await self.async_client.admin.command("ping")
        logger.info(f"Connected to MongoDB {_redact(self.url)}")

    async def disconnect(self):
        if self.async_client is not None:
            await self.async_client.close()
            self.async_client = None
        if self.client is not None:
            self.client.close()
            self.client = None

    async def ping(self) -> bool:
        if self.async_client is None:
            return False
        try:
            await self.async_client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def get_collection(self, entity_type: Type) -> Collection:
        if self.client is None:
            raise RuntimeError("MongoDriver not connected. Call connect() first.")
        return get_collection(entity_type, self.url, client=self.client)

    def get_async_collection(self, entity_type: Type) -> AsyncCollection:
        if self.async_client is None:
            raise RuntimeError("MongoDriver not connected. Call connect() first.")
        return get_async_collection(entity_type, self.url, client=self.async_client)

    async def ensure_indexes(self, entity_types: Iterable[Type]):
        """Create the single-field indexes declared in ``__indexes__`` anywhere in each entity type's bases."""
        for entity_type in entity_types:
            collection = self.get_async_collection(entity_type)
            for field in get_index_fields(entity_type):
                await collection.create_index([(field, ASCENDING)])
                logger.debug(f"Ensured index {collection.name}.{field}")

"""
Collection accessor: resolve the collection for an entity type from a connection string.
"""

from typing import List, Optional, Type

from pymongo import AsyncMongoClient, MongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.collection import Collection
from pymongo.errors import InvalidURI
from pymongo.uri_parser import parse_uri


def get_database_name(connection_string: str) -> str:
    """Database named in a ``mongodb://host/<db>`` connection string.

    Raises:
        InvalidURI: The string is malformed or names no database.
    """
    parsed = parse_uri(connection_string)
    database = parsed.get("database")
    if not database:
        raise InvalidURI(f"Connection string names no database: {_redact(connection_string)}")
    return database


def get_collection_name(entity_type: Type) -> str:
    return getattr(entity_type, "__collection_name__", None) or entity_type.__name__.lower()


def get_index_fields(entity_type: Type) -> List[str]:
    """Fields named in ``__indexes__`` by the entity type and every base class, base first."""
    fields: List[str] = []
    for klass in reversed(entity_type.__mro__):
        for field in klass.__dict__.get("__indexes__", ()):
            if field not in fields:
                fields.append(field)
    return fields


def get_collection(entity_type: Type, connection_string: str,
                   client: Optional[MongoClient] = None) -> Collection:
    """Blocking collection handle for ``entity_type``.

    A new client is created unless one is passed in; pymongo pools
    connections per client.
    """
    database = get_database_name(connection_string)
    if client is None:
        client = MongoClient(connection_string, tz_aware=True)
    return client[database][get_collection_name(entity_type)]


def get_async_collection(entity_type: Type, connection_string: str,
                         client: Optional[AsyncMongoClient] = None) -> AsyncCollection:
    """asyncio collection handle for ``entity_type``."""
    database = get_database_name(connection_string)
    if client is None:
        client = AsyncMongoClient(connection_string, tz_aware=True)
    return client[database][get_collection_name(entity_type)]


def _redact(url: str) -> str:
    """Hide the password in a MongoDB URL for safe logging."""
    if "://" not in url or "@" not in url:
        return url
    protocol, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    if ":" in credentials:
        username = credentials.split(":", 1)[0]
        return f"{protocol}://{username}:***@{host}"
    return url

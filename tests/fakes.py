"""
In-memory stand-ins for pymongo collections.

Only the calls the repository makes are implemented. Filters support equality
on top-level fields (``None`` also matches a missing field) and the
``$eq``/``$ne``/``$in``/``$nin`` operators, which is all the repository and
its tests send. Every call is recorded in ``FakeStore.calls`` so tests can
assert on call counts and ordering.
"""

import asyncio
import copy
from types import SimpleNamespace
from typing import Any, Dict, List, Mapping, Optional

from pymongo.errors import AutoReconnect, DuplicateKeyError


_OPERATORS = {
    "$eq": lambda actual, operand: actual == operand,
    "$ne": lambda actual, operand: actual != operand,
    "$in": lambda actual, operand: actual in operand,
    "$nin": lambda actual, operand: actual not in operand,
}


def _match_value(actual: Any, expected: Any) -> bool:
    if isinstance(expected, Mapping) and expected and all(op in _OPERATORS for op in expected):
        return all(_OPERATORS[op](actual, operand) for op, operand in expected.items())
    return actual == expected


def _matches(document: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    return all(_match_value(document.get(key), value) for key, value in query.items())


def transient_error(message: str = "connection reset by peer") -> AutoReconnect:
    """AutoReconnect caused by a socket error, as pymongo raises it."""
    error = AutoReconnect(message)
    error.__cause__ = ConnectionResetError(message)
    return error


class FakeStore:
    def __init__(self):
        self.documents: Dict[Any, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.indexes: List[Any] = []

    def record(self, method: str, *args):
        self.calls.append((method,) + args)

    def methods(self) -> List[str]:
        return [call[0] for call in self.calls]

    def deleted_keys(self) -> List[Any]:
        return [call[1]["_id"] for call in self.calls if call[0] == "delete_one"]

    # ---------- operations shared by both fakes ----------

    def find(self, query):
        return [copy.deepcopy(doc) for doc in self.documents.values() if _matches(doc, query)]

    def find_one(self, query) -> Optional[Dict[str, Any]]:
        found = self.find(query)
        return found[0] if found else None

    def count(self, query, limit: int = 0) -> int:
        count = len(self.find(query))
        return min(count, limit) if limit else count

    def insert(self, document):
        if document["_id"] in self.documents:
            raise DuplicateKeyError(f"duplicate key: {document['_id']}")
        self.documents[document["_id"]] = copy.deepcopy(document)
        return SimpleNamespace(acknowledged=True, inserted_id=document["_id"])

    def replace(self, query, document, upsert: bool):
        existing = self.find_one(query)
        if existing is not None:
            self.documents[existing["_id"]] = copy.deepcopy(document)
            return SimpleNamespace(acknowledged=True, matched_count=1, upserted_id=None)
        if upsert:
            self.documents[document["_id"]] = copy.deepcopy(document)
            return SimpleNamespace(acknowledged=True, matched_count=0, upserted_id=document["_id"])
        return SimpleNamespace(acknowledged=True, matched_count=0, upserted_id=None)

    def delete(self, query):
        existing = self.find_one(query)
        if existing is not None:
            del self.documents[existing["_id"]]
        return SimpleNamespace(acknowledged=True, deleted_count=0 if existing is None else 1)


class FakeCollection:
    """Blocking collection double."""

    def __init__(self, store: FakeStore, name: str = "fake"):
        self.store = store
        self.name = name

    def find_one(self, query):
        self.store.record("find_one", query)
        return self.store.find_one(query)

    def find(self, query):
        self.store.record("find", query)
        return iter(self.store.find(query))

    def count_documents(self, query, limit: int = 0):
        self.store.record("count_documents", query)
        return self.store.count(query, limit)

    def insert_one(self, document):
        self.store.record("insert_one", document)
        return self.store.insert(document)

    def insert_many(self, documents):
        self.store.record("insert_many", documents)
        for document in documents:
            self.store.insert(document)
        return SimpleNamespace(acknowledged=True, inserted_ids=[d["_id"] for d in documents])

    def replace_one(self, query, document, upsert=False):
        self.store.record("replace_one", query)
        return self.store.replace(query, document, upsert)

    def delete_one(self, query):
        self.store.record("delete_one", query)
        return self.store.delete(query)


class _FakeAsyncCursor:
    def __init__(self, documents):
        self._documents = documents

    async def to_list(self, length=None):
        return self._documents if length is None else self._documents[:length]


class AsyncFakeCollection:
    """asyncio collection double sharing a FakeStore with the blocking one."""

    def __init__(self, store: FakeStore, name: str = "fake"):
        self.store = store
        self.name = name

    async def find_one(self, query):
        self.store.record("find_one", query)
        return self.store.find_one(query)

    def find(self, query):
        self.store.record("find", query)
        return _FakeAsyncCursor(self.store.find(query))

    async def count_documents(self, query, limit: int = 0):
        self.store.record("count_documents", query)
        return self.store.count(query, limit)

    async def insert_one(self, document):
        self.store.record("insert_one", document)
        return self.store.insert(document)

    async def insert_many(self, documents):
        self.store.record("insert_many", documents)
        for document in documents:
            self.store.insert(document)
        return SimpleNamespace(acknowledged=True, inserted_ids=[d["_id"] for d in documents])

    async def replace_one(self, query, document, upsert=False):
        self.store.record("replace_one", query)
        return self.store.replace(query, document, upsert)

    async def delete_one(self, query):
        self.store.record("delete_one", query)
        return self.store.delete(query)

    async def create_index(self, keys):
        self.store.indexes.append(keys)
        return "_".join(f"{field}_{direction}" for field, direction in keys)


class FlakyCollection(FakeCollection):
    """Fails ``find_one`` with the given errors, in order, before answering."""

    def __init__(self, store: FakeStore, errors):
        super().__init__(store)
        self.errors = list(errors)
        self.attempts = 0

    def find_one(self, query):
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return super().find_one(query)


class FlakyCursorCollection(FakeCollection):
    """Cursors from ``find`` raise the given errors, in order, on their first iteration."""

    def __init__(self, store: FakeStore, errors):
        super().__init__(store)
        self.errors = list(errors)
        self.attempts = 0

    def find(self, query):
        self.attempts += 1
        documents = self.store.find(query)
        error = self.errors.pop(0) if self.errors else None
        self.store.record("find", query)
        return _failing_cursor(documents, error)


def _failing_cursor(documents, error):
    if error is not None:
        raise error
    yield from documents


class FlakyAsyncCollection(AsyncFakeCollection):
    def __init__(self, store: FakeStore, errors):
        super().__init__(store)
        self.errors = list(errors)
        self.attempts = 0

    async def find_one(self, query):
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return await super().find_one(query)


class HangingAsyncCollection(AsyncFakeCollection):
    """``find_one`` never completes on its own; used to test cancellation."""

    def __init__(self, store: FakeStore):
        super().__init__(store)
        self.started = asyncio.Event()

    async def find_one(self, query):
        self.started.set()
        await asyncio.Event().wait()

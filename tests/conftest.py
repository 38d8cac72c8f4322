"""Test config and shared fixtures."""
import pytest
from typing import AsyncGenerator, Optional
from httpx import ASGITransport, AsyncClient

from mongo_repository.repository import Entity, HierarchicalEntity, HierarchicalRepository, Repository
from fakes import AsyncFakeCollection, FakeCollection, FakeStore


class Widget(Entity):
    """Flat entity used by repository tests."""
    name: str
    color: Optional[str] = None


class Node(HierarchicalEntity):
    """Tree entity used by hierarchy tests."""
    name: str


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def repository(store: FakeStore) -> Repository:
    """Widget repository over blocking and async fakes sharing one store."""
    return Repository(
        Widget,
        collection=FakeCollection(store, "widget"),
        async_collection=AsyncFakeCollection(store, "widget"),
    )


@pytest.fixture
def tree_repository(store: FakeStore) -> HierarchicalRepository:
    return HierarchicalRepository(
        Node,
        collection=FakeCollection(store, "node"),
        async_collection=AsyncFakeCollection(store, "node"),
    )


@pytest.fixture
def tree(tree_repository: HierarchicalRepository, store: FakeStore):
    """R -> C1 -> C2, plus a sibling leaf R -> S. Store calls are reset afterwards."""
    root = tree_repository.insert(Node(name="root"))
    c1 = tree_repository.insert(Node(name="c1", parent_id=root.id, level=1))
    c2 = tree_repository.insert(Node(name="c2", parent_id=c1.id, level=2))
    sibling = tree_repository.insert(Node(name="sibling", parent_id=root.id, level=1))
    store.calls.clear()
    return {"root": root, "c1": c1, "c2": c2, "sibling": sibling}


@pytest.fixture
def category_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
async def client(category_store: FakeStore) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with the category repository backed by a fake collection."""
    from main import app
    from apps.catalog.api.router import get_category_repository
    from apps.catalog.repository import CategoryRepository

    def _get_category_repository():
        return CategoryRepository(AsyncFakeCollection(category_store, "categories"))

    app.dependency_overrides[get_category_repository] = _get_category_repository

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

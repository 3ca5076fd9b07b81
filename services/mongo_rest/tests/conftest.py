"""
Shared fixtures: an in-memory stand-in for the async MongoDB client and
helpers that build gateways around it.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import InvalidName
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

from services.mongo_rest.config import MongoRestConfig
from services.mongo_rest.lifecycle import MongoRestGateway
from services.mongo_rest.main import create_app
from services.mongo_rest.services.route_table import build_global_config


def _matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    return all(document.get(key) == value for key, value in (query or {}).items())


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self.documents = list(documents)
        self.modifiers: List[tuple] = []

    def limit(self, count: int) -> "FakeCursor":
        self.modifiers.append(("limit", count))
        self.documents = self.documents[:count] if count else self.documents
        return self

    def skip(self, count: int) -> "FakeCursor":
        self.modifiers.append(("skip", count))
        self.documents = self.documents[count:]
        return self

    def sort(self, field: str, direction: int = 1) -> "FakeCursor":
        self.modifiers.append(("sort", field, direction))
        self.documents.sort(key=lambda d: d.get(field), reverse=direction == -1)
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.documents[:length] if length else list(self.documents)


class FakeCollection:
    def __init__(self):
        self.documents: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []

    def find(self, filter=None, projection=None):
        self.calls.append(("find", filter, projection))
        return FakeCursor([dict(d) for d in self.documents if _matches(d, filter)])

    async def find_one(self, filter=None):
        self.calls.append(("find_one", filter))
        for document in self.documents:
            if _matches(document, filter):
                return dict(document)
        return None

    async def insert_one(self, document):
        self.calls.append(("insert_one", document))
        document.setdefault("_id", ObjectId())
        self.documents.append(dict(document))
        return InsertOneResult(document["_id"], acknowledged=True)

    async def insert_many(self, documents):
        self.calls.append(("insert_many", documents))
        if not isinstance(documents, list) or not documents:
            raise TypeError("documents must be a non-empty list")
        for document in documents:
            document.setdefault("_id", ObjectId())
            self.documents.append(dict(document))
        return InsertManyResult([d["_id"] for d in documents], acknowledged=True)

    async def update_many(self, filter, update):
        self.calls.append(("update_many", filter, update))
        modified = 0
        for document in self.documents:
            if _matches(document, filter):
                document.update(update.get("$set", {}))
                modified += 1
        return UpdateResult(
            {"n": modified, "nModified": modified, "ok": 1.0}, acknowledged=True
        )

    async def delete_many(self, filter):
        self.calls.append(("delete_many", filter))
        kept = [d for d in self.documents if not _matches(d, filter)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return DeleteResult({"n": deleted, "ok": 1.0}, acknowledged=True)

    async def count_documents(self, filter):
        self.calls.append(("count_documents", filter))
        return len([d for d in self.documents if _matches(d, filter)])


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if not name or ".." in name or "$" in name or name.startswith(".") or name.endswith("."):
            raise InvalidName(f"invalid collection name: {name!r}")
        return self.collections.setdefault(name, FakeCollection())


class FakeAdmin:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.delay = 0.0
        self.pings = 0

    async def command(self, name: str):
        self.pings += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return {"ok": 1.0}


class FakeMongoClient:
    def __init__(self, error: Optional[Exception] = None):
        self.databases: Dict[str, FakeDatabase] = {}
        self.admin = FakeAdmin(error)
        self.closed = False
        self.created_with: Optional[tuple] = None

    def __getitem__(self, name: str) -> FakeDatabase:
        if not name or any(char in name for char in " .$/\\\"\x00"):
            raise InvalidName(f"invalid database name: {name!r}")
        return self.databases.setdefault(name, FakeDatabase())

    async def close(self):
        self.closed = True

    def factory(self, uri: str, **options):
        self.created_with = (uri, options)
        return self


@pytest.fixture
def fake_client() -> FakeMongoClient:
    return FakeMongoClient()


@pytest.fixture
def make_gateway(fake_client):
    def _make(document: Optional[Dict[str, Any]] = None, hooks=None, **env) -> MongoRestGateway:
        gateway_config = MongoRestConfig(_env_file=None, **env)
        kwargs = {"hooks": hooks} if hooks is not None else {}
        global_config = build_global_config(document or {}, gateway_config, **kwargs)
        return MongoRestGateway(global_config, client_factory=fake_client.factory, **kwargs)

    return _make


@pytest.fixture
def make_client(make_gateway):
    """Yield-style factory: builds an app at /api and enters its lifespan."""
    clients = []

    def _make(document: Optional[Dict[str, Any]] = None, **env) -> TestClient:
        gateway = make_gateway(document, **env)
        client = TestClient(create_app(gateways=[("/api", gateway)]))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)

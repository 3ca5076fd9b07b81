"""
Where: services/mongo_rest/tests/unit/test_storage.py
What: Tests for the storage adapter's invocation, error mapping and result shapes.
Why: The adapter is the only place that inspects driver objects.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, OperationFailure
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

from services.mongo_rest.core.exceptions import (
    BadArgumentError,
    OperationError,
    StorageConnectionError,
    UnknownOperationError,
)
from services.mongo_rest.models.result import Acknowledgement, Documents
from services.mongo_rest.models.route import ConnectMode
from services.mongo_rest.services.connection import ConnectionManager
from services.mongo_rest.services.storage import (
    StorageAdapter,
    acknowledgement_from,
    normalize_operation_name,
    strip_trailing_absent,
)


@pytest.fixture
def adapter(fake_client):
    connection = ConnectionManager(
        "mongodb://localhost:27017", mode=ConnectMode.LAZY, client_factory=fake_client.factory
    )
    return StorageAdapter(connection)


def _adapter_for(target) -> StorageAdapter:
    connection = MagicMock()
    connection.get_collection = AsyncMock(return_value=target)
    return StorageAdapter(connection)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("find", "find"),
        ("insertMany", "insert_many"),
        ("countDocuments", "count_documents"),
        ("findOneAndUpdate", "find_one_and_update"),
        ("delete_many", "delete_many"),
    ],
)
def test_normalize_operation_name(name, expected):
    assert normalize_operation_name(name) == expected


def test_strip_trailing_absent():
    assert strip_trailing_absent([{"a": 1}, None, None]) == [{"a": 1}]
    assert strip_trailing_absent([None, {"b": 1}]) == [None, {"b": 1}]
    assert strip_trailing_absent([None]) == []


@pytest.mark.asyncio
async def test_invoke_calls_collection_method(adapter, fake_client):
    collection = fake_client["db"]["items"]
    collection.documents = [{"_id": 1, "a": 1}, {"_id": 2, "a": 2}]

    raw = await adapter.invoke("db", "items", "find", [{"a": 2}, None])
    result = await adapter.collect(raw)

    assert collection.calls == [("find", {"a": 2}, None)]
    assert result == Documents(items=[{"_id": 2, "a": 2}])


@pytest.mark.asyncio
async def test_invoke_awaits_coroutine_results(adapter, fake_client):
    raw = await adapter.invoke("db", "items", "insert_many", [[{"a": 1}, {"b": 2}]])
    result = await adapter.collect(raw)

    assert result == Acknowledgement(count=2)
    assert len(fake_client["db"]["items"].documents) == 2


@pytest.mark.asyncio
async def test_invoke_rejects_unknown_operation(adapter, fake_client):
    with pytest.raises(UnknownOperationError):
        await adapter.invoke("db", "items", "drop", [])
    assert fake_client.created_with is None


@pytest.mark.asyncio
async def test_invoke_maps_driver_type_errors_to_bad_argument(adapter):
    with pytest.raises(BadArgumentError) as exc_info:
        await adapter.invoke("db", "items", "insert_many", [{"not": "a list"}])
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_invoke_maps_connection_failures():
    target = MagicMock()
    target.find_one = AsyncMock(side_effect=AutoReconnect("server down"))

    with pytest.raises(StorageConnectionError) as exc_info:
        await _adapter_for(target).invoke("db", "items", "find_one", [{}])
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_invoke_maps_server_failures():
    target = MagicMock()
    target.update_one = AsyncMock(side_effect=OperationFailure("unknown operator: $bogus"))

    with pytest.raises(OperationError) as exc_info:
        await _adapter_for(target).invoke("db", "items", "update_one", [{}, {"$bogus": 1}])
    assert exc_info.value.operation == "update_one"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_collect_maps_cursor_failures():
    cursor = MagicMock()
    cursor.to_list = AsyncMock(side_effect=OperationFailure("cursor killed"))

    with pytest.raises(OperationError):
        await StorageAdapter(MagicMock()).collect(cursor)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, Documents()),
        ({"a": 1}, Documents(items=[{"a": 1}])),
        (["x", "y"], Documents(items=["x", "y"])),
        (3, Documents(items=[3])),
        (True, Acknowledgement(acknowledged=True)),
    ],
)
async def test_collect_shapes(raw, expected):
    assert await StorageAdapter(MagicMock()).collect(raw) == expected


def test_acknowledgement_counts():
    assert acknowledgement_from(InsertOneResult(ObjectId(), True)).count == 1
    assert acknowledgement_from(InsertManyResult([1, 2, 3], True)).count == 3
    assert acknowledgement_from(DeleteResult({"n": 4, "ok": 1.0}, True)).count == 4
    updated = UpdateResult({"n": 2, "nModified": 2, "ok": 1.0}, True)
    assert acknowledgement_from(updated).count == 2
    upserted = UpdateResult({"n": 1, "nModified": 0, "upserted": ObjectId(), "ok": 1.0}, True)
    assert acknowledgement_from(upserted).count == 1
    assert acknowledgement_from("index_name").count == 1


def test_unacknowledged_writes_report_status():
    ack = acknowledgement_from(InsertOneResult(None, False))

    assert ack.acknowledged is False
    assert ack.status == "unacknowledged"
    assert acknowledgement_from(False).status == "unacknowledged"


@pytest.mark.asyncio
@pytest.mark.parametrize("database, collection", [("bad.db", "items"), ("db", "$items")])
async def test_invoke_maps_invalid_names_to_bad_argument(adapter, database, collection):
    with pytest.raises(BadArgumentError) as exc_info:
        await adapter.invoke(database, collection, "find", [])
    assert exc_info.value.status_code == 400

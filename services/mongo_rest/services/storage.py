"""
Storage adapter.

Implements the named-operation call against a MongoDB collection and
normalizes what the driver returns into an OperationResult.
"""

import inspect
import logging
import re
from collections.abc import Mapping
from typing import Any, List

from bson.errors import BSONError
from pymongo.errors import ConnectionFailure, InvalidName, PyMongoError
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

from ..core.exceptions import (
    BadArgumentError,
    OperationError,
    StorageConnectionError,
    UnknownOperationError,
)
from ..models.result import Acknowledgement, Documents, OperationResult
from .connection import ConnectionManager

logger = logging.getLogger("mongo_rest.storage")

# Collection methods reachable by name.
SUPPORTED_OPERATIONS = frozenset(
    {
        "aggregate",
        "count_documents",
        "create_index",
        "delete_many",
        "delete_one",
        "distinct",
        "drop_index",
        "estimated_document_count",
        "find",
        "find_one",
        "find_one_and_delete",
        "find_one_and_replace",
        "find_one_and_update",
        "index_information",
        "insert_many",
        "insert_one",
        "list_indexes",
        "replace_one",
        "update_many",
        "update_one",
    }
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def normalize_operation_name(name: str) -> str:
    """Accept driver-style camelCase names: insertMany -> insert_many."""
    return _CAMEL_BOUNDARY.sub(r"_\1", name.strip()).lower()


def strip_trailing_absent(args: List[Any]) -> List[Any]:
    """Drop trailing None values so the driver applies its own defaults."""
    end = len(args)
    while end and args[end - 1] is None:
        end -= 1
    return list(args[:end])


def acknowledgement_from(raw: Any) -> Acknowledgement:
    if isinstance(raw, bool):
        return Acknowledgement(acknowledged=raw, count=0)
    if isinstance(raw, str):
        return Acknowledgement(count=1)

    acknowledged = getattr(raw, "acknowledged", True)
    if not acknowledged:
        # Counts are unavailable on unacknowledged writes.
        return Acknowledgement(acknowledged=False)
    if isinstance(raw, InsertOneResult):
        return Acknowledgement(count=1)
    if isinstance(raw, InsertManyResult):
        return Acknowledgement(count=len(raw.inserted_ids))
    if isinstance(raw, UpdateResult):
        upserted = 1 if raw.upserted_id is not None else 0
        return Acknowledgement(count=raw.modified_count + upserted)
    if isinstance(raw, DeleteResult):
        return Acknowledgement(count=raw.deleted_count)
    return Acknowledgement()


class StorageAdapter:
    def __init__(self, connection: ConnectionManager):
        self.connection = connection

    async def invoke(self, database: str, collection: str, operation: str, args: List[Any]) -> Any:
        """
        Invoke ``operation`` on ``database.collection`` and return the raw driver result.

        Raises:
            UnknownOperationError: operation is not in SUPPORTED_OPERATIONS
            BadArgumentError: the database or collection name is invalid, or the driver
                rejected the arguments
            StorageConnectionError: the server is unreachable
            OperationError: the server failed the operation
        """
        if operation not in SUPPORTED_OPERATIONS:
            raise UnknownOperationError(operation)

        try:
            target = await self.connection.get_collection(database, collection)
        except InvalidName as e:
            raise BadArgumentError(f"{database}.{collection}", e) from e
        call_args = strip_trailing_absent(args)
        logger.debug(
            f"Invoking {database}.{collection}.{operation}",
            extra={"database": database, "collection": collection, "operation": operation},
        )

        try:
            raw = getattr(target, operation)(*call_args)
            if inspect.isawaitable(raw):
                raw = await raw
        except ConnectionFailure as e:
            raise StorageConnectionError(e) from e
        except PyMongoError as e:
            raise OperationError(operation, e) from e
        except (TypeError, ValueError, BSONError) as e:
            raise BadArgumentError(call_args, e) from e
        return raw

    async def collect(self, raw: Any) -> OperationResult:
        """
        Normalize a (post-hooked) driver result; cursors are drained here.
        """
        if hasattr(raw, "to_list"):
            try:
                items = await raw.to_list(None)
            except ConnectionFailure as e:
                raise StorageConnectionError(e) from e
            except PyMongoError as e:
                raise OperationError("cursor", e) from e
            return Documents(items=items)
        if raw is None:
            return Documents()
        if isinstance(raw, Mapping):
            return Documents(items=[raw])
        if isinstance(raw, list):
            return Documents(items=raw)
        if isinstance(raw, int) and not isinstance(raw, bool):
            # count_documents and estimated_document_count.
            return Documents(items=[raw])
        return acknowledgement_from(raw)

"""
Operation dispatcher.

Runs pre hook -> storage call -> post hook and renders the result.
"""

import logging

from bson import (
    Binary,
    Code,
    DBRef,
    Decimal128,
    MaxKey,
    MinKey,
    ObjectId,
    Regex,
    Timestamp,
    json_util,
)
from bson.json_util import RELAXED_JSON_OPTIONS
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from ..core.hooks import HookKind, HookRegistry
from ..models.context import RequestContext
from ..models.result import Documents, OperationResult
from .storage import StorageAdapter

logger = logging.getLogger("mongo_rest.dispatcher")


def _extended_json(value):
    return json_util.default(value, json_options=RELAXED_JSON_OPTIONS)


# Types without a natural JSON form are written as relaxed Extended JSON.
BSON_ENCODERS = {
    ObjectId: str,
    Decimal128: str,
    Binary: _extended_json,
    bytes: _extended_json,
    Code: _extended_json,
    DBRef: _extended_json,
    MaxKey: _extended_json,
    MinKey: _extended_json,
    Regex: _extended_json,
    Timestamp: _extended_json,
}


def encode_documents(items):
    """Make documents JSON-safe; ObjectId values become their hex strings."""
    return jsonable_encoder(items, custom_encoder=BSON_ENCODERS)


class OperationDispatcher:
    def __init__(self, storage: StorageAdapter, hooks: HookRegistry, ack_body: bool = False):
        """
        Args:
            storage: StorageAdapter instance
            hooks: registry the route's hook names are looked up in
            ack_body: answer mutations with {status, code, count} instead of an empty body
        """
        self.storage = storage
        self.hooks = hooks
        self.ack_body = ack_body

    async def dispatch(self, context: RequestContext) -> Response:
        operation = context.operation
        pre = self.hooks.get(HookKind.PRE, operation.pre)
        post = self.hooks.get(HookKind.POST, operation.post)

        args = pre(list(context.args))
        raw = await self.storage.invoke(
            operation.database, operation.collection, operation.operation, args
        )
        result = await self.storage.collect(post(args, raw))

        logger.info(
            f"{operation.method} -> {operation.database}.{operation.collection}.{operation.operation}",
            extra={
                "database": operation.database,
                "collection": operation.collection,
                "operation": operation.operation,
                "result_kind": result.kind,
            },
        )
        return self.render(result)

    def render(self, result: OperationResult) -> Response:
        if isinstance(result, Documents):
            return JSONResponse(status_code=200, content=encode_documents(result.items))
        if self.ack_body:
            return JSONResponse(
                status_code=200,
                content={"status": result.status, "code": 200, "count": result.count},
            )
        return Response(status_code=200)

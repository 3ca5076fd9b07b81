"""
REST Request Processor - Service Layer

Standardizes the flow: request -> ResolvedOperation -> policy -> arguments -> dispatch.
"""

import copy
import logging
from typing import Any, List

from fastapi.responses import Response

from services.common.core.request_context import get_request_id

from ..core.argument_parser import normalize_arguments, strict_decoder
from ..core.hooks import HookKind, HookRegistry
from ..core.policy import evaluate_policy
from ..core.query_translator import expand_raw_argument, extract_arguments, parse_query_string
from ..models.context import RequestContext, ResolvedOperation
from .dispatcher import OperationDispatcher
from .resolver import OperationResolver

logger = logging.getLogger("mongo_rest.processor")


class RestRequestProcessor:
    """
    Orchestrates the request processing lifecycle.

    Every step before the storage call is synchronous; a policy denial
    returns before any storage access.
    """

    def __init__(
        self, resolver: OperationResolver, dispatcher: OperationDispatcher, hooks: HookRegistry
    ):
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.hooks = hooks

    def build_arguments(self, operation: ResolvedOperation, raw_query: str) -> List[Any]:
        """
        Turn the raw query string into the operation's argument list.

        Raises:
            BadArgumentError: an argument is not well-formed for the parse hook
        """
        if not raw_query:
            # The driver may mutate arguments (insert_* adds _id); never hand out shared config.
            return copy.deepcopy(operation.base_args)

        decode = strict_decoder(self.hooks.get(HookKind.PARSE, operation.parse))
        query = parse_query_string(raw_query)
        if operation.query_key:
            return expand_raw_argument(query, operation.query_key, decode)
        return normalize_arguments(extract_arguments(query, operation.keys), decode)

    async def process(self, method: str, path: str, raw_query: str) -> Response:
        operation = self.resolver.resolve(method, path)

        verdict = evaluate_policy(
            operation.policy, operation.database, operation.collection, operation.operation
        )
        if not verdict.allowed:
            logger.warning(
                f"Access denied for {verdict.dimension} '{verdict.name}'",
                extra={
                    "method": operation.method,
                    "dimension": verdict.dimension,
                    "denied_name": verdict.name,
                    "status": verdict.status_code,
                },
            )
            return Response(status_code=verdict.status_code)

        context = RequestContext(
            operation=operation,
            args=self.build_arguments(operation, raw_query),
            request_id=get_request_id(),
        )
        return await self.dispatcher.dispatch(context)

"""
Operation resolution service.

Computes the effective operation for a request by overlaying, most specific
first: URL path parameters > the method's RouteConfig > global defaults.

Note:
    Path patterns use the same {placeholder} syntax as FastAPI routes but are
    matched here against the path below the router's mount point.
"""

import logging
import re
from typing import Dict

from fastapi import HTTPException

from ..core.exceptions import UnknownOperationError, UnsupportedMethodError
from ..models.context import ResolvedOperation
from ..models.route import AccessPolicy, GlobalConfig, HttpMethod
from .storage import SUPPORTED_OPERATIONS, normalize_operation_name

logger = logging.getLogger("mongo_rest.resolver")

PATH_PARAMETERS = ("database", "collection", "operation")


class OperationResolver:
    def __init__(self, global_config: GlobalConfig):
        """
        Args:
            global_config: immutable route table
        """
        self.global_config = global_config
        self._effective_routes = {
            method: route.overlay(global_config.defaults)
            for method, route in global_config.routes.items()
        }
        self._path_patterns = [
            (pattern, re.compile(self._path_to_regex(pattern)))
            for pattern in (global_config.paths if global_config.path_selection else [])
        ]

    def _path_to_regex(self, path_pattern: str) -> str:
        """
        Convert a path pattern to a regular expression.

        Example: "/{database}/{collection}"
            → "^/(?P<database>[^/]+)/(?P<collection>[^/]+)$"
        """
        regex_pattern = re.sub(r"\{(\w+)\}", r"(?P<\1>[^/]+)", path_pattern.rstrip("/"))
        return f"^{regex_pattern}$"

    def match_path(self, path: str) -> Dict[str, str]:
        """
        Extract database/collection/operation overrides from the sub-path.

        Raises:
            HTTPException: 404 when a non-empty path matches no pattern
        """
        normalized = "/" + path.strip("/")
        if normalized == "/":
            return {}

        for pattern, regex in self._path_patterns:
            match = regex.match(normalized)
            if match:
                logger.debug(f"Path {normalized} matched {pattern}")
                return {k: v for k, v in match.groupdict().items() if k in PATH_PARAMETERS}

        raise HTTPException(status_code=404, detail="Not Found")

    def resolve(self, method: str, path: str = "") -> ResolvedOperation:
        """
        Resolve the operation for an HTTP method and sub-path.

        Raises:
            UnsupportedMethodError: no RouteConfig for the method
            UnknownOperationError: path selected an operation that cannot be invoked
            HTTPException: 404 for unmatched paths
        """
        try:
            http_method = HttpMethod(method.upper())
        except ValueError:
            raise UnsupportedMethodError(method) from None

        route = self._effective_routes.get(http_method)
        if route is None:
            raise UnsupportedMethodError(http_method.value)

        params = self.match_path(path)
        operation = normalize_operation_name(params.get("operation") or route.operation)
        if operation not in SUPPORTED_OPERATIONS:
            raise UnknownOperationError(operation)

        return ResolvedOperation(
            method=http_method.value,
            database=params.get("database") or route.database,
            collection=params.get("collection") or route.collection,
            operation=operation,
            base_args=route.args,
            keys=route.keys,
            query_key=route.query_key,
            parse=route.parse,
            pre=route.pre,
            post=route.post,
            policy=AccessPolicy(allow=route.allow, deny=route.deny, status_code=route.denial_status),
        )

"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .context import RequestContext, ResolvedOperation
from .result import Acknowledgement, Documents, OperationResult
from .route import (
    AccessPolicy,
    ConnectMode,
    GlobalConfig,
    HttpMethod,
    NameLists,
    RouteConfig,
)

__all__ = [
    "AccessPolicy",
    "Acknowledgement",
    "ConnectMode",
    "Documents",
    "GlobalConfig",
    "HttpMethod",
    "NameLists",
    "OperationResult",
    "RequestContext",
    "ResolvedOperation",
    "RouteConfig",
]

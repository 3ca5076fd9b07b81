"""
Services package.

Provides operation resolution, dispatch and storage integration.
"""

from .connection import ConnectionManager
from .dispatcher import OperationDispatcher
from .processor import RestRequestProcessor
from .resolver import OperationResolver
from .route_table import RouteTable
from .storage import StorageAdapter

__all__ = [
    "ConnectionManager",
    "OperationDispatcher",
    "RestRequestProcessor",
    "OperationResolver",
    "RouteTable",
    "StorageAdapter",
]

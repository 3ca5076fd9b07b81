"""
Where: services/mongo_rest/lifecycle.py
What: Gateway assembly and startup/shutdown orchestration for shared resources.
Why: Keep main.py focused on app assembly while preserving lifecycle behavior.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional, Sequence

from fastapi import FastAPI
from pymongo import AsyncMongoClient

from .config import MongoRestConfig
from .core.hooks import HookRegistry, default_hooks
from .models.route import ConnectMode, GlobalConfig
from .services.connection import ConnectionManager
from .services.dispatcher import OperationDispatcher
from .services.processor import RestRequestProcessor
from .services.resolver import OperationResolver
from .services.route_table import RouteTable
from .services.storage import StorageAdapter

logger = logging.getLogger("mongo_rest.main")


class MongoRestGateway:
    """
    Shared resources behind one mounted REST router.

    The GlobalConfig is captured here once; several gateways with different
    route tables can be mounted side by side in one application.
    """

    def __init__(
        self,
        global_config: GlobalConfig,
        hooks: HookRegistry = default_hooks,
        client_factory: Optional[Callable[..., Any]] = None,
    ):
        self.global_config = global_config
        self.hooks = hooks
        self.connection = ConnectionManager(
            global_config.connection,
            global_config.options,
            mode=global_config.connect_mode,
            client_factory=client_factory or AsyncMongoClient,
        )
        self.storage = StorageAdapter(self.connection)
        self.resolver = OperationResolver(global_config)
        self.dispatcher = OperationDispatcher(self.storage, hooks, ack_body=global_config.ack_body)
        self.processor = RestRequestProcessor(self.resolver, self.dispatcher, hooks)

    @classmethod
    def from_config(
        cls,
        gateway_config: MongoRestConfig,
        hooks: HookRegistry = default_hooks,
        client_factory: Optional[Callable[..., Any]] = None,
    ) -> "MongoRestGateway":
        """Load routes.yml and environment defaults, failing fast on bad configuration."""
        global_config = RouteTable(gateway_config, hooks).load()
        return cls(global_config, hooks=hooks, client_factory=client_factory)

    async def startup(self) -> None:
        if self.global_config.connect_mode is ConnectMode.STARTUP:
            await self.connection.connect()

    async def shutdown(self) -> None:
        await self.connection.close()

    @asynccontextmanager
    async def lifespan(self) -> AsyncIterator["MongoRestGateway"]:
        """For applications that mount the router themselves."""
        await self.startup()
        try:
            yield self
        finally:
            await self.shutdown()


@asynccontextmanager
async def manage_lifespan(
    app: FastAPI, gateways: Sequence[MongoRestGateway]
) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    started: List[MongoRestGateway] = []
    try:
        for gateway in gateways:
            await gateway.startup()
            started.append(gateway)

        app.state.gateways = list(gateways)
        logger.info(f"REST gateway initialized with {len(gateways)} route table(s).")
        yield
    finally:
        for gateway in started:
            await gateway.shutdown()
        logger.info("REST gateway shutting down, closing storage connections.")

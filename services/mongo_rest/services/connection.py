"""
Storage connection lifecycle.

Owns the single shared MongoDB client. In ``startup`` mode the client is
created and pinged from the application lifespan so a bad URI fails fast;
in ``lazy`` mode the first request connects and later requests reuse it.
The driver's connection pool multiplexes concurrent operations.
"""

import asyncio
import logging
import re
from typing import Any, Callable, Dict, Optional

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from ..core.exceptions import StorageConnectionError
from ..models.route import ConnectMode

logger = logging.getLogger("mongo_rest.connection")

_CREDENTIALS_PATTERN = re.compile(r"//[^@/]*@")


def redact_uri(uri: str) -> str:
    """Hide credentials in a connection string before it is logged."""
    return _CREDENTIALS_PATTERN.sub("//***@", uri)


class ConnectionManager:
    def __init__(
        self,
        connection: str,
        options: Optional[Dict[str, Any]] = None,
        mode: ConnectMode = ConnectMode.STARTUP,
        client_factory: Callable[..., Any] = AsyncMongoClient,
    ):
        """
        Args:
            connection: MongoDB connection string
            options: extra client keyword arguments (pool size, timeouts, auth)
            mode: when the connection is established
            client_factory: client constructor, AsyncMongoClient by default
        """
        self.connection = connection
        self.options = dict(options or {})
        self.mode = ConnectMode(mode)
        self.client_factory = client_factory
        self._client = None
        self._attempt: Optional[asyncio.Future] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self):
        """
        Create the client and verify the server answers.

        Raises:
            StorageConnectionError: the server could not be reached
        """
        if self._client is not None:
            return self._client

        target = redact_uri(self.connection)
        client = self.client_factory(self.connection, **self.options)
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(
                f"MongoDB connection failed: {target}",
                extra={"error_type": type(e).__name__, "error_detail": str(e)},
            )
            await client.close()
            raise StorageConnectionError(e) from e

        self._client = client
        logger.info(f"Connected to MongoDB at {target}", extra={"mode": self.mode.value})
        return client

    async def get_client(self):
        """
        Return the connected client, connecting first in ``lazy`` mode.

        Concurrent callers share one in-flight attempt; when it fails they all
        receive its StorageConnectionError and the next call starts a new one.
        """
        if self._client is not None:
            return self._client

        if self.mode is ConnectMode.STARTUP:
            raise StorageConnectionError(RuntimeError("connection was not established at startup"))

        if self._attempt is None:
            self._attempt = asyncio.ensure_future(self.connect())
            self._attempt.add_done_callback(self._attempt_finished)
        return await asyncio.shield(self._attempt)

    def _attempt_finished(self, attempt: "asyncio.Future") -> None:
        self._attempt = None
        if not attempt.cancelled():
            # Retrieve the outcome even when every waiter was cancelled.
            attempt.exception()

    async def get_collection(self, database: str, collection: str):
        client = await self.get_client()
        return client[database][collection]

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()
            logger.info("MongoDB connection closed.")

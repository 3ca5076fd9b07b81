"""
Mongo REST Gateway - maps HTTP requests onto MongoDB collection operations

Each mounted router resolves the request's method and sub-path against its
route table, checks the access policy, turns the query string into operation
arguments and answers with the operation's result.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import Response

from .config import MongoRestConfig, config
from .core.logging_config import setup_logging
from .exceptions import register_exception_handlers
from .lifecycle import MongoRestGateway, manage_lifespan
from .middleware import request_logging_middleware
from .models.route import HttpMethod

# Logger setup
setup_logging()
logger = logging.getLogger("mongo_rest.main")


def create_router(gateway: MongoRestGateway, prefix: str = "") -> APIRouter:
    """
    Build a catch-all router bound to one gateway.

    The hosting app must call register_exception_handlers() so mapping errors
    are rendered as client errors, and run gateway.lifespan() (or
    manage_lifespan) to open the storage connection.
    """
    router = APIRouter(prefix=prefix.rstrip("/"))
    methods = [method.value for method in HttpMethod]

    async def handle_request(request: Request) -> Response:
        return await gateway.processor.process(
            request.method, request.path_params.get("path", ""), request.url.query
        )

    router.add_api_route(
        "" if router.prefix else "/", handle_request, methods=methods, include_in_schema=False
    )
    router.add_api_route("/{path:path}", handle_request, methods=methods, include_in_schema=False)
    return router


def create_app(
    gateway_config: MongoRestConfig = config,
    gateways: Optional[Sequence[Tuple[str, MongoRestGateway]]] = None,
) -> FastAPI:
    """
    Build the standalone application.

    Args:
        gateway_config: settings used when ``gateways`` is not given
        gateways: (mount path, gateway) pairs; defaults to one gateway at MOUNT_PATH
    """
    if gateways is None:
        gateways = [(gateway_config.MOUNT_PATH, MongoRestGateway.from_config(gateway_config))]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with manage_lifespan(app, [gateway for _, gateway in gateways]):
            yield

    app = FastAPI(title="Mongo REST Gateway", version="1.0.0", lifespan=lifespan)
    app.middleware("http")(request_logging_middleware)
    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    for prefix, gateway in gateways:
        app.include_router(create_router(gateway, prefix))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    host, _, port = config.UVICORN_BIND_ADDR.rpartition(":")
    uvicorn.run(app, host=host or "0.0.0.0", port=int(port))

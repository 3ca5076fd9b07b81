"""
Custom exception classes.

Represent errors raised while mapping a request onto a collection operation.
"""

import logging
from typing import Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class MongoRestError(Exception):
    """Base exception class for request-to-operation mapping."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ConfigurationError(MongoRestError):
    """Raised at construction time when the route table cannot be built."""


class BadArgumentError(MongoRestError):
    """Raised when a textual argument cannot be decoded."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, value: Any, cause: Optional[Exception] = None):
        self.value = value
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Malformed argument {value!r}{detail}")


class UnsupportedMethodError(MongoRestError):
    """Raised when the HTTP method has no route configuration."""

    status_code = status.HTTP_405_METHOD_NOT_ALLOWED

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Method not supported: {method}")


class StorageConnectionError(MongoRestError):
    """Raised when the storage engine is unreachable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Storage engine unreachable: {cause}")


class OperationError(MongoRestError):
    """Raised when the storage engine rejects or fails an operation."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Operation {operation} failed: {cause}")


class UnknownOperationError(MongoRestError):
    """Raised when the operation name is not an invocable collection operation."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Unknown operation: {operation}")


# ===========================================
# Exception Handlers
# ===========================================


async def mongo_rest_exception_handler(request: Request, exc: MongoRestError):
    """
    Handler for mapping errors. Client errors are logged at WARNING, the rest at ERROR.
    """
    extra = {"path": request.url.path, "method": request.method}
    if exc.status_code < 500:
        logger.warning(f"Request rejected: {exc}", extra=extra)
    else:
        logger.error(f"Request failed: {exc}", exc_info=exc, extra=extra)

    return JSONResponse(
        status_code=exc.status_code,
        content={"message": type(exc).__name__, "detail": str(exc)},
    )


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    error_detail = str(exc)
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error", "detail": error_detail},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for validation errors.
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": "Validation Error", "detail": str(exc.errors())},
    )

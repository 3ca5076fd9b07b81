"""
Route configuration models.

RouteConfig is the per-HTTP-method record read from routes.yml; GlobalConfig is
the immutable, fully defaulted table built once when the gateway is created.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HttpMethod(str, Enum):
    """HTTP methods a route can be configured for."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ConnectMode(str, Enum):
    """When the storage connection is established."""

    STARTUP = "startup"
    LAZY = "lazy"


def _decode_text(value: Any) -> Any:
    # Lists and objects may arrive as JSON text (environment variables, quoted YAML).
    if isinstance(value, str):
        return json.loads(value)
    return value


class NameLists(BaseModel):
    """Allow or deny names per dimension. None means "inherit"."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    database: Optional[List[str]] = None
    collection: Optional[List[str]] = None
    operation: Optional[List[str]] = None

    @field_validator("database", "collection", "operation", mode="before")
    @classmethod
    def decode_lists(cls, value: Any) -> Any:
        return _decode_text(value)

    def overlay(self, fallback: "NameLists") -> "NameLists":
        return NameLists(
            database=self.database if self.database is not None else fallback.database,
            collection=self.collection if self.collection is not None else fallback.collection,
            operation=self.operation if self.operation is not None else fallback.operation,
        )

    def as_sets(self) -> Dict[str, frozenset]:
        return {
            "database": frozenset(self.database or ()),
            "collection": frozenset(self.collection or ()),
            "operation": frozenset(self.operation or ()),
        }


class RouteConfig(BaseModel):
    """
    Operation settings for one HTTP method.

    Every field is optional; unset fields fall back to the global defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    database: Optional[str] = None
    collection: Optional[str] = None
    operation: Optional[str] = None
    args: Optional[List[Any]] = Field(
        default=None, description="Arguments used when the request has no query string"
    )
    keys: Optional[List[str]] = Field(
        default=None, description="Query-string keys mapped to positional arguments"
    )
    query_key: Optional[str] = Field(
        default=None, description="Single query-string key holding all arguments as JSON"
    )
    parse: Optional[str] = None
    pre: Optional[str] = None
    post: Optional[str] = None
    allow: Optional[NameLists] = None
    deny: Optional[NameLists] = None
    denial_status: Optional[int] = None

    @field_validator("args", "keys", "allow", "deny", mode="before")
    @classmethod
    def decode_json_text(cls, value: Any) -> Any:
        return _decode_text(value)

    def overlay(self, fallback: "RouteConfig") -> "RouteConfig":
        """Return a copy where unset fields are taken from ``fallback``."""
        merged = {}
        for name in type(self).model_fields:
            value = getattr(self, name)
            base = getattr(fallback, name)
            if isinstance(value, NameLists) and isinstance(base, NameLists):
                merged[name] = value.overlay(base)
            else:
                merged[name] = value if value is not None else base
        return RouteConfig(**merged)


class AccessPolicy(BaseModel):
    """Effective allow/deny lists for one request."""

    model_config = ConfigDict(frozen=True)

    allow: NameLists = Field(default_factory=NameLists)
    deny: NameLists = Field(default_factory=NameLists)
    status_code: int = 400


class GlobalConfig(BaseModel):
    """
    Process-wide route table.

    Built once at gateway construction and never written to afterwards;
    request handling derives a fresh ResolvedOperation from it instead.
    """

    model_config = ConfigDict(frozen=True)

    connection: str
    options: Dict[str, Any] = Field(default_factory=dict)
    defaults: RouteConfig
    routes: Dict[HttpMethod, RouteConfig]
    path_selection: bool = False
    paths: List[str] = Field(default_factory=list)
    ack_body: bool = False
    connect_mode: ConnectMode = ConnectMode.STARTUP

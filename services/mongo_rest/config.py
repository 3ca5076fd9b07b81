"""
REST gateway configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.

Operation defaults are optional here: an unset value lets routes.yml or the
built-in constants decide (see services/route_table.py).
"""

import sys
from typing import Any, Dict, List, Optional

from pydantic import Field

from services.common.core.config import BaseAppConfig


class MongoRestConfig(BaseAppConfig):
    """
    Configuration management for the REST gateway.
    """

    # Server settings
    UVICORN_BIND_ADDR: str = Field(default="0.0.0.0:8000", description="Listen address")
    MOUNT_PATH: str = Field(default="/api", description="Prefix the REST router is mounted at")

    # Path settings
    ROUTING_CONFIG_PATH: str = Field(
        default="config/routes.yml", description="Route table file path"
    )

    # Storage connection
    MONGODB_CONNECTION: Optional[str] = Field(default=None, description="MongoDB URI")
    MONGODB_OPTIONS: Optional[Dict[str, Any]] = Field(
        default=None, description="Extra MongoClient keyword arguments (JSON object)"
    )

    # Operation defaults
    MONGODB_DATABASE: Optional[str] = Field(default=None, description="Default database")
    MONGODB_COLLECTION: Optional[str] = Field(default=None, description="Default collection")
    MONGODB_OPERATION: Optional[str] = Field(default=None, description="Default operation name")
    REST_KEYS: Optional[List[str]] = Field(
        default=None, description="Query-string keys mapped to positional arguments (JSON list)"
    )
    REST_QUERY_KEY: Optional[str] = Field(
        default=None, description="Single query-string key holding all arguments"
    )
    REST_PARSE: Optional[str] = Field(default=None, description="Parse hook name")
    REST_PRE: Optional[str] = Field(default=None, description="Pre hook name")
    REST_POST: Optional[str] = Field(default=None, description="Post hook name")

    # Access policy
    REST_ALLOW: Optional[Dict[str, List[str]]] = Field(
        default=None, description="Allow lists per dimension (JSON object)"
    )
    REST_DENY: Optional[Dict[str, List[str]]] = Field(
        default=None, description="Deny lists per dimension (JSON object)"
    )
    REST_DENIAL_STATUS: Optional[int] = Field(
        default=None, description="Status code returned on policy denial"
    )

    # Behaviour switches
    REST_PATH_SELECTION: Optional[bool] = Field(
        default=None, description="Select database/collection/operation from the URL path"
    )
    REST_ACK_BODY: Optional[bool] = Field(
        default=None, description="Return a {status, code, count} body for mutations"
    )
    REST_CONNECT_MODE: Optional[str] = Field(
        default=None, description="'startup' connects in lifespan, 'lazy' on first request"
    )

    # model_config is inherited


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = MongoRestConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise

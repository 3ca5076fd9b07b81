"""
Route table loader.

Loads routes.yml and merges it with environment defaults and built-in
constants into a single immutable GlobalConfig.

Precedence for every field: routes.<METHOD> > defaults (routes.yml) >
environment > built-in constant. Path parameters override all of these at
request time (see resolver.py).
"""

import logging
import os
import string
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..config import MongoRestConfig
from ..core.exceptions import ConfigurationError
from ..core.hooks import HookKind, HookRegistry, default_hooks
from ..models.route import ConnectMode, GlobalConfig, HttpMethod, NameLists, RouteConfig
from .storage import SUPPORTED_OPERATIONS, normalize_operation_name

logger = logging.getLogger("mongo_rest.route_table")

BUILTIN_CONNECTION = "mongodb://localhost:27017"

BUILTIN_DEFAULTS = RouteConfig(
    database="test",
    collection="test",
    operation="find",
    args=[],
    keys=["query", "projection"],
    parse="json",
    pre="identity",
    post="identity",
    allow=NameLists(database=[], collection=[], operation=[]),
    deny=NameLists(database=[], collection=[], operation=[]),
    denial_status=400,
)

# Read-only unless routes.yml says otherwise.
BUILTIN_ROUTES = {HttpMethod.GET: RouteConfig()}

DEFAULT_PATHS = [
    "/{collection}",
    "/{database}/{collection}",
    "/{database}/{collection}/{operation}",
]

# Denied by default once clients can pick the database from the URL.
SYSTEM_DATABASES = ["admin", "local", "config"]


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _environment_defaults(config: MongoRestConfig) -> RouteConfig:
    return RouteConfig(
        database=config.MONGODB_DATABASE,
        collection=config.MONGODB_COLLECTION,
        operation=config.MONGODB_OPERATION,
        keys=config.REST_KEYS,
        query_key=config.REST_QUERY_KEY,
        parse=config.REST_PARSE,
        pre=config.REST_PRE,
        post=config.REST_POST,
        allow=config.REST_ALLOW,
        deny=config.REST_DENY,
        denial_status=config.REST_DENIAL_STATUS,
    )


def _normalize_operations(route: RouteConfig) -> RouteConfig:
    update = {}
    if route.operation is not None:
        operation = normalize_operation_name(route.operation)
        if operation not in SUPPORTED_OPERATIONS:
            raise ConfigurationError(f"Unknown operation in route table: {route.operation}")
        update["operation"] = operation
    for field in ("allow", "deny"):
        lists = getattr(route, field)
        if lists is not None and lists.operation is not None:
            names = [normalize_operation_name(name) for name in lists.operation]
            update[field] = lists.model_copy(update={"operation": names})
    return route.model_copy(update=update)


def _validate_hooks(route: RouteConfig, hooks: HookRegistry) -> None:
    hooks.get(HookKind.PARSE, route.parse)
    hooks.get(HookKind.PRE, route.pre)
    hooks.get(HookKind.POST, route.post)


def build_global_config(
    document: Dict[str, Any],
    config: MongoRestConfig,
    hooks: HookRegistry = default_hooks,
) -> GlobalConfig:
    """
    Build the GlobalConfig from a parsed routes.yml document.

    Raises:
        ConfigurationError: invalid fields, unknown methods, operations or hooks
    """
    mongodb = document.get("mongodb") or {}
    try:
        file_defaults = RouteConfig.model_validate(document.get("defaults") or {})
        environment_defaults = _environment_defaults(config)
        if "routes" in document:
            routes = {
                HttpMethod(str(method).upper()): RouteConfig.model_validate(route or {})
                for method, route in (document.get("routes") or {}).items()
            }
        else:
            routes = dict(BUILTIN_ROUTES)
        connect_mode = ConnectMode(
            _first(document.get("connect_mode"), config.REST_CONNECT_MODE, ConnectMode.STARTUP)
        )
    except (ValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid route table: {e}") from e

    path_selection = bool(_first(document.get("path_selection"), config.REST_PATH_SELECTION, False))

    defaults = file_defaults.overlay(environment_defaults)
    if path_selection:
        deny = defaults.deny or NameLists()
        if deny.database is None:
            defaults = defaults.model_copy(
                update={"deny": deny.model_copy(update={"database": list(SYSTEM_DATABASES)})}
            )
    defaults = _normalize_operations(defaults.overlay(BUILTIN_DEFAULTS))
    routes = {method: _normalize_operations(route) for method, route in routes.items()}

    _validate_hooks(defaults, hooks)
    for route in routes.values():
        _validate_hooks(route.overlay(defaults), hooks)

    try:
        return GlobalConfig(
            connection=_first(
                mongodb.get("connection"), config.MONGODB_CONNECTION, BUILTIN_CONNECTION
            ),
            options=_first(mongodb.get("options"), config.MONGODB_OPTIONS, {}),
            defaults=defaults,
            routes=routes,
            path_selection=path_selection,
            paths=_first(document.get("paths"), DEFAULT_PATHS if path_selection else []),
            ack_body=bool(_first(document.get("ack_body"), config.REST_ACK_BODY, False)),
            connect_mode=connect_mode,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid route table: {e}") from e


class RouteTable:
    def __init__(self, config: MongoRestConfig, hooks: HookRegistry = default_hooks):
        """
        Args:
            config: MongoRestConfig instance
            hooks: registry used to validate hook names
        """
        self.config = config
        self.hooks = hooks
        self.config_path = config.ROUTING_CONFIG_PATH
        self._global_config: Optional[GlobalConfig] = None

    def load_routing_config(self) -> Dict[str, Any]:
        """
        Read routes.yml with ${VAR} environment substitution.

        A missing file yields an empty document; a malformed one is fatal.
        """
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                template = string.Template(f.read())
                content = template.safe_substitute(os.environ.copy())
                document = yaml.safe_load(content) or {}
        except FileNotFoundError:
            logger.warning(f"Route table not found at {self.config_path}, using defaults")
            return {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing route table {self.config_path}: {e}") from e

        if not isinstance(document, dict):
            raise ConfigurationError(f"Route table {self.config_path} must be a mapping")
        return document

    def load(self) -> GlobalConfig:
        document = self.load_routing_config()
        self._global_config = build_global_config(document, self.config, self.hooks)
        logger.info(
            f"Loaded {len(self._global_config.routes)} routes from {self.config_path}",
            extra={"methods": [method.value for method in self._global_config.routes]},
        )
        return self._global_config

    @property
    def global_config(self) -> GlobalConfig:
        if self._global_config is None:
            return self.load()
        return self._global_config

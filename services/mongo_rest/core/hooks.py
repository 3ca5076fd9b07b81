"""
Named hook registry.

Routes refer to parse, pre and post hooks by name instead of embedding code.
A name may carry colon-separated parameters for hooks registered as factories,
e.g. ``limit:100`` or ``sort:created_at:-1``.

Hook signatures:
    parse(text) -> value        decodes one textual argument
    pre(args) -> args           rewrites the argument list before invocation
    post(args, result) -> result   rewrites the raw driver result
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List

from bson import json_util

from .exceptions import ConfigurationError

logger = logging.getLogger("mongo_rest.hooks")


class HookKind(str, Enum):
    PARSE = "parse"
    PRE = "pre"
    POST = "post"


class HookRegistry:
    def __init__(self):
        self._hooks: Dict[HookKind, Dict[str, Callable]] = {kind: {} for kind in HookKind}
        self._factories: Dict[HookKind, Dict[str, Callable[..., Callable]]] = {
            kind: {} for kind in HookKind
        }

    def register(self, kind: HookKind, name: str, func: Callable = None):
        """
        Register a hook under ``name``. Usable as a decorator when ``func`` is omitted.
        """
        if func is None:
            return lambda f: self.register(kind, name, f)
        self._hooks[HookKind(kind)][name] = func
        return func

    def register_factory(self, kind: HookKind, name: str, factory: Callable = None):
        """
        Register a factory called with the string parameters following ``name:``.
        """
        if factory is None:
            return lambda f: self.register_factory(kind, name, f)
        self._factories[HookKind(kind)][name] = factory
        return factory

    def get(self, kind: HookKind, spec: str) -> Callable:
        """
        Resolve a hook spec to a callable.

        Raises:
            ConfigurationError: unknown name or invalid parameters
        """
        kind = HookKind(kind)
        if spec in self._hooks[kind]:
            return self._hooks[kind][spec]

        name, _, params = spec.partition(":")
        factory = self._factories[kind].get(name)
        if factory is None:
            raise ConfigurationError(
                f"Unknown {kind.value} hook: {spec} (available: {', '.join(self.names(kind))})"
            )
        try:
            return factory(*params.split(":")) if params else factory()
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid {kind.value} hook {spec!r}: {e}") from e

    def names(self, kind: HookKind) -> List[str]:
        kind = HookKind(kind)
        return sorted(set(self._hooks[kind]) | {f"{n}:" for n in self._factories[kind]})


def parse_extended_json(text: str) -> Any:
    """Decode MongoDB Extended JSON ({"$oid": ...}, {"$date": ...} are converted)."""
    return json_util.loads(text)


def _cursor_modifier(method: str, *values: Any) -> Callable:
    def post(args: List[Any], result: Any) -> Any:
        # Only cursors can be narrowed; acknowledgements pass through unchanged.
        modifier = getattr(result, method, None)
        if modifier is None:
            return result
        return modifier(*values)

    return post


def _limit(count: str) -> Callable:
    return _cursor_modifier("limit", int(count))


def _skip(count: str) -> Callable:
    return _cursor_modifier("skip", int(count))


def _sort(field: str, direction: str = "1") -> Callable:
    direction = int(direction)
    if direction not in (1, -1):
        raise ValueError("sort direction must be 1 or -1")
    return _cursor_modifier("sort", field, direction)


def build_default_registry() -> HookRegistry:
    registry = HookRegistry()
    registry.register(HookKind.PARSE, "json", parse_extended_json)
    registry.register(HookKind.PARSE, "text", lambda text: text)
    registry.register(HookKind.PRE, "identity", lambda args: args)
    registry.register(HookKind.POST, "identity", lambda args, result: result)
    registry.register_factory(HookKind.POST, "limit", _limit)
    registry.register_factory(HookKind.POST, "skip", _skip)
    registry.register_factory(HookKind.POST, "sort", _sort)
    return registry


default_hooks = build_default_registry()

"""
Query-string translation.

Turns the URL query string into the positional argument list of an operation.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Sequence
from urllib.parse import parse_qsl

from .exceptions import BadArgumentError

_BRACKET_PATTERN = re.compile(r"\[([^\[\]]*)\]")


def parse_query_string(raw_query: str) -> Dict[str, Any]:
    """
    Parse a raw query string into a mapping.

    Bracket notation builds nested mappings and repeated keys become lists:
        "a[b]=1&a[c]=2" -> {"a": {"b": "1", "c": "2"}}
        "x=1&x=2" / "x[]=1&x[]=2" -> {"x": ["1", "2"]}

    Raises:
        BadArgumentError: a key is used both as a value and as a mapping ("a=1&a[b]=2")
    """
    parsed: Dict[str, Any] = {}
    for name, value in parse_qsl(raw_query, keep_blank_values=True):
        head, bracket, tail = name.partition("[")
        path = [head]
        if bracket:
            segments = _BRACKET_PATTERN.findall(bracket + tail)
            path = [head] + segments if segments else [name]
        _assign(parsed, path, value, name)
    return parsed


def _conflict(name: str, key: str) -> BadArgumentError:
    return BadArgumentError(name, ValueError(f"'{key}' is used both as a value and as a mapping"))


def _assign(target: Dict[str, Any], path: List[str], value: str, name: str) -> None:
    last = len(path) - 1
    for index, part in enumerate(path[:-1]):
        if index + 1 == last and path[last] == "":
            _append(target, part, value, name)
            return
        node = target.get(part)
        if node is None:
            node = target[part] = {}
        elif not isinstance(node, dict):
            raise _conflict(name, part)
        target = node

    leaf = path[last]
    if leaf in target:
        _append(target, leaf, value, name)
    else:
        target[leaf] = value


def _append(target: Dict[str, Any], key: str, value: str, name: str) -> None:
    existing = target.get(key)
    if existing is None:
        target[key] = [value]
    elif isinstance(existing, dict):
        raise _conflict(name, key)
    elif isinstance(existing, list):
        existing.append(value)
    else:
        target[key] = [existing, value]


def extract_arguments(query: Mapping[str, Any], keys: Sequence[str]) -> List[Any]:
    """
    Build [query[k1], ..., query[kn]]; a missing key leaves None in its position.
    """
    return [query.get(key) for key in keys]


def expand_raw_argument(
    query: Mapping[str, Any], query_key: str, decode: Callable[[Any], Any]
) -> List[Any]:
    """
    Read every argument from the single key ``query_key``.

    The value is decoded and, when it is a list, spliced in as multiple
    positional arguments; any other value becomes a one-element list.
    """
    if query_key not in query:
        return []
    value = decode(query[query_key])
    if isinstance(value, list):
        return value
    return [value]

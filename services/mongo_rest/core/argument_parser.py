"""
Argument normalization.

String arguments are decoded into structured values with the route's parse
hook; anything already structured passes through untouched.
"""

from typing import Any, Callable, List

from bson.errors import BSONError

from .exceptions import BadArgumentError

Decoder = Callable[[str], Any]


def decode_argument(value: Any, decode: Decoder) -> Any:
    """
    Decode one argument.

    Raises:
        BadArgumentError: the text is not well-formed for ``decode``
    """
    if not isinstance(value, str):
        return value
    try:
        return decode(value)
    except (ValueError, TypeError, BSONError) as e:
        raise BadArgumentError(value, e) from e


def normalize_arguments(args: List[Any], decode: Decoder) -> List[Any]:
    return [decode_argument(value, decode) for value in args]


def strict_decoder(decode: Decoder) -> Decoder:
    """
    Wrap ``decode`` so it raises BadArgumentError instead of parser-specific errors.
    """

    def wrapper(value: Any) -> Any:
        return decode_argument(value, decode)

    return wrapper

"""
Core logic package.

Provides the pure request-mapping steps: query translation, argument
normalization, access policy and hooks.
"""

from .argument_parser import normalize_arguments
from .hooks import HookKind, HookRegistry, default_hooks
from .policy import PolicyVerdict, evaluate_policy
from .query_translator import expand_raw_argument, extract_arguments, parse_query_string

__all__ = [
    "normalize_arguments",
    "HookKind",
    "HookRegistry",
    "default_hooks",
    "PolicyVerdict",
    "evaluate_policy",
    "expand_raw_argument",
    "extract_arguments",
    "parse_query_string",
]

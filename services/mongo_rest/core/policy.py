"""
Access policy evaluation.

Each of database, collection and operation name is checked independently:
a name on the deny list is always refused, and a non-empty allow list admits
only the names it contains.
"""

from typing import Iterable, NamedTuple, Optional

from ..models.route import AccessPolicy

DIMENSIONS = ("database", "collection", "operation")


class PolicyVerdict(NamedTuple):
    allowed: bool
    status_code: int = 200
    dimension: Optional[str] = None
    name: Optional[str] = None


def is_permitted(name: str, allow: Iterable[str], deny: Iterable[str]) -> bool:
    allow = frozenset(allow)
    if name in frozenset(deny):
        return False
    return not allow or name in allow


def evaluate_policy(
    policy: AccessPolicy, database: str, collection: str, operation: str
) -> PolicyVerdict:
    """
    Evaluate all three dimensions; the first violation in DIMENSIONS order is reported.
    """
    names = {"database": database, "collection": collection, "operation": operation}
    allow = policy.allow.as_sets()
    deny = policy.deny.as_sets()

    violations = [
        dimension
        for dimension in DIMENSIONS
        if not is_permitted(names[dimension], allow[dimension], deny[dimension])
    ]
    if not violations:
        return PolicyVerdict(allowed=True)

    dimension = violations[0]
    return PolicyVerdict(
        allowed=False,
        status_code=policy.status_code,
        dimension=dimension,
        name=names[dimension],
    )

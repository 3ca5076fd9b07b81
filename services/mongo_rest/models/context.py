"""
Request context models.

Request-scoped values derived from GlobalConfig and the incoming request.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .route import AccessPolicy


class ResolvedOperation(BaseModel):
    """
    Effective operation settings for one request, after overlaying the path
    parameters, the method's RouteConfig and the global defaults.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    database: str
    collection: str
    operation: str
    base_args: List[Any] = Field(default_factory=list)
    keys: List[str] = Field(default_factory=list)
    query_key: Optional[str] = None
    parse: str = "json"
    pre: str = "identity"
    post: str = "identity"
    policy: AccessPolicy = Field(default_factory=AccessPolicy)


class RequestContext(BaseModel):
    """
    Everything the dispatcher needs to run one operation.
    """

    operation: ResolvedOperation
    args: List[Any] = Field(default_factory=list)
    request_id: Optional[str] = None

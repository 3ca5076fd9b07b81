"""
Operation result models.

The storage adapter normalizes whatever the driver returned into one of these.
"""

from typing import Any, List, Literal, Union

from pydantic import BaseModel, Field


class Documents(BaseModel):
    """Fully drained document sequence (read-shaped operations)."""

    kind: Literal["documents"] = "documents"
    items: List[Any] = Field(default_factory=list)


class Acknowledgement(BaseModel):
    """Status of a mutation-shaped operation."""

    kind: Literal["acknowledgement"] = "acknowledgement"
    acknowledged: bool = True
    count: int = 0

    @property
    def status(self) -> str:
        return "ok" if self.acknowledged else "unacknowledged"


OperationResult = Union[Documents, Acknowledgement]

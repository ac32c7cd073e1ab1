"""Per-query result type for metadata facets."""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class FacetResult(BaseModel, Generic[T]):
    """Outcome of one metadata query.

    ``value`` holds whatever was collected, which is partial (or empty)
    when ``error`` is set.
    """

    facet: str
    value: T
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def failed(self) -> bool:
        """True when the query raised before completing."""
        return self.error is not None

    @classmethod
    def success(cls, facet: str, value) -> "FacetResult":
        """Build a completed result."""
        return cls(facet=facet, value=value)

    @classmethod
    def failure(cls, facet: str, value, error: BaseException) -> "FacetResult":
        """Build a failed result carrying the partial value."""
        return cls(facet=facet, value=value, error=f"{type(error).__name__}: {error}")

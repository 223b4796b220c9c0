"""Ranker protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import DocumentRecord


@runtime_checkable
class RankerProtocol(Protocol):
    """Protocol for relevance ranking."""

    def rank(self, records: list[DocumentRecord], query: str) -> list[DocumentRecord]:
        """Reorder records by relevance to the query.

        Args:
            records: Already filtered candidates.
            query: User query.

        Returns:
            A permutation of records; nothing is dropped.
        """
        ...

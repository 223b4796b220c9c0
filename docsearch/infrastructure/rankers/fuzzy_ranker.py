import logging

from rapidfuzz import fuzz

from docsearch.core.models.document import DocumentRecord

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = {
    "text_content": 0.7,
    "file_name": 0.2,
    "title": 0.15,
    "author": 0.1,
}


class RapidFuzzRanker:
    """Weighted fuzzy ranker over record fields."""

    def __init__(
        self,
        weights: dict[str, float] | None = None,
        score_cutoff: float = 80.0,
    ):
        """Initialize ranker.

        Args:
            weights: Record attribute -> weight.
            score_cutoff: Minimum 0-100 similarity for a field to count.
        """
        self._weights = dict(weights or DEFAULT_WEIGHTS)
        self._score_cutoff = score_cutoff

    def score(self, record: DocumentRecord, query: str) -> float:
        """Weighted similarity of a record, 0 when no field passes the cutoff."""
        needle = query.lower()
        total = 0.0
        for attr, weight in self._weights.items():
            value = getattr(record, attr, None)
            if not value:
                continue
            similarity = fuzz.partial_ratio(
                needle, str(value).lower(), score_cutoff=self._score_cutoff
            )
            total += weight * similarity / 100
        return total

    def rank(self, records: list[DocumentRecord], query: str) -> list[DocumentRecord]:
        """Hits by score (stable), then the rest in their original order."""
        if not records:
            return records

        scored = [(self.score(r, query), r) for r in records]
        hits = [(s, r) for s, r in scored if s > 0]

        if not hits:
            logger.info(f"Ranker: no fuzzy hits for {query!r}, keeping filter order")
            return list(records)

        hits.sort(key=lambda pair: pair[0], reverse=True)
        rest = [r for s, r in scored if s <= 0]

        logger.debug(f"Ranker: {len(hits)} hits, {len(rest)} unranked")
        return [r for _, r in hits] + rest

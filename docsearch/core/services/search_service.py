"""Search service - fetch, hydrate, filter, rank and highlight documents."""

import asyncio
import logging
import math
from typing import Optional

from ..models.document import DocumentRecord, MatchMode, SearchField, SearchResult, Suggestion
from ..protocols.blob_store import BlobStoreProtocol
from ..protocols.document_store import DocumentStoreProtocol
from ..protocols.ranker import RankerProtocol
from ..strategies.matching import MatchStrategy, get_strategy
from ..text.segmentation import fold_case, has_alphanumeric

logger = logging.getLogger(__name__)


def _field_values(record: DocumentRecord, field: SearchField) -> list[Optional[str]]:
    if field is SearchField.CONTENT:
        return [record.text_content]
    if field is SearchField.FILE_NAME:
        return [record.file_name]
    if field is SearchField.AUTHOR:
        return [record.author]
    return [record.text_content, record.file_name, record.author, record.title]


def estimate_page(match_percent: int, page_count: Optional[int]) -> Optional[int]:
    """Page a match falls on, assuming text is spread evenly over pages."""
    if not page_count:
        return None
    return min(page_count, max(1, math.ceil(match_percent / 100 * page_count)))


class SearchService:
    """Search over the document collection with sentence-aware matching."""

    def __init__(
        self,
        document_store: DocumentStoreProtocol,
        blob_store: BlobStoreProtocol,
        ranker: RankerProtocol,
        snippet_radius: int = 220,
        max_results: int = 100,
        suggestion_limit: int = 5,
        escape_html: bool = True,
        order_field: str = "uploadedAt",
    ):
        """Initialize search service.

        Args:
            document_store: Document metadata collection.
            blob_store: Storage holding extracted text payloads.
            ranker: Relevance ranker.
            snippet_radius: Characters of context on each side of a match.
            max_results: Maximum number of results returned.
            suggestion_limit: Maximum number of suggestions returned.
            escape_html: Escape field text before adding highlight markup.
            order_field: Collection field the corpus is sorted by (newest first).
        """
        self._document_store = document_store
        self._blob_store = blob_store
        self._ranker = ranker
        self._snippet_radius = snippet_radius
        self._max_results = max_results
        self._suggestion_limit = suggestion_limit
        self._escape_html = escape_html
        self._order_field = order_field

    async def search(
        self,
        query: str,
        mode: MatchMode | str = MatchMode.CONTAINS,
        field: SearchField | str = SearchField.ALL,
    ) -> list[SearchResult]:
        """Search documents.

        Args:
            query: Raw user query.
            mode: Match mode.
            field: Which record fields the query is matched against.

        Returns:
            Ranked and highlighted results, at most ``max_results``.

        Raises:
            DocumentStoreError: If the corpus cannot be fetched.
        """
        q = (query or "").strip()
        if not q or not has_alphanumeric(q):
            return []

        strategy = get_strategy(mode)
        field = SearchField(field)

        records = await self._fetch_corpus()
        await self._hydrate(records)

        candidates = [
            r for r in records
            if any(strategy.matches(value, q) for value in _field_values(r, field))
        ]
        ordered = self._rank(candidates, q)
        results = [self._enrich(r, q, strategy) for r in ordered[:self._max_results]]

        logger.info(
            f"Search: {len(results)} results ({len(candidates)} candidates of "
            f"{len(records)}) for '{q[:50]}' [{strategy.mode.value}/{field.value}]"
        )
        return results

    async def suggest(self, partial: str) -> list[Suggestion]:
        """Autocomplete on file names.

        Args:
            partial: Partially typed query.

        Returns:
            File names containing the input, newest first.
        """
        q = (partial or "").strip()
        if not q:
            return []

        strategy = get_strategy(MatchMode.CONTAINS)
        records = await self._fetch_corpus()
        return [
            Suggestion(suggestion=r.file_name)
            for r in records
            if strategy.matches(r.file_name, q)
        ][:self._suggestion_limit]

    async def advanced_search(
        self,
        query: str = "",
        file_type: str = "",
        author: str = "",
        mode: MatchMode | str = MatchMode.CONTAINS,
        field: SearchField | str = SearchField.ALL,
    ) -> list[SearchResult]:
        """Search (or list, without a query) narrowed by file type and author."""
        if query and query.strip():
            results = await self.search(query, mode, field)
        else:
            results = [SearchResult(document=r) for r in await self._fetch_corpus()]

        if file_type:
            needle = fold_case(file_type)
            results = [r for r in results if needle in r.document.file_extension]
        if author:
            needle = fold_case(author)
            results = [r for r in results if needle in fold_case(r.document.author or "")]

        return results[:self._max_results]

    async def _fetch_corpus(self) -> list[DocumentRecord]:
        records = await self._document_store.list_documents(
            order_by=self._order_field, descending=True
        )
        logger.debug(f"Search: corpus has {len(records)} records")
        return records

    async def _hydrate(self, records: list[DocumentRecord]) -> None:
        """Load stored text for records that only carry a pointer to it."""
        pending = [r for r in records if not r.text_content and r.text_content_storage_path]
        if not pending:
            return

        await asyncio.gather(*(self._hydrate_one(r) for r in pending))

    async def _hydrate_one(self, record: DocumentRecord) -> None:
        try:
            url = await self._blob_store.get_download_url(record.text_content_storage_path)
            record.text_content = await self._blob_store.fetch_text(url) or ""
        except Exception as e:
            logger.warning(
                f"Search: could not load text for {record.id} "
                f"({record.text_content_storage_path}): {e}"
            )

    def _rank(self, candidates: list[DocumentRecord], query: str) -> list[DocumentRecord]:
        if not candidates:
            return candidates

        ranked = self._ranker.rank(candidates, query)
        if not ranked:
            # ranker found nothing relevant; keep the filtered order
            return candidates
        return ranked

    def _enrich(self, record: DocumentRecord, query: str, strategy: MatchStrategy) -> SearchResult:
        escape = self._escape_html
        result = SearchResult(
            document=record,
            highlighted_file_name=strategy.highlight(record.file_name, query, escape),
            highlighted_author=strategy.highlight(record.author, query, escape),
        )

        info = strategy.locate(record.text_content, query, self._snippet_radius, escape)
        if info is None:
            return result

        result.highlighted_content = info.highlighted_snippet
        result.highlighted_full_content = strategy.highlight(record.text_content, query, escape)
        result.match_index = info.index
        result.match_percent = info.match_percent
        result.estimated_page = estimate_page(info.match_percent, record.page_count)
        return result

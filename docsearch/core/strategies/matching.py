import logging
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from ..models.document import MatchInfo, MatchMode
from ..text.highlight import find_matches, highlight_all, highlight_ranges, render_snippet
from ..text.segmentation import (
    fold_case,
    fold_with_offsets,
    source_span,
    split_into_sentences,
    strip_leading_punctuation,
    strip_trailing_punctuation,
)

logger = logging.getLogger(__name__)

DEFAULT_SNIPPET_RADIUS = 220


class MatchStrategy(ABC):
    """Base class for match modes.

    Every mode reduces to ``find_spans``; the predicate, the locator and the
    whole-field highlighter all read from it so they cannot disagree.
    """

    mode: MatchMode

    @abstractmethod
    def find_spans(self, text: str, query: str) -> Iterator[tuple[int, int]]:
        """Yield [start, end) offsets of matches in document order."""
        ...

    def matches(self, text: Optional[str], query: str) -> bool:
        if not text or not query or not query.strip():
            return False
        return next(self.find_spans(text, query), None) is not None

    def locate(
        self,
        text: Optional[str],
        query: str,
        radius: int = DEFAULT_SNIPPET_RADIUS,
        escape: bool = True,
    ) -> Optional[MatchInfo]:
        """Locate the first match and build its preview window."""
        if not text or not query or not query.strip():
            return None

        span = next(self.find_spans(text, query), None)
        if span is None:
            return None

        index, end = span
        length = end - index
        snippet, highlighted = render_snippet(text, index, length, radius, escape)
        return MatchInfo(
            index=index,
            length=length,
            match_percent=_percent(index, len(text)),
            snippet=snippet,
            highlighted_snippet=highlighted,
        )

    def highlight(self, text: Optional[str], query: str, escape: bool = True) -> Optional[str]:
        """Wrap every match in the field."""
        if not text or not query:
            return text
        return highlight_ranges(text, self.find_spans(text, query), escape)


class ContainsStrategy(MatchStrategy):
    """Unanchored case-insensitive substring."""

    mode = MatchMode.CONTAINS

    def find_spans(self, text: str, query: str) -> Iterator[tuple[int, int]]:
        yield from find_matches(text, query)

    def highlight(self, text: Optional[str], query: str, escape: bool = True) -> Optional[str]:
        return highlight_all(text, query, escape)


class StartsWithStrategy(MatchStrategy):
    """Query begins a sentence, ignoring leading punctuation."""

    mode = MatchMode.STARTS_WITH

    def find_spans(self, text: str, query: str) -> Iterator[tuple[int, int]]:
        folded_query = fold_case(query)
        for sentence in split_into_sentences(text):
            trimmed = strip_leading_punctuation(sentence.text)
            folded, offsets = fold_with_offsets(trimmed)
            if folded_query and folded.startswith(folded_query):
                start, end = source_span(offsets, 0, len(folded_query))
                base = sentence.start + len(sentence.text) - len(trimmed)
                yield base + start, base + end


class EndsWithStrategy(MatchStrategy):
    """Query ends a sentence, ignoring trailing punctuation."""

    mode = MatchMode.ENDS_WITH

    def find_spans(self, text: str, query: str) -> Iterator[tuple[int, int]]:
        folded_query = fold_case(query)
        for sentence in split_into_sentences(text):
            trimmed = strip_trailing_punctuation(sentence.text)
            folded, offsets = fold_with_offsets(trimmed)
            if folded_query and folded.endswith(folded_query):
                start, end = source_span(offsets, len(folded) - len(folded_query), len(folded))
                yield sentence.start + start, sentence.start + end


_STRATEGIES: dict[MatchMode, MatchStrategy] = {
    MatchMode.CONTAINS: ContainsStrategy(),
    MatchMode.STARTS_WITH: StartsWithStrategy(),
    MatchMode.ENDS_WITH: EndsWithStrategy(),
}


def get_strategy(mode: MatchMode | str) -> MatchStrategy:
    """Resolve a match mode (enum or its string value)."""
    return _STRATEGIES[MatchMode(mode)]


def matches(value: Optional[str], query: str, mode: MatchMode | str = MatchMode.CONTAINS) -> bool:
    return get_strategy(mode).matches(value, query)


def locate(
    text: Optional[str],
    query: str,
    mode: MatchMode | str = MatchMode.CONTAINS,
    radius: int = DEFAULT_SNIPPET_RADIUS,
    escape: bool = True,
) -> Optional[MatchInfo]:
    return get_strategy(mode).locate(text, query, radius=radius, escape=escape)


def highlight_field(
    text: Optional[str],
    query: str,
    mode: MatchMode | str = MatchMode.CONTAINS,
    escape: bool = True,
) -> Optional[str]:
    return get_strategy(mode).highlight(text, query, escape=escape)


def _percent(index: int, total: int) -> int:
    if total <= 0:
        return 0
    # half-up, not banker's rounding
    return int(index / total * 100 + 0.5)

"""Highlight markup rendering."""

import html
import re
from typing import Iterable

from .segmentation import fold_case, fold_with_offsets, source_span

HIGHLIGHT_OPEN = '<mark class="search-highlight">'
HIGHLIGHT_CLOSE = "</mark>"
ELLIPSIS = "…"

# Already-rendered marker with plain inner text.
_MARKED_RE = re.compile(re.escape(HIGHLIGHT_OPEN) + r"[^<]*" + re.escape(HIGHLIGHT_CLOSE))
# Marker or character reference inside escaped output.
_OPAQUE_RE = re.compile(
    _MARKED_RE.pattern + r"|&(?:[a-zA-Z][a-zA-Z0-9]*|#[0-9]+|#[xX][0-9a-fA-F]+);"
)


class HighlightedHTML(str):
    """Escaped text with highlight markers, safe to embed as HTML.

    Passing it back to ``highlight_all`` keeps its markers and entities as
    they are instead of escaping them again.
    """


def _plain(text: str, escape: bool) -> str:
    return html.escape(text, quote=False) if escape else text


def wrap(segment: str, escape: bool = True) -> str:
    """Wrap one segment in the highlight marker."""
    return f"{HIGHLIGHT_OPEN}{_plain(segment, escape)}{HIGHLIGHT_CLOSE}"


def highlight_ranges(
    text: str, ranges: Iterable[tuple[int, int]], escape: bool = True
) -> str:
    """Wrap the given [start, end) ranges of text.

    Ranges are sorted by start; a range overlapping an earlier one is clipped
    to begin where the previous ended, so segments never overlap.
    """
    ordered = sorted(ranges)
    if not ordered:
        return _plain(text, escape)

    parts: list[str] = []
    last = 0
    for start, end in ordered:
        start = max(start, last)
        end = min(end, len(text))
        if start >= end:
            continue
        parts.append(_plain(text[last:start], escape))
        parts.append(wrap(text[start:end], escape))
        last = end
    parts.append(_plain(text[last:], escape))
    return "".join(parts)


def find_occurrences(folded_text: str, folded_query: str) -> list[tuple[int, int]]:
    """Non-overlapping occurrences of an already case-folded query."""
    ranges: list[tuple[int, int]] = []
    if not folded_query:
        return ranges
    pos = folded_text.find(folded_query)
    while pos != -1:
        ranges.append((pos, pos + len(folded_query)))
        pos = folded_text.find(folded_query, pos + len(folded_query))
    return ranges


def find_matches(text: str, query: str) -> list[tuple[int, int]]:
    """Case-insensitive occurrences of query as [start, end) offsets into text."""
    folded, offsets = fold_with_offsets(text)
    return [
        source_span(offsets, start, end)
        for start, end in find_occurrences(folded, fold_case(query))
    ]


def highlight_all(text: str, query: str, escape: bool = True) -> str:
    """Wrap every case-insensitive occurrence of query.

    With ``escape`` the result is a ``HighlightedHTML``. Raw text is escaped
    in full, literal marker syntax included. A ``HighlightedHTML`` input keeps
    its markers and character references and only the text between them is
    searched, so a second pass returns the first pass unchanged.

    Without ``escape`` existing markers are emitted untouched, so applying
    this twice never nests markers either.
    """
    if not text or not query:
        return text

    if not escape:
        return _highlight_between(text, query, _MARKED_RE)
    if isinstance(text, HighlightedHTML):
        return HighlightedHTML(_highlight_between(text, query, _OPAQUE_RE))
    return HighlightedHTML(highlight_ranges(text, find_matches(text, query), escape=True))


def _highlight_between(text: str, query: str, opaque: re.Pattern) -> str:
    parts: list[str] = []
    last = 0
    for kept in opaque.finditer(text):
        raw = text[last:kept.start()]
        parts.append(highlight_ranges(raw, find_matches(raw, query), escape=False))
        parts.append(kept.group(0))
        last = kept.end()
    raw = text[last:]
    parts.append(highlight_ranges(raw, find_matches(raw, query), escape=False))
    return "".join(parts)


def render_snippet(
    text: str, index: int, length: int, radius: int, escape: bool = True
) -> tuple[str, str]:
    """Build the plain and highlighted context window around one match."""
    start = max(0, index - radius)
    end = min(len(text), index + length + radius)
    lead = ELLIPSIS if start > 0 else ""
    tail = ELLIPSIS if end < len(text) else ""

    prefix = text[start:index]
    match = text[index:index + length]
    suffix = text[index + length:end]

    snippet = f"{lead}{prefix}{match}{suffix}{tail}"
    highlighted = (
        f"{lead}{_plain(prefix, escape)}{wrap(match, escape)}{_plain(suffix, escape)}{tail}"
    )
    return snippet, highlighted

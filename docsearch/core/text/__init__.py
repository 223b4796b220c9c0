"""Text segmentation and highlight rendering."""
from .highlight import (
    HIGHLIGHT_CLOSE,
    HIGHLIGHT_OPEN,
    HighlightedHTML,
    highlight_all,
    highlight_ranges,
    wrap,
)
from .segmentation import (
    fold_case,
    fold_with_offsets,
    has_alphanumeric,
    split_into_sentences,
    tokenize_words,
)

__all__ = [
    "HIGHLIGHT_CLOSE",
    "HIGHLIGHT_OPEN",
    "HighlightedHTML",
    "highlight_all",
    "highlight_ranges",
    "wrap",
    "fold_case",
    "fold_with_offsets",
    "has_alphanumeric",
    "split_into_sentences",
    "tokenize_words",
]

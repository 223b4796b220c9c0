"""Sentence and word segmentation with character offsets."""

import re
import unicodedata
from typing import Iterator

from ..models.document import SentenceSpan, WordToken

# Sentence body (no terminal marks or newlines), optional terminal marks,
# then whitespace or end of text.
_SENTENCE_RE = re.compile(r"([^.!?\n]+[.!?]*)(?:\s+|$)")
_WORD_RE = re.compile(r"[^\W_]+")


def fold_case(text: str) -> str:
    """Lowercase the whole text at once (Greek final sigma is context aware)."""
    return text.lower()


def fold_with_offsets(text: str) -> tuple[str, list[int]]:
    """Lowercase text and map every folded position to its source position.

    A character may lowercase to several code points ('İ' becomes 'i' plus a
    combining dot); each of them maps back to that one source character.
    """
    offsets: list[int] = []
    for i, char in enumerate(text):
        offsets.extend([i] * len(char.lower()))
    return fold_case(text), offsets


def source_span(offsets: list[int], start: int, end: int) -> tuple[int, int]:
    """Map a non-empty [start, end) span of folded text back to the source.

    A span cutting through an expanded character covers the whole character.
    """
    return offsets[start], offsets[end - 1] + 1


def _is_trimmable(char: str) -> bool:
    return char.isspace() or unicodedata.category(char).startswith("P")


def strip_leading_punctuation(text: str) -> str:
    """Drop leading punctuation and whitespace."""
    i = 0
    while i < len(text) and _is_trimmable(text[i]):
        i += 1
    return text[i:]


def strip_trailing_punctuation(text: str) -> str:
    """Drop trailing punctuation and whitespace."""
    i = len(text)
    while i > 0 and _is_trimmable(text[i - 1]):
        i -= 1
    return text[:i]


def has_alphanumeric(text: str) -> bool:
    return any(c.isalnum() for c in text)


def split_into_sentences(text: str) -> Iterator[SentenceSpan]:
    """Yield sentences of text in document order.

    Whitespace-only spans are skipped. A non-empty text without any sentence
    yields itself as a single span.
    """
    text = text or ""
    found = False
    for match in _SENTENCE_RE.finditer(text):
        sentence = match.group(1)
        if not sentence.strip():
            continue
        found = True
        start = match.start(1)
        yield SentenceSpan(text=sentence, start=start, end=start + len(sentence))

    if not found and text:
        yield SentenceSpan(text=text, start=0, end=len(text))


def tokenize_words(text: str) -> Iterator[WordToken]:
    """Yield runs of Unicode letters and digits."""
    for match in _WORD_RE.finditer(text or ""):
        word = match.group(0)
        yield WordToken(word=word, start=match.start(), end=match.end(), lower=fold_case(word))

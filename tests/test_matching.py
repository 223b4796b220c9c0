import pytest

from docsearch.core.models.document import MatchMode
from docsearch.core.strategies.matching import (
    EndsWithStrategy,
    get_strategy,
    highlight_field,
    locate,
    matches,
)
from docsearch.core.text.highlight import HIGHLIGHT_CLOSE, HIGHLIGHT_OPEN


def mark(text: str) -> str:
    return f"{HIGHLIGHT_OPEN}{text}{HIGHLIGHT_CLOSE}"


@pytest.mark.parametrize(
    "text, query",
    [
        ("Quarterly Invoice", "invoice"),
        ("Quarterly Invoice", "INVOICE"),
        ("Quarterly Invoice", "receipt"),
        ("", "x"),
        ("ÇAY saati", "çay"),
        ("İZMİR", "zmi"),
        ("ΟΔΟΣ", "οδος"),
        ("abc", "abcd"),
    ],
)
def test_contains_matches_lowercase_substring(text, query):
    assert matches(text, query, "contains") == (query.lower() in text.lower())


def test_starts_with_is_sentence_anchored():
    text = "Intro. Hello world. The end."

    assert matches(text, "Hello", MatchMode.STARTS_WITH)
    assert not matches(text, "world", MatchMode.STARTS_WITH)


def test_starts_with_ignores_leading_punctuation():
    assert matches('"Quoted start here.', "quoted", "startsWith")


def test_ends_with_ignores_trailing_period():
    assert matches("Well then. Goodbye now.", "now", "endsWith")
    assert not matches("Well then. Goodbye now.", "Goodbye", "endsWith")


def test_ends_with_full_suffix_of_trimmed_sentence():
    assert matches("Thank you. Goodbye.", "Thank you", "endsWith")


def test_blank_query_never_matches():
    for mode in MatchMode:
        assert not matches("anything", "", mode)
        assert not matches("anything", "   ", mode)
        assert not matches(None, "x", mode)


def test_locate_contains():
    info = locate("abc Invoice def", "invoice")

    assert info.index == 4
    assert info.length == 7
    assert info.match_percent == 27
    assert info.snippet == "abc Invoice def"
    assert info.highlighted_snippet == f"abc {mark('Invoice')} def"


def test_locate_starts_with_skips_punctuation():
    info = locate('Intro. "Quoted start here.', "quoted", "startsWith")

    assert info.index == 8
    assert info.highlighted_snippet == f'Intro. "{mark("Quoted")} start here.'


def test_locate_ends_with_offset():
    text = "Intro text. Pay the invoice now!"
    info = locate(text, "invoice now", "endsWith")

    assert info.index == 20
    assert text[info.index:info.index + info.length] == "invoice now"


def test_locate_ends_with_unicode_offset():
    text = "İyi günler. Görüşürüz İSTANBUL."

    info = locate(text, "İSTANBUL", "endsWith")
    assert text[info.index:info.index + info.length] == "İSTANBUL"

    info = locate(text, "stanbul", "endsWith")
    assert text[info.index:info.index + info.length] == "STANBUL"


def test_contains_span_covers_expanded_lowercase_characters():
    text = "Gezi: İZMİR limanı"

    info = locate(text, "zmi", "contains")
    assert text[info.index:info.index + info.length] == "ZMİ"
    assert highlight_field(text, "İzmİr") == f"Gezi: {mark('İZMİR')} limanı"


def test_starts_with_dotted_capital_i():
    text = "İzmir'e gittik. Hava güzeldi."

    assert matches(text, "İZMIR", "startsWith")
    info = locate(text, "İZMIR", "startsWith")
    assert text[info.index:info.index + info.length] == "İzmir"


def test_locate_agrees_with_predicate():
    samples = ["Hello world. Goodbye now.", "no punctuation here", ""]
    for text in samples:
        for mode in MatchMode:
            for query in ("hello", "now", "here", "zzz"):
                assert (locate(text, query, mode) is not None) == matches(text, query, mode)


def test_locate_clamps_window_with_ellipsis():
    text = "a" * 300 + "needle" + "b" * 300
    info = locate(text, "needle", radius=220)

    assert info.snippet.startswith("…")
    assert info.snippet.endswith("…")
    assert info.snippet == "…" + "a" * 220 + "needle" + "b" * 220 + "…"


def test_match_percent_rounds_half_up():
    text = "x" + "needle" + "y" * 193
    assert len(text) == 200

    assert locate(text, "needle").match_percent == 1


def test_highlight_field_anchored_spans():
    text = "Hello world. Hello again."

    assert highlight_field(text, "hello", "startsWith") == (
        f"{mark('Hello')} world. {mark('Hello')} again."
    )


def test_highlight_field_empty_inputs():
    assert highlight_field("", "x", "endsWith") == ""
    assert highlight_field("text", "", "startsWith") == "text"
    assert highlight_field(None, "x") is None


def test_get_strategy_accepts_strings():
    assert isinstance(get_strategy("endsWith"), EndsWithStrategy)
    assert get_strategy(MatchMode.ENDS_WITH) is get_strategy("endsWith")
    with pytest.raises(ValueError):
        get_strategy("fuzzy")

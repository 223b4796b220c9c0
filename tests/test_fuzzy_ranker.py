from conftest import make_record

from docsearch.infrastructure.rankers.fuzzy_ranker import RapidFuzzRanker


def test_rank_is_permutation(ranker):
    records = [
        make_record("a", text_content="nothing relevant"),
        make_record("b", file_name="invoice_2024.pdf"),
        make_record("c", text_content="the invoice total"),
        make_record("d", author="Invoice Department"),
    ]

    ranked = ranker.rank(records, "invoice")

    assert len(ranked) == len(records)
    assert sorted(r.id for r in ranked) == sorted(r.id for r in records)


def test_rank_orders_by_field_weight(ranker):
    records = [
        make_record("a", file_name="notes.txt", text_content="nothing relevant"),
        make_record("b", file_name="invoice_2024.pdf"),
        make_record("c", file_name="scan.pdf", text_content="the invoice total"),
    ]

    ranked = ranker.rank(records, "invoice")

    assert [r.id for r in ranked] == ["c", "b", "a"]


def test_rank_ties_keep_input_order(ranker):
    records = [
        make_record("first", file_name="x.pdf", text_content="invoice one"),
        make_record("second", file_name="y.pdf", text_content="invoice two"),
    ]

    assert [r.id for r in ranker.rank(records, "invoice")] == ["first", "second"]


def test_rank_without_hits_keeps_filter_order(ranker):
    records = [
        make_record("a", file_name="alpha.pdf"),
        make_record("b", file_name="beta.pdf"),
    ]

    ranked = ranker.rank(records, "zzzzqqq")

    assert [r.id for r in ranked] == ["a", "b"]


def test_score_cutoff_drops_weak_fields():
    record = make_record("a", file_name="invoce.pdf")

    assert RapidFuzzRanker(score_cutoff=99).score(record, "invoice") == 0
    assert RapidFuzzRanker(score_cutoff=50).score(record, "invoice") > 0


def test_rank_empty():
    assert RapidFuzzRanker().rank([], "x") == []

from __future__ import annotations

from pathlib import Path

from annotation.schemas import Document, SentenceGraph, make_query
from neighborhood.coref_matcher import CoreferenceChainMatcher
from neighborhood.highlights import (
    Highlight,
    build_coref_highlights,
    count_highlights_with_terms,
    highlight_oracle,
    load_highlights,
    window_highlights,
)


def _filler(word: str) -> SentenceGraph:
    return SentenceGraph([word], lemmas=[word], tags=["NN"])


def test_window_highlights(dog_document) -> None:
    doc = Document("w", [_filler("a"), _filler("b"), *dog_document.sentences, _filler("c"), _filler("d")])
    highlights = window_highlights("chase", doc, window=1)
    assert highlights == [Highlight("w", [1, 2, 3])]
    assert window_highlights("chase", doc, window=0) == [Highlight("w", [2])]
    assert window_highlights("hug", doc, window=2) == []


def test_coref_highlights_are_cached(tmp_path: Path, dog_document) -> None:
    cache = tmp_path / "chase_highlights.jsonl"
    matcher = CoreferenceChainMatcher()
    highlights = build_coref_highlights("chase", [dog_document], matcher, cache_path=cache)
    assert highlights == [Highlight("doc-1", [0, 1])]
    assert load_highlights(cache) == highlights

    # the cache is reused, so a different corpus does not change the answer
    assert build_coref_highlights("chase", [], matcher, cache_path=cache) == highlights
    assert build_coref_highlights("chase", [], matcher, cache_path=cache, force=True) == []


def test_count_highlights_with_terms(dog_document) -> None:
    highlights = [Highlight("doc-1", [0, 1]), Highlight("doc-1", [0]), Highlight("unknown", [0])]
    assert count_highlights_with_terms(highlights, [dog_document], make_query("chase", "angry")) == 1
    assert count_highlights_with_terms(highlights, [dog_document], make_query("chase", "cat")) == 2


def test_highlight_oracle_counts_passages(dog_document, vocabulary) -> None:
    oracle = highlight_oracle([Highlight("doc-1", [0, 1])], [dog_document], vocabulary)
    assert oracle.total_tokens() == 11
    assert oracle.count(make_query("chase", "angry")) == 1
    assert oracle.ranked_search(make_query("chase")) == [("angry", 1.0)]


def test_coref_highlights_use_resolved_chains(dog_document) -> None:
    matcher = CoreferenceChainMatcher()
    chains = matcher.find_argument_chains("chase", dog_document)
    highlights = build_coref_highlights("chase", [dog_document], matcher, resolved={("chase", "doc-1"): chains})
    assert highlights == [Highlight("doc-1", [0, 1])]
    assert matcher.stats.activity_instances == 1

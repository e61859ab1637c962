"""Frequency oracles: n-gram-like counts and ranked co-occurrence search over a corpus.

``CorpusFrequencyOracle`` counts directly over annotated sentences or passages.
``CachedFrequencyOracle`` sits in front of any oracle (or of a store alone) and
persists every count it computes, so repeated runs only pay for new queries.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from tqdm import tqdm

from annotation.schemas import POS_STATES, Document, Present, Query, QueryTerm, SentenceGraph, query_terms
from interpolation.stats import Distribution, normalize

from .store import KeyValueStore, MemoryStore, cache_key
from .vocabulary import MentalStateVocabulary

logger = logging.getLogger(__name__)

TOTAL_TOKENS_KEY = "_total-tokens"


class FrequencyOracle(ABC):
    @abstractmethod
    def count(self, query: Query) -> int:
        """Occurrences of a single term, or co-occurrences of several terms."""

    @abstractmethod
    def total_tokens(self) -> int:
        ...

    @abstractmethod
    def ranked_search(self, query: Query) -> Distribution:
        """Raw ``(word, score)`` pairs for mental-state words co-occurring with ``query``."""

    def normalized_search(self, query: Query) -> Distribution:
        """Ranked search scores normalized to sum to 1, sorted by word."""
        dist = [(w, s) for w, s in self.ranked_search(query) if s > 0]
        return sorted(normalize(dist), key=lambda kv: kv[0]) if dist else []


def sentence_tokens(sentence: SentenceGraph) -> List[Tuple[str, Optional[str]]]:
    lemmas = sentence.lemma_lookup()
    tags = sentence.tag_lookup()
    lemma_values = lemmas.value if isinstance(lemmas, Present) else [w.lower() for w in sentence.words]
    tag_values = tags.value if isinstance(tags, Present) else [None] * len(lemma_values)
    return [(lemma.lower(), tag) for lemma, tag in zip(lemma_values, tag_values)]


def sentence_has_terms(tokens: Sequence[Tuple[str, Optional[str]]], query: Iterable[QueryTerm]) -> bool:
    return all(any(term.matches(lemma, tag) for lemma, tag in tokens) for term in query)


class CorpusFrequencyOracle(FrequencyOracle):
    """Counts over in-memory counting units (sentences, or highlight passages).

    A single-term count is the number of matching tokens. A multi-term count is
    the number of units containing every term under its POS constraint.
    """

    def __init__(
        self,
        units: Sequence[List[Tuple[str, Optional[str]]]],
        vocabulary: Optional[MentalStateVocabulary] = None,
        states_pos: FrozenSet[str] = POS_STATES,
    ):
        self.vocabulary = vocabulary
        self.states_pos = states_pos
        self.units: List[List[Tuple[str, Optional[str]]]] = list(units)
        self._total_tokens = sum(len(s) for s in self.units)

    @classmethod
    def from_documents(
        cls,
        documents: Sequence[Document],
        vocabulary: Optional[MentalStateVocabulary] = None,
        states_pos: FrozenSet[str] = POS_STATES,
    ) -> "CorpusFrequencyOracle":
        units = [sentence_tokens(s) for doc in documents for s in doc.sentences]
        return cls(units, vocabulary, states_pos)

    def total_tokens(self) -> int:
        return self._total_tokens

    def count(self, query: Query) -> int:
        if not query:
            return 0
        if len(query) == 1:
            term = query[0]
            return sum(1 for tokens in self.units for lemma, tag in tokens if term.matches(lemma, tag))
        return sum(1 for tokens in self.units if sentence_has_terms(tokens, query))

    def ranked_search(self, query: Query) -> Distribution:
        if self.vocabulary is None:
            raise ValueError("Ranked search needs a mental-state vocabulary")
        scores: Counter = Counter()
        for tokens in self.units:
            if not sentence_has_terms(tokens, query):
                continue
            present = {lemma for lemma, tag in tokens if tag is None or tag in self.states_pos}
            for word in present:
                if word in self.vocabulary:
                    scores[word] += 1
        return sorted(((w, float(c)) for w, c in scores.items()), key=lambda kv: kv[0])


class CachedFrequencyOracle(FrequencyOracle):
    """Cache-through oracle.

    Counts are read from ``store``; on a miss they are computed by ``backend``
    and persisted. Without a backend a miss raises ``LookupError``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        backend: Optional[FrequencyOracle] = None,
        scores_store: Optional[KeyValueStore] = None,
        overwrite: bool = False,
    ):
        self.store = store
        self.backend = backend
        self.scores_store = scores_store if scores_store is not None else MemoryStore()
        self.overwrite = overwrite

    def _require_backend(self, key: str) -> FrequencyOracle:
        if self.backend is None:
            raise LookupError(f"No cached record for '{key}' and no backend to compute it")
        return self.backend

    def count(self, query: Query) -> int:
        key = cache_key(query_terms(query))
        cached = None if self.overwrite else self.store.get(key)
        if isinstance(cached, int):
            return cached
        logger.debug("Cache miss for %s", key)
        value = self._require_backend(key).count(query)
        self.store.put(key, value, overwrite=self.overwrite)
        return value

    def total_tokens(self) -> int:
        cached = self.store.get(TOTAL_TOKENS_KEY)
        if isinstance(cached, int):
            return cached
        value = self._require_backend(TOTAL_TOKENS_KEY).total_tokens()
        self.store.put(TOTAL_TOKENS_KEY, value, overwrite=True)
        return value

    def ranked_search(self, query: Query) -> Distribution:
        key = cache_key(query_terms(query))
        cached = None if self.overwrite else self.scores_store.get(key)
        if isinstance(cached, dict):
            return sorted(((w, float(s)) for w, s in cached.items()), key=lambda kv: kv[0])
        result = self._require_backend(key).ranked_search(query)
        self.scores_store.put(key, dict(result), overwrite=self.overwrite)
        return result

    def precompute(self, queries: Sequence[Query], states: Iterable[QueryTerm] = ()) -> int:
        """Warm the cache with every sub-query the estimators will ask for.

        For each query (optionally prefixed by each state term), counts the
        slices ``query[start:idx + 1]`` for ``start`` in (0, 1).

        Returns:
            Number of records newly written
        """
        state_list = list(states)
        expanded: List[Query] = []
        for query in queries:
            if state_list:
                expanded.extend((state,) + tuple(query) for state in state_list)
            else:
                expanded.append(tuple(query))

        written = 0
        for query in tqdm(expanded, desc="Precomputing counts", unit="query", ncols=80):
            for start in (0, 1):
                for idx in range(start, len(query)):
                    key = cache_key(query_terms(query[start:idx + 1]))
                    if key in self.store and not self.overwrite:
                        continue
                    self.count(query[start:idx + 1])
                    written += 1
        logger.info("Precomputed %d new frequency records", written)
        return written

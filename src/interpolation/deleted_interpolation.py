"""Deleted interpolation over multi-level frequency counts.

Each mental state ``w`` extends a query ``(t1, ..., tk)`` to ``(w, t1, ..., tk)``.
Level ``i`` estimates ``P(w | t1..ti)`` from the counts of the first ``i + 1``
terms against the counts of ``t1..ti`` (level 0 uses the corpus size).
"""
from __future__ import annotations

import logging
from typing import FrozenSet, List, Sequence

import numpy as np
from tqdm import tqdm

from annotation.schemas import POS_STATES, Query, QueryTerm
from frequency.oracle import FrequencyOracle
from frequency.vocabulary import MentalStateVocabulary

from .errors import ContractViolation
from .stats import Distribution, normalize, normalize_vector

logger = logging.getLogger(__name__)


class DeletedInterpolationEstimator:
    def __init__(
        self,
        oracle: FrequencyOracle,
        vocabulary: MentalStateVocabulary,
        states_pos: FrozenSet[str] = POS_STATES,
    ):
        self.oracle = oracle
        self.vocabulary = vocabulary
        self.states_pos = states_pos

    def state_terms(self) -> List[QueryTerm]:
        return [QueryTerm(word, self.states_pos) for word in self.vocabulary]

    def estimate(self, queries: Sequence[Query], num_levels: int) -> List[float]:
        """Estimate interpolation weights with the greedy vote.

        For every (query, state) pair seen in the corpus, each level scores
        ``(count(numerator) - 1) / (count(denominator) - 1)``; the level with the
        highest score (lowest index on ties) receives a vote weighted by the
        joint count. Votes are normalized at the end.

        Args:
            queries: Query tuples of length ``num_levels - 1``
            num_levels: Number of interpolation levels

        Returns:
            ``num_levels`` weights summing to 1 (all zeros if no pair occurred)
        """
        votes = np.zeros(num_levels, dtype=float)
        total = self.oracle.total_tokens()
        states = self.state_terms()

        for query in tqdm(queries, desc="Estimating lambdas", unit="query", ncols=80):
            for state in states:
                extended = (state,) + tuple(query)
                if len(extended) != num_levels:
                    raise ContractViolation(
                        f"Query of length {len(query)} does not fit {num_levels} levels"
                    )
                joint = self.oracle.count(extended)
                if joint <= 0:
                    continue

                scores = np.zeros(num_levels, dtype=float)
                for i in range(num_levels):
                    numerator = self.oracle.count(extended[:i + 1]) - 1
                    denominator = (total - 1) if i == 0 else self.oracle.count(extended[1:i + 1]) - 1
                    scores[i] = 0.0 if denominator == 0 else numerator / denominator
                votes[int(np.argmax(scores))] += joint

        logger.info("Lambda votes: %s", votes.tolist())
        return normalize_vector(votes)

    def evaluate(self, query: Query, lambdas: Sequence[float]) -> Distribution:
        """Interpolated distribution over the vocabulary for ``query``.

        Words with zero probability are dropped; the rest are normalized.
        """
        if len(query) + 1 != len(lambdas):
            raise ContractViolation(
                f"Expected {len(query) + 1} interpolation weights, got {len(lambdas)}"
            )
        total = self.oracle.total_tokens()

        dist: Distribution = []
        for state in self.state_terms():
            extended = (state,) + tuple(query)
            prob = 0.0
            for i, weight in enumerate(lambdas):
                if weight == 0:
                    continue
                denominator = total if i == 0 else self.oracle.count(extended[1:i + 1])
                if denominator <= 0:
                    continue
                prob += weight * self.oracle.count(extended[:i + 1]) / denominator
            if prob > 0:
                dist.append((state.term, prob))
        return normalize(dist)

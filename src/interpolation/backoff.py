"""Back-off linear interpolation of per-prefix mental-state distributions."""
from __future__ import annotations

import logging
import math
from typing import Callable, Dict, FrozenSet, List, Sequence, Set

from annotation.schemas import Query

from .errors import ContractViolation
from .stats import Distribution, linear_interpolation, normalize

logger = logging.getLogger(__name__)

Scorer = Callable[[Query], Distribution]


class BackOffLinearInterpolator:
    """Combine distributions scored for every prefix of the queries.

    A prefix of length ``i`` lands on level ``num_levels - i``, so level 0 holds
    the most specific (full-length) prefixes. Each level averages the
    distributions of its distinct prefixes; the levels are then mixed with
    ``linear_interpolation``.
    """

    def __init__(self, scorer: Scorer):
        self.scorer = scorer

    def process(self, queries: Sequence[Query], lambdas: Sequence[float]) -> Distribution:
        num_levels = len(lambdas) + 1
        sums: List[Dict[str, float]] = [{} for _ in range(num_levels)]
        evaluated = [0] * num_levels
        seen: Set[FrozenSet[str]] = set()

        for query in queries:
            if len(query) > num_levels:
                raise ContractViolation(
                    f"Query of length {len(query)} exceeds {num_levels} back-off levels"
                )
            for length in range(1, len(query) + 1):
                prefix = tuple(query[:length])
                terms = frozenset(t.term.lower() for t in prefix)
                if terms in seen:
                    continue
                seen.add(terms)

                dist = self.scorer(prefix)
                if not dist or math.isnan(dist[0][1]):
                    continue
                level = num_levels - length
                for word, score in dist:
                    sums[level][word] = sums[level].get(word, 0.0) + score
                evaluated[level] += 1

        logger.debug("Evaluated prefixes per level: %s", evaluated)
        words = sorted(set().union(*sums))
        combined: Distribution = []
        for word in words:
            points = [
                sums[level].get(word, 0.0) / evaluated[level] if evaluated[level] else 0.0
                for level in range(num_levels)
            ]
            combined.append((word, linear_interpolation(lambdas, points)))

        if sum(score for _, score in combined) <= 0:
            if combined:
                logger.warning("Back-off interpolation produced zero mass over %d words", len(combined))
            return []
        return sorted(normalize(combined), key=lambda kv: kv[0])

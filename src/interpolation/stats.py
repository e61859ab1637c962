"""Distribution helpers: normalization, pruning and linear interpolation.

A distribution is a list of ``(word, score)`` pairs.
"""
from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np

from .errors import ContractViolation, DegenerateDistribution

logger = logging.getLogger(__name__)

Distribution = List[Tuple[str, float]]

DOUBLE_EPSILON = 1e-7


def normalize(dist: Sequence[Tuple[str, float]]) -> Distribution:
    """Scale scores to sum to 1, keeping order.

    Raises:
        DegenerateDistribution: if the list is non-empty but sums to zero
    """
    if not dist:
        return []
    scores = np.asarray([s for _, s in dist], dtype=float)
    total = scores.sum()
    if total == 0 or not np.isfinite(total):
        raise DegenerateDistribution(f"Cannot normalize distribution with total mass {total}")
    return [(w, float(s)) for (w, _), s in zip(dist, scores / total)]


def normalize_vector(values: Sequence[float]) -> List[float]:
    """Normalize a weight vector; an all-zero vector stays all zeros."""
    arr = np.asarray(values, dtype=float)
    total = arr.sum()
    if total == 0:
        return [0.0] * len(arr)
    return (arr / total).tolist()


def is_normalized(dist: Sequence[Tuple[str, float]]) -> bool:
    return abs(sum(s for _, s in dist) - 1.0) <= DOUBLE_EPSILON


def sort_by_score(dist: Sequence[Tuple[str, float]]) -> Distribution:
    """Descending by score; equal scores keep their input order."""
    return sorted(dist, key=lambda kv: -kv[1])


def prune_by_prob_mass(dist: Sequence[Tuple[str, float]], alpha: float) -> Distribution:
    """Keep the highest-scoring prefix until its accumulated mass reaches ``alpha``."""
    kept: Distribution = []
    mass = 0.0
    for word, score in sort_by_score(dist):
        if mass >= alpha:
            break
        kept.append((word, score))
        mass += score
    return kept


def prune_by_beam(dist: Sequence[Tuple[str, float]], alpha: float) -> Distribution:
    """Keep the prefix whose scores are strictly greater than ``alpha`` times the top score.

    An empty input gives an empty output. With ``alpha >= 1`` nothing survives
    because the top score itself is not strictly above the beam.
    """
    ranked = sort_by_score(dist)
    if not ranked:
        return []
    beam = alpha * ranked[0][1]
    kept: Distribution = []
    for word, score in ranked:
        if score <= beam:
            break
        kept.append((word, score))
    return kept


def linear_interpolation(lambdas: Sequence[float], points: Sequence[float]) -> float:
    """Recursive interpolation from the most specific level (index 0) to the least.

    ``interp[last] = points[last]`` and
    ``interp[i] = lambdas[i] * points[i] + (1 - lambdas[i]) * interp[i + 1]``.
    """
    if len(lambdas) + 1 != len(points):
        raise ContractViolation(
            f"Need one more point than weights, got {len(lambdas)} weights and {len(points)} points"
        )
    interp = float(points[-1])
    for weight, point in zip(reversed(lambdas), reversed(points[:-1])):
        interp = weight * point + (1.0 - weight) * interp
    return interp


def entropy(dist: Sequence[Tuple[str, float]]) -> float:
    """Shannon entropy (bits) of a normalized distribution."""
    probs = np.asarray([s for _, s in dist if s > 0], dtype=float)
    if probs.size == 0:
        return 0.0
    return float(-(probs * np.log2(probs)).sum())


def average(distributions: Sequence[Sequence[Tuple[str, float]]]) -> Distribution:
    """Word-wise mean over ``distributions``, sorted by word."""
    if not distributions:
        return []
    totals = {}
    for dist in distributions:
        for word, score in dist:
            totals[word] = totals.get(word, 0.0) + score
    n = float(len(distributions))
    return sorted(((w, s / n) for w, s in totals.items()), key=lambda kv: kv[0])

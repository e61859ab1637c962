"""Mental-state models selected by tag, and ensemble combination of their outputs."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Tuple

from annotation.schemas import POS_STATES, Query
from frequency.oracle import FrequencyOracle
from frequency.vocabulary import MentalStateVocabulary

from .backoff import BackOffLinearInterpolator, Scorer
from .deleted_interpolation import DeletedInterpolationEstimator
from .errors import ContractViolation
from .queries import describe
from .stats import Distribution, average, normalize, prune_by_prob_mass

logger = logging.getLogger(__name__)


class ModelType(str, Enum):
    DOCUMENT = "doc"  # back-off over ranked co-occurrence search
    DELETED = "deleted"  # deleted interpolation over counts

    @classmethod
    def parse(cls, tag: str) -> "ModelType":
        try:
            return cls(tag.strip().lower())
        except ValueError:
            options = ", ".join(m.value for m in cls)
            raise ContractViolation(f"Unknown model type '{tag}' (expected one of: {options})") from None


def skip_missing_records(scorer: Scorer) -> Scorer:
    """Wrap ``scorer`` so a query with missing frequency records scores as empty."""

    def score(query: Query) -> Distribution:
        try:
            return scorer(query)
        except LookupError as e:
            logger.error("Skipping query '%s': %s", describe(query), e)
            return []

    return score


class MentalStateModel(ABC):
    model_type: ModelType

    @abstractmethod
    def distribution(self, queries: Sequence[Query]) -> Distribution:
        ...


class BackOffModel(MentalStateModel):
    model_type = ModelType.DOCUMENT

    def __init__(self, oracle: FrequencyOracle, lambdas: Sequence[float]):
        self.interpolator = BackOffLinearInterpolator(skip_missing_records(oracle.normalized_search))
        self.lambdas = list(lambdas)

    def distribution(self, queries: Sequence[Query]) -> Distribution:
        return self.interpolator.process(queries, self.lambdas)


class DeletedInterpolationModel(MentalStateModel):
    """Averages the per-query deleted-interpolation distributions.

    Queries whose frequency records are missing are logged and skipped.
    """

    model_type = ModelType.DELETED

    def __init__(self, estimator: DeletedInterpolationEstimator, lambdas: Sequence[float]):
        self.estimator = estimator
        self.lambdas = list(lambdas)

    def distribution(self, queries: Sequence[Query]) -> Distribution:
        evaluate = skip_missing_records(lambda query: self.estimator.evaluate(query, self.lambdas))
        dists: List[Distribution] = []
        for query in queries:
            dist = evaluate(query)
            if dist:
                dists.append(dist)
            else:
                logger.debug("No mental states found for query: %s", describe(query))
        if not dists:
            return []
        return normalize(average(dists))


def build_model(
    model_type: ModelType,
    oracle: FrequencyOracle,
    lambdas: Sequence[float],
    vocabulary: Optional[MentalStateVocabulary] = None,
    states_pos: FrozenSet[str] = POS_STATES,
) -> MentalStateModel:
    if model_type is ModelType.DOCUMENT:
        return BackOffModel(oracle, lambdas)
    if model_type is ModelType.DELETED:
        if vocabulary is None:
            raise ContractViolation("Deleted interpolation needs a mental-state vocabulary")
        return DeletedInterpolationModel(DeletedInterpolationEstimator(oracle, vocabulary, states_pos), lambdas)
    raise ContractViolation(f"Unsupported model type: {model_type}")


def combine_distributions(members: Sequence[Tuple[Distribution, float]]) -> Distribution:
    """Average several model outputs after pruning each to a probability mass.

    Args:
        members: (distribution, probability mass to keep) per model

    Returns:
        Word-wise average of the pruned, renormalized members, sorted by word.
        Members left empty after pruning are dropped; no survivors gives ``[]``.
    """
    kept: List[Distribution] = []
    for dist, mass in members:
        pruned = prune_by_prob_mass(dist, mass)
        if not pruned or sum(s for _, s in pruned) <= 0:
            logger.debug("Dropping empty ensemble member")
            continue
        kept.append(normalize(pruned))
    if not kept:
        return []
    return sorted(normalize(average(kept)), key=lambda kv: kv[0])

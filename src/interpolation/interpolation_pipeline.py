"""Interpolation pipeline: estimate lambdas, then score mental-state distributions.

    python src/interpolation/interpolation_pipeline.py train --queries q.json --output lambdas.json
    python src/interpolation/interpolation_pipeline.py run --queries q.json --models deleted doc \
        --lambdas lambdas.json --backoff-weights 0.6
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

# Enable execution as a script
if __package__ is None or __package__ == "":
    _src_dir = Path(__file__).resolve().parents[1]
    if str(_src_dir) not in sys.path:
        sys.path.append(str(_src_dir))
    from annotation.loader import load_corpus
    from frequency.oracle import CachedFrequencyOracle, CorpusFrequencyOracle, FrequencyOracle
    from frequency.store import FileSystemStore
    from frequency.vocabulary import MentalStateVocabulary
    from interpolation.deleted_interpolation import DeletedInterpolationEstimator
    from interpolation.errors import ContractViolation
    from interpolation.models import ModelType, build_model, combine_distributions
    from interpolation.queries import describe, load_queries
    from interpolation.stats import Distribution, entropy
else:
    from annotation.loader import load_corpus
    from frequency.oracle import CachedFrequencyOracle, CorpusFrequencyOracle, FrequencyOracle
    from frequency.store import FileSystemStore
    from frequency.vocabulary import MentalStateVocabulary
    from .deleted_interpolation import DeletedInterpolationEstimator
    from .errors import ContractViolation
    from .models import ModelType, build_model, combine_distributions
    from .queries import describe, load_queries
    from .stats import Distribution, entropy

logger = logging.getLogger(__name__)

STORE_DIR = Path("data/neighborhood/frequency")
VOCABULARY_PATH = Path("data/mental_states.txt")
OUTPUT_DIR = Path("data/interpolation")
DEFAULT_PRUNE_MASS = 1.0


def build_oracle(store_dir: Path, corpus: Optional[Path], vocabulary: MentalStateVocabulary) -> CachedFrequencyOracle:
    backend: Optional[FrequencyOracle] = None
    if corpus is not None:
        backend = CorpusFrequencyOracle.from_documents(load_corpus(corpus), vocabulary)
    return CachedFrequencyOracle(FileSystemStore(store_dir), backend=backend, scores_store=FileSystemStore(store_dir.parent / "scores"))


def load_lambdas(path: Path) -> List[float]:
    if not path.exists():
        raise FileNotFoundError(f"Lambdas file not found: {path}")
    return [float(x) for x in json.loads(path.read_text(encoding="utf-8"))["lambdas"]]


def train(
    queries_path: Path,
    output_path: Path,
    vocabulary_path: Path = VOCABULARY_PATH,
    store_dir: Path = STORE_DIR,
    corpus: Optional[Path] = None,
    force: bool = False,
) -> List[float]:
    if output_path.exists() and not force:
        logger.info("Lambdas already estimated at %s. Use --force to re-estimate.", output_path)
        return load_lambdas(output_path)

    queries = load_queries(queries_path)
    if not queries:
        raise ValueError(f"No queries in {queries_path}")
    num_levels = len(queries[0]) + 1

    vocabulary = MentalStateVocabulary.from_file(vocabulary_path)
    oracle = build_oracle(store_dir, corpus, vocabulary)
    estimator = DeletedInterpolationEstimator(oracle, vocabulary)
    if oracle.backend is not None:
        oracle.precompute(queries, estimator.state_terms())

    logger.info("=" * 80)
    logger.info("ESTIMATING LAMBDAS: %d queries, %d levels, %d states", len(queries), num_levels, len(vocabulary))
    logger.info("=" * 80)
    lambdas = estimator.estimate(queries, num_levels)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps({"num_levels": num_levels, "lambdas": lambdas}, indent=2), encoding="utf-8")
    logger.info("Lambdas %s saved to %s", lambdas, output_path)
    return lambdas


def run(
    queries_path: Path,
    models: Sequence[ModelType],
    lambdas_path: Optional[Path] = None,
    backoff_weights: Sequence[float] = (),
    vocabulary_path: Path = VOCABULARY_PATH,
    store_dir: Path = STORE_DIR,
    corpus: Optional[Path] = None,
    prune_mass: float = DEFAULT_PRUNE_MASS,
    output_path: Optional[Path] = None,
) -> Distribution:
    queries = load_queries(queries_path)
    vocabulary = MentalStateVocabulary.from_file(vocabulary_path)
    oracle = build_oracle(store_dir, corpus, vocabulary)

    members: List[Distribution] = []
    for model_type in models:
        if model_type is ModelType.DELETED:
            if lambdas_path is None:
                raise ContractViolation("The deleted-interpolation model needs --lambdas")
            weights = load_lambdas(lambdas_path)
        else:
            weights = list(backoff_weights)
        model = build_model(model_type, oracle, weights, vocabulary=vocabulary)
        dist = model.distribution(queries)
        logger.info("Model %s: %d states, entropy %.3f bits", model_type.value, len(dist), entropy(dist))
        members.append(dist)

    combined = combine_distributions([(d, prune_mass) for d in members])
    logger.info("=" * 80)
    logger.info("DISTRIBUTION for %s", "; ".join(describe(q) for q in queries[:5]))
    for word, prob in sorted(combined, key=lambda kv: -kv[1])[:20]:
        logger.info("  %-20s %.4f", word, prob)
    logger.info("=" * 80)

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        payload: Dict[str, object] = {
            "models": [m.value for m in models],
            "prune_mass": prune_mass,
            "distribution": [[w, p] for w, p in combined],
        }
        output_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("Saved distribution to %s", output_path)
    return combined


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mental-state interpolation pipeline")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--queries", type=Path, required=True, help="JSON list of query term lists")
    common.add_argument("--vocabulary", type=Path, default=VOCABULARY_PATH, help="Mental-state word list")
    common.add_argument("--store-dir", type=Path, default=STORE_DIR, help="Frequency store directory")
    common.add_argument("--corpus", type=Path, default=None, help="JSONL corpus used to fill cache misses")

    train_p = sub.add_parser("train", parents=[common], help="Estimate deleted-interpolation lambdas")
    train_p.add_argument("--output", type=Path, default=OUTPUT_DIR / "lambdas.json")
    train_p.add_argument("--force", action="store_true", help="Re-estimate even if the output exists")

    run_p = sub.add_parser("run", parents=[common], help="Score a mental-state distribution")
    run_p.add_argument("--models", nargs="+", default=[ModelType.DELETED.value], help="Model tags to ensemble")
    run_p.add_argument("--lambdas", type=Path, default=OUTPUT_DIR / "lambdas.json")
    run_p.add_argument("--backoff-weights", type=float, nargs="*", default=[], help="Back-off lambdas")
    run_p.add_argument("--prune-mass", type=float, default=DEFAULT_PRUNE_MASS)
    run_p.add_argument("--output", type=Path, default=None)
    return parser.parse_args()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    args = parse_args()
    if args.command == "train":
        train(args.queries, args.output, args.vocabulary, args.store_dir, args.corpus, force=args.force)
    else:
        run(
            args.queries,
            [ModelType.parse(tag) for tag in args.models],
            lambdas_path=args.lambdas,
            backoff_weights=args.backoff_weights,
            vocabulary_path=args.vocabulary,
            store_dir=args.store_dir,
            corpus=args.corpus,
            prune_mass=args.prune_mass,
            output_path=args.output,
        )

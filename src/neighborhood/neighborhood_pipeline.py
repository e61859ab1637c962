"""Neighborhood pipeline: coreference highlights and activity/mental-state joint frequencies."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Enable execution as a script
if __package__ is None or __package__ == "":
    _src_dir = Path(__file__).resolve().parents[1]
    if str(_src_dir) not in sys.path:
        sys.path.append(str(_src_dir))
    from annotation.loader import load_corpus
    from frequency.store import FileSystemStore
    from frequency.vocabulary import MentalStateVocabulary
    from neighborhood.coref_matcher import CoreferenceChainMatcher
    from neighborhood.highlights import build_coref_highlights
    from neighborhood.nlp_counter import ActorMode, NLPNeighborhoodCounter, search_contexts
else:
    from annotation.loader import load_corpus
    from frequency.store import FileSystemStore
    from frequency.vocabulary import MentalStateVocabulary
    from .coref_matcher import CoreferenceChainMatcher
    from .highlights import build_coref_highlights
    from .nlp_counter import ActorMode, NLPNeighborhoodCounter, search_contexts

logger = logging.getLogger(__name__)

CORPUS_PATH = Path("data/corpus/documents.jsonl")
VOCABULARY_PATH = Path("data/mental_states.txt")
OUTPUT_DIR = Path("data/neighborhood")
STORE_DIR = OUTPUT_DIR / "frequency"


def checkpoint_path(output_dir: Path, activity: str) -> Path:
    return output_dir / f"{activity.lower()}_checkpoint.json"


def run_config(
    actors: List[str],
    extras: Optional[List[str]],
    mode: ActorMode,
    roles_dir: Optional[Path],
) -> Dict[str, Any]:
    """The settings a checkpoint must match for a run to be skipped."""
    return {
        "actors": list(actors),
        "extras": list(extras or []),
        "mode": mode.value,
        "roles_dir": str(roles_dir) if roles_dir is not None else None,
    }


def should_skip(checkpoint: Path, corpus: Path, config: Dict[str, Any], force: bool) -> bool:
    if force or not checkpoint.exists():
        return False
    try:
        chk = json.loads(checkpoint.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return False
    current_mtime = corpus.stat().st_mtime if corpus.exists() else None
    if chk.get("completed") and chk.get("corpus_mtime") == current_mtime and chk.get("config") == config:
        logger.info("Checkpoint is current; skipping run. Use --force to override.")
        return True
    return False


def save_checkpoint(checkpoint: Path, corpus: Path, config: Dict[str, Any], stats: Dict[str, int]) -> None:
    checkpoint.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "completed": True,
        "corpus_mtime": corpus.stat().st_mtime if corpus.exists() else None,
        "config": config,
        "stats": stats,
    }
    checkpoint.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def run_pipeline(
    activity: str,
    actors: List[str],
    corpus: Path = CORPUS_PATH,
    vocabulary_path: Path = VOCABULARY_PATH,
    store_dir: Path = STORE_DIR,
    output_dir: Path = OUTPUT_DIR,
    roles_dir: Optional[Path] = None,
    extras: Optional[List[str]] = None,
    mode: ActorMode = ActorMode.ALL,
    overwrite: bool = False,
    force: bool = False,
) -> Dict[str, int]:
    checkpoint = checkpoint_path(output_dir, activity)
    config = run_config(actors, extras, mode, roles_dir)
    if should_skip(checkpoint, corpus, config, force or overwrite):
        return {}

    logger.info("=" * 80)
    logger.info("NEIGHBORHOOD PIPELINE: %s (%d actors, mode=%s)", activity, len(actors), mode.value)
    logger.info("=" * 80)

    documents = load_corpus(corpus)
    vocabulary = MentalStateVocabulary.from_file(vocabulary_path)
    matcher = CoreferenceChainMatcher()
    counter = NLPNeighborhoodCounter(vocabulary, matcher=matcher, mode=mode)

    # every document is resolved once; highlights and counting share the result
    resolved = counter.resolve_documents(activity, documents, roles_dir)

    highlights_path = output_dir / f"{activity.lower()}_highlights.jsonl"
    highlights = build_coref_highlights(
        activity, documents, matcher, roles_dir=roles_dir, cache_path=highlights_path, force=force, resolved=resolved,
    )
    logger.info("Coreference highlights: %d documents", len(highlights))

    store = FileSystemStore(store_dir)
    contexts = search_contexts(activity, actors, extras or [])
    processed = counter.compute_joint_frequencies(
        documents, contexts, store, roles_dir=roles_dir, overwrite=overwrite, resolved=resolved,
    )

    stats = matcher.stats.as_dict()
    logger.info("=" * 80)
    logger.info("RESOLUTION STATS")
    for name, value in stats.items():
        logger.info("  %s: %d", name, value)
    logger.info("Contexts processed: %d | store: %s", len(processed), store_dir)
    logger.info("=" * 80)

    save_checkpoint(checkpoint, corpus, config, stats)
    return processed


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute activity/mental-state joint frequencies")
    parser.add_argument("--activity", required=True, help="Activity verb, e.g. chase")
    parser.add_argument("--actors", nargs="+", default=[], help="Actor nouns paired with the activity")
    parser.add_argument("--extras", nargs="*", default=[], help="Optional third terms (locations, relations)")
    parser.add_argument("--corpus", type=Path, default=CORPUS_PATH, help="JSONL corpus of parsed documents")
    parser.add_argument("--roles-dir", type=Path, default=None, help="Directory of semantic-role files")
    parser.add_argument("--vocabulary", type=Path, default=VOCABULARY_PATH, help="Mental-state word list")
    parser.add_argument("--store-dir", type=Path, default=STORE_DIR, help="Frequency store directory")
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR, help="Highlights and checkpoint directory")
    parser.add_argument("--mode", choices=[m.value for m in ActorMode], default=ActorMode.ALL.value)
    parser.add_argument("--overwrite", action="store_true", help="Recompute cached frequencies")
    parser.add_argument("--force", action="store_true", help="Run even if the checkpoint is current")
    return parser.parse_args()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    args = parse_args()
    run_pipeline(
        activity=args.activity,
        actors=args.actors,
        corpus=args.corpus,
        vocabulary_path=args.vocabulary,
        store_dir=args.store_dir,
        output_dir=args.output_dir,
        roles_dir=args.roles_dir,
        extras=args.extras,
        mode=ActorMode(args.mode),
        overwrite=args.overwrite,
        force=args.force,
    )

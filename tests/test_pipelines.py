from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

import pytest

from annotation.loader import save_corpus
from annotation.schemas import make_query
from frequency.oracle import TOTAL_TOKENS_KEY, CachedFrequencyOracle
from frequency.store import FileSystemStore
from frequency.vocabulary import MentalStateVocabulary
from interpolation.deleted_interpolation import DeletedInterpolationEstimator
from interpolation.interpolation_pipeline import load_lambdas, run, train
from interpolation.models import ModelType
from interpolation.queries import save_queries
from neighborhood.highlights import Highlight, load_highlights
from neighborhood.neighborhood_pipeline import checkpoint_path, run_pipeline
from neighborhood.nlp_counter import ActorMode

CHASE_RECORDS = {
    TOTAL_TOKENS_KEY: 1000,
    "chase": 10,
    "afraid": 30, "afraid-chase": 5,
    "angry": 10, "angry-chase": 3,
    "happy": 900, "chase-happy": 1,
}


@pytest.fixture
def vocabulary_file(tmp_path: Path) -> Path:
    path = tmp_path / "mental_states.txt"
    path.write_text("afraid\nangry\nhappy\n", encoding="utf-8")
    return path


@pytest.fixture
def neighborhood_paths(tmp_path: Path, dog_document, vocabulary_file) -> Dict[str, Path]:
    corpus = tmp_path / "corpus.jsonl"
    save_corpus([dog_document], corpus)
    return {
        "corpus": corpus,
        "vocabulary_path": vocabulary_file,
        "store_dir": tmp_path / "freq",
        "output_dir": tmp_path / "out",
    }


def _checkpoint(paths: Dict[str, Path]) -> dict:
    return json.loads(checkpoint_path(paths["output_dir"], "chase").read_text(encoding="utf-8"))


def test_neighborhood_pipeline_resolves_each_document_once(neighborhood_paths) -> None:
    processed = run_pipeline("chase", ["dog"], **neighborhood_paths)
    assert processed == {"chase": 1, "chase-dog": 1}

    stats = _checkpoint(neighborhood_paths)["stats"]
    assert stats["activity_instances"] == 1
    assert stats["dependency_successes"] == 1
    assert stats["extended_sentences"] == 1

    assert FileSystemStore(neighborhood_paths["store_dir"]).get("angry-chase-dog") == 1
    highlights = load_highlights(neighborhood_paths["output_dir"] / "chase_highlights.jsonl")
    assert highlights == [Highlight("doc-1", [0, 1])]


def test_stats_do_not_depend_on_highlight_cache(neighborhood_paths) -> None:
    run_pipeline("chase", ["dog"], **neighborhood_paths)
    # highlights come from the cache on this run
    run_pipeline("chase", ["dog"], overwrite=True, **neighborhood_paths)
    assert _checkpoint(neighborhood_paths)["stats"]["activity_instances"] == 1


def test_completed_run_is_skipped_unless_forced(neighborhood_paths) -> None:
    run_pipeline("chase", ["dog"], **neighborhood_paths)
    checkpoint = checkpoint_path(neighborhood_paths["output_dir"], "chase")
    checkpoint.write_text(checkpoint.read_text(encoding="utf-8").replace('"activity_instances": 1', '"activity_instances": 7'))

    assert run_pipeline("chase", ["dog"], **neighborhood_paths) == {}
    assert _checkpoint(neighborhood_paths)["stats"]["activity_instances"] == 7

    run_pipeline("chase", ["dog"], force=True, **neighborhood_paths)
    assert _checkpoint(neighborhood_paths)["stats"]["activity_instances"] == 1


def test_new_extras_or_mode_invalidate_checkpoint(neighborhood_paths) -> None:
    run_pipeline("chase", ["dog"], **neighborhood_paths)

    processed = run_pipeline("chase", ["dog"], extras=["park"], **neighborhood_paths)
    assert processed == {"chase-dog-park": 0}
    assert _checkpoint(neighborhood_paths)["config"]["extras"] == ["park"]

    run_pipeline("chase", ["dog"], extras=["park"], mode=ActorMode.OBJECT, **neighborhood_paths)
    assert _checkpoint(neighborhood_paths)["config"]["mode"] == "object"


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    store = FileSystemStore(tmp_path / "freq")
    for key, value in CHASE_RECORDS.items():
        store.put(key, value)
    return store.root


def test_train_writes_lambdas_and_reuses_them(tmp_path: Path, store_dir: Path, vocabulary_file: Path) -> None:
    queries = tmp_path / "train.json"
    save_queries([make_query("chase")], queries)
    output = tmp_path / "lambdas.json"

    lambdas = train(queries, output, vocabulary_file, store_dir)
    assert lambdas == pytest.approx([1 / 9, 8 / 9])
    assert json.loads(output.read_text(encoding="utf-8"))["num_levels"] == 2
    assert load_lambdas(output) == pytest.approx(lambdas)

    output.write_text(json.dumps({"num_levels": 2, "lambdas": [0.5, 0.5]}), encoding="utf-8")
    assert train(queries, output, vocabulary_file, store_dir) == [0.5, 0.5]


def test_run_skips_queries_with_missing_records(tmp_path: Path, store_dir: Path, vocabulary_file: Path) -> None:
    lambdas_path = tmp_path / "lambdas.json"
    lambdas_path.write_text(json.dumps({"num_levels": 2, "lambdas": [0.25, 0.75]}), encoding="utf-8")
    queries = tmp_path / "queries.json"
    save_queries([make_query("chase"), make_query("hug")], queries)
    output = tmp_path / "distribution.json"

    dist = run(queries, [ModelType.DELETED], lambdas_path, vocabulary_path=vocabulary_file,
               store_dir=store_dir, output_path=output)

    oracle = CachedFrequencyOracle(FileSystemStore(store_dir))
    estimator = DeletedInterpolationEstimator(oracle, MentalStateVocabulary(["afraid", "angry", "happy"]))
    expected = dict(estimator.evaluate(make_query("chase"), [0.25, 0.75]))
    assert dict(dist) == pytest.approx(expected)
    saved = json.loads(output.read_text(encoding="utf-8"))
    assert saved["models"] == ["deleted"]
    assert [w for w, _ in saved["distribution"]] == ["afraid", "angry", "happy"]


def test_run_with_only_missing_records_is_empty(tmp_path: Path, store_dir: Path, vocabulary_file: Path) -> None:
    queries = tmp_path / "queries.json"
    save_queries([make_query("hug")], queries)
    dist = run(queries, [ModelType.DOCUMENT], backoff_weights=[], vocabulary_path=vocabulary_file, store_dir=store_dir)
    assert dist == []

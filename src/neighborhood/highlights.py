"""Highlights: the sentences of a document that talk about an activity's participants.

Two flavours:
- coreference highlights: activity sentences plus every sentence reached through
  the participants' coreference chains
- window highlights: sentences within a fixed distance of each activity verb
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import jsonlines
from tqdm import tqdm

from annotation.schemas import Document, Query
from frequency.oracle import CorpusFrequencyOracle, sentence_has_terms, sentence_tokens
from frequency.vocabulary import MentalStateVocabulary

from .argument_resolver import ArgumentResolver
from .coref_matcher import ArgumentChains, CoreferenceChainMatcher

logger = logging.getLogger(__name__)


@dataclass
class Highlight:
    doc_id: str
    sentences: List[int] = field(default_factory=list)


def coref_highlight(doc_id: str, chains: ArgumentChains) -> Optional[Highlight]:
    sentences = set(chains.activity_sentences)
    for chain in chains.all_chains():
        sentences.update(chain.sentences())
    if not sentences:
        return None
    return Highlight(doc_id, sorted(sentences))


def window_highlights(
    activity: str,
    document: Document,
    window: int,
    resolver: Optional[ArgumentResolver] = None,
) -> List[Highlight]:
    """One highlight per sentence holding the activity verb, spanning ``±window`` sentences."""
    resolver = resolver or ArgumentResolver()
    n = len(document.sentences)
    highlights: List[Highlight] = []
    for i, sentence in enumerate(document.sentences):
        if resolver.activity_heads(activity, sentence):
            highlights.append(Highlight(document.doc_id, list(range(max(0, i - window), min(n, i + window + 1)))))
    return highlights


def save_highlights(highlights: Sequence[Highlight], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with jsonlines.open(path, mode="w") as writer:
        for h in highlights:
            writer.write({"doc_id": h.doc_id, "sentences": h.sentences})


def load_highlights(path: Path) -> List[Highlight]:
    with jsonlines.open(path) as reader:
        return [Highlight(row["doc_id"], list(row["sentences"])) for row in reader]


def build_coref_highlights(
    activity: str,
    documents: Sequence[Document],
    matcher: CoreferenceChainMatcher,
    roles_dir: Optional[Path] = None,
    cache_path: Optional[Path] = None,
    force: bool = False,
    resolved: Optional[Mapping[Tuple[str, str], ArgumentChains]] = None,
) -> List[Highlight]:
    """Coreference highlights for every document, reusing ``cache_path`` when present.

    Chains found in ``resolved`` (keyed by activity and doc id) are used as is;
    other documents are resolved with ``matcher``.
    """
    if cache_path is not None and cache_path.exists() and not force:
        highlights = load_highlights(cache_path)
        logger.info("Loaded %d cached highlights from %s", len(highlights), cache_path)
        return highlights

    resolved = resolved or {}
    highlights: List[Highlight] = []
    for doc in tqdm(documents, desc=f"Highlights ({activity})", unit="doc", ncols=80):
        chains = resolved.get((activity.lower(), doc.doc_id))
        if chains is None:
            try:
                chains = matcher.find_argument_chains(activity, doc, matcher.roles_for(doc, roles_dir))
            except Exception as e:
                logger.error("Error building highlights for %s: %s", doc.doc_id, e)
                continue
        highlight = coref_highlight(doc.doc_id, chains)
        if highlight is not None:
            highlights.append(highlight)

    if cache_path is not None:
        save_highlights(highlights, cache_path)
        logger.info("Saved %d highlights to %s", len(highlights), cache_path)
    return highlights


def _highlight_units(highlights: Sequence[Highlight], documents: Sequence[Document]) -> List[List]:
    by_id: Dict[str, Document] = {d.doc_id: d for d in documents}
    units = []
    for h in highlights:
        doc = by_id.get(h.doc_id)
        if doc is None:
            logger.warning("Highlight refers to unknown document %s", h.doc_id)
            continue
        tokens = []
        for s_idx in h.sentences:
            if 0 <= s_idx < len(doc.sentences):
                tokens.extend(sentence_tokens(doc.sentences[s_idx]))
        units.append(tokens)
    return units


def count_highlights_with_terms(
    highlights: Sequence[Highlight],
    documents: Sequence[Document],
    query: Query,
) -> int:
    """Number of highlights in which every query term occurs under its POS constraint."""
    return sum(1 for tokens in _highlight_units(highlights, documents) if sentence_has_terms(tokens, query))


def highlight_oracle(
    highlights: Sequence[Highlight],
    documents: Sequence[Document],
    vocabulary: Optional[MentalStateVocabulary] = None,
) -> CorpusFrequencyOracle:
    """A frequency oracle whose counting units are highlight passages."""
    return CorpusFrequencyOracle(_highlight_units(highlights, documents), vocabulary)

"""Convert spaCy parses into the document model.

spaCy emits basic dependencies (``prep`` -> ``pobj``, ``agent`` -> ``pobj``). Role
resolution works on collapsed relations such as ``prep_after`` and ``agent``, so
preposition chains are collapsed here.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import spacy
from spacy.language import Language
from spacy.tokens import Doc, Span

from .schemas import CorefChain, Document, Mention, SentenceGraph

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "en_core_web_sm"


def load_pipeline(model: str = DEFAULT_MODEL) -> Language:
    """Load a spaCy pipeline, falling back to a blank sentence splitter."""
    try:
        return spacy.load(model)
    except OSError:
        logger.warning("spaCy model %s not found; sentences will carry no parse", model)
        nlp = spacy.blank("en")
        nlp.add_pipe("sentencizer")
        return nlp


def _collapsed_dependencies(sent: Span) -> List[Tuple[int, int, str]]:
    offset = sent.start
    deps: List[Tuple[int, int, str]] = []
    for tok in sent:
        if tok.dep_ in ("ROOT", "") or tok.head.i == tok.i:
            continue
        head = tok.head.i - offset
        if tok.dep_ in ("prep", "agent"):
            objects = [c for c in tok.children if c.dep_ == "pobj"]
            if objects:
                label = "agent" if tok.dep_ == "agent" else f"prep_{tok.lower_}"
                for obj in objects:
                    deps.append((head, obj.i - offset, label))
                continue
        if tok.dep_ == "pobj" and tok.head.dep_ in ("prep", "agent"):
            continue
        deps.append((head, tok.i - offset, tok.dep_))
    return deps


def sentence_from_span(sent: Span) -> SentenceGraph:
    doc = sent.doc
    words = [t.text for t in sent]
    lemmas = [t.lemma_ for t in sent] if doc.has_annotation("LEMMA") else None
    tags = [t.tag_ for t in sent] if doc.has_annotation("TAG") else None
    deps = _collapsed_dependencies(sent) if doc.has_annotation("DEP") else None
    return SentenceGraph(words, lemmas=lemmas, tags=tags, dependencies=deps)


def _mention_from_span(span: Span, sent_starts: Sequence[int], chain_id: int) -> Mention:
    sent_index = max(i for i, start in enumerate(sent_starts) if start <= span.start)
    offset = sent_starts[sent_index]
    return Mention(
        sentence=sent_index,
        head=span.root.i - offset,
        start=span.start - offset,
        end=span.end - offset,
        chain_id=chain_id,
    )


def document_from_doc(
    doc: Doc,
    doc_id: str,
    clusters: Optional[Iterable[Iterable[Span]]] = None,
) -> Document:
    """Build a ``Document`` from a spaCy ``Doc``.

    Args:
        doc: Parsed (or at least sentence-split) spaCy document
        doc_id: Identifier used for role-file lookup and caching
        clusters: Optional coreference clusters, each an iterable of spans of ``doc``

    Returns:
        Document with sentence-local token offsets
    """
    sents = list(doc.sents)
    sentences = [sentence_from_span(s) for s in sents]
    sent_starts = [s.start for s in sents]

    chains: List[CorefChain] = []
    for chain_id, cluster in enumerate(clusters or []):
        mentions = tuple(_mention_from_span(span, sent_starts, chain_id) for span in cluster)
        if mentions:
            chains.append(CorefChain(chain_id, mentions))
    return Document(doc_id=doc_id, sentences=sentences, chains=chains)


def annotate_texts(texts: Sequence[Tuple[str, str]], nlp: Optional[Language] = None) -> List[Document]:
    """Parse ``(doc_id, text)`` pairs without coreference."""
    nlp = nlp or load_pipeline()
    ids = [doc_id for doc_id, _ in texts]
    return [document_from_doc(doc, doc_id) for doc_id, doc in zip(ids, nlp.pipe(t for _, t in texts))]

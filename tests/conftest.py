from __future__ import annotations

import pytest

from annotation.schemas import CorefChain, Document, Mention, SentenceGraph
from frequency.vocabulary import MentalStateVocabulary


@pytest.fixture
def active_chase() -> SentenceGraph:
    # The police chased the thief .
    return SentenceGraph(
        words=["The", "police", "chased", "the", "thief", "."],
        lemmas=["the", "police", "chase", "the", "thief", "."],
        tags=["DT", "NN", "VBD", "DT", "NN", "."],
        dependencies=[(1, 0, "det"), (2, 1, "nsubj"), (2, 4, "dobj"), (4, 3, "det"), (2, 5, "punct")],
    )


@pytest.fixture
def passive_chase() -> SentenceGraph:
    # The thief was chased by the police
    return SentenceGraph(
        words=["The", "thief", "was", "chased", "by", "the", "police"],
        lemmas=["the", "thief", "be", "chase", "by", "the", "police"],
        tags=["DT", "NN", "VBD", "VBN", "IN", "DT", "NN"],
        dependencies=[(1, 0, "det"), (3, 1, "nsubjpass"), (3, 2, "auxpass"), (3, 6, "agent"), (6, 5, "det")],
    )


@pytest.fixture
def chase_after() -> SentenceGraph:
    # The dog chased after the cat
    return SentenceGraph(
        words=["The", "dog", "chased", "after", "the", "cat"],
        lemmas=["the", "dog", "chase", "after", "the", "cat"],
        tags=["DT", "NN", "VBD", "IN", "DT", "NN"],
        dependencies=[(1, 0, "det"), (2, 1, "nsubj"), (2, 5, "prep_after"), (5, 4, "det")],
    )


@pytest.fixture
def vocabulary() -> MentalStateVocabulary:
    return MentalStateVocabulary(["Afraid", "angry", "happy", " "])


@pytest.fixture
def dog_document() -> Document:
    """Two sentences; the dog chases the cat, then the dog is angry."""
    chase = SentenceGraph(
        words=["The", "dog", "chased", "the", "cat", "."],
        lemmas=["the", "dog", "chase", "the", "cat", "."],
        tags=["DT", "NN", "VBD", "DT", "NN", "."],
        dependencies=[(1, 0, "det"), (2, 1, "nsubj"), (2, 4, "dobj"), (4, 3, "det"), (2, 5, "punct")],
    )
    angry = SentenceGraph(
        words=["The", "dog", "was", "angry", "."],
        lemmas=["the", "dog", "be", "angry", "."],
        tags=["DT", "NN", "VBD", "JJ", "."],
        dependencies=[(1, 0, "det"), (3, 1, "nsubj"), (3, 2, "cop"), (3, 4, "punct")],
    )
    dog_chain = CorefChain(0, (Mention(0, 1, 0, 2, 0), Mention(1, 1, 0, 2, 0)))
    cat_chain = CorefChain(1, (Mention(0, 4, 3, 5, 1),))
    return Document(doc_id="doc-1", sentences=[chase, angry], chains=[dog_chain, cat_chain])

"""Data model for parsed documents, coreference chains and semantic-role annotations.

Sentences keep their dependency parse in a networkx graph. Lemmas, tags and the
parse may each be absent; callers go through the ``*_lookup`` accessors, which
return ``Present`` or ``Missing`` instead of raising.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

import networkx as nx

logger = logging.getLogger(__name__)


# Penn Treebank tag groups
POS_JJS: FrozenSet[str] = frozenset({"JJ", "JJR", "JJS"})
POS_VBS: FrozenSet[str] = frozenset({"VB", "VBD", "VBG", "VBN", "VBP", "VBZ"})
POS_NNS: FrozenSet[str] = frozenset({"NN", "NNS", "NNP", "NNPS", "PRP", "PRP$", "WP", "WP$"})

# Default part-of-speech constraint for mental-state words
POS_STATES: FrozenSet[str] = POS_JJS | POS_VBS


@dataclass(frozen=True)
class Present:
    value: Any


@dataclass(frozen=True)
class Missing:
    reason: str


Lookup = Union[Present, Missing]


@dataclass(frozen=True)
class DependencyEdge:
    head: int
    modifier: int
    relation: str


class SentenceGraph:
    """One parsed sentence: tokens, optional lemmas/tags and a dependency graph."""

    def __init__(
        self,
        words: Sequence[str],
        lemmas: Optional[Sequence[str]] = None,
        tags: Optional[Sequence[str]] = None,
        dependencies: Optional[Iterable[Tuple[int, int, str]]] = None,
    ):
        self.words: List[str] = list(words)
        self.lemmas: Optional[List[str]] = list(lemmas) if lemmas is not None else None
        self.tags: Optional[List[str]] = list(tags) if tags is not None else None
        self.graph: Optional[nx.MultiDiGraph] = None

        if dependencies is not None:
            self.graph = nx.MultiDiGraph()
            self.graph.add_nodes_from(range(len(self.words)))
            for head, modifier, relation in dependencies:
                if not (0 <= head < len(self.words) and 0 <= modifier < len(self.words)):
                    logger.warning(
                        "Dropping out-of-range dependency %s(%d, %d) in sentence of %d tokens",
                        relation, head, modifier, len(self.words),
                    )
                    continue
                self.graph.add_edge(head, modifier, relation=relation)

    def __len__(self) -> int:
        return len(self.words)

    def lemma_lookup(self) -> Lookup:
        if self.lemmas is None:
            return Missing("no lemmas")
        return Present(self.lemmas)

    def tag_lookup(self) -> Lookup:
        if self.tags is None:
            return Missing("no part-of-speech tags")
        return Present(self.tags)

    def dependency_lookup(self) -> Lookup:
        if self.graph is None:
            return Missing("no dependency parse")
        return Present(self.graph)

    def edges(self) -> List[DependencyEdge]:
        if self.graph is None:
            return []
        return [DependencyEdge(h, m, rel) for h, m, rel in self.graph.edges(data="relation")]

    def edges_from(self, head: int) -> List[DependencyEdge]:
        """Edges governed by ``head``, in insertion order."""
        if self.graph is None or head not in self.graph:
            return []
        return [DependencyEdge(h, m, rel) for h, m, rel in self.graph.out_edges(head, data="relation")]

    def edges_into(self, modifier: int) -> List[DependencyEdge]:
        if self.graph is None or modifier not in self.graph:
            return []
        return [DependencyEdge(h, m, rel) for h, m, rel in self.graph.in_edges(modifier, data="relation")]

    def text(self) -> str:
        return " ".join(self.words)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "words": self.words,
            "lemmas": self.lemmas,
            "tags": self.tags,
            "dependencies": (
                [[e.head, e.modifier, e.relation] for e in self.edges()] if self.graph is not None else None
            ),
        }


@dataclass(frozen=True)
class Mention:
    """Span ``[start, end)`` in a sentence with a designated head token."""

    sentence: int
    head: int
    start: int
    end: int
    chain_id: int = 0

    def with_offsets(self, start: int, end: int) -> "Mention":
        return replace(self, start=start, end=end)


@dataclass(frozen=True)
class CorefChain:
    chain_id: int
    mentions: Tuple[Mention, ...]

    def with_mention(self, index: int, mention: Mention) -> "CorefChain":
        """Return a copy of this chain with the mention at ``index`` swapped out."""
        mentions = list(self.mentions)
        mentions[index] = mention
        return CorefChain(self.chain_id, tuple(mentions))

    def sentences(self) -> List[int]:
        return sorted({m.sentence for m in self.mentions})


@dataclass
class Document:
    doc_id: str
    sentences: List[SentenceGraph]
    chains: List[CorefChain] = field(default_factory=list)

    def total_tokens(self) -> int:
        return sum(len(s) for s in self.sentences)


@dataclass(frozen=True)
class RoleArgument:
    name: str  # A0, A1, AM-LOC, ...
    start: int
    end: int


@dataclass
class RoleSentence:
    lemmas: List[str]
    role_labels: Dict[int, List[RoleArgument]] = field(default_factory=dict)  # predicate head -> args


@dataclass
class RoleDocument:
    sentences: List[RoleSentence] = field(default_factory=list)

    def aligned_with(self, document: Document) -> bool:
        return len(self.sentences) == len(document.sentences)


@dataclass(frozen=True)
class QueryTerm:
    term: str
    pos: Optional[FrozenSet[str]] = None

    def matches(self, lemma: str, tag: Optional[str]) -> bool:
        if lemma.lower() != self.term.lower():
            return False
        if self.pos is None:
            return True
        return tag is not None and tag in self.pos


Query = Tuple[QueryTerm, ...]


def make_query(*terms: Union[str, QueryTerm, Tuple[str, Optional[Iterable[str]]]]) -> Query:
    """Build a query tuple from plain terms, ``QueryTerm``s or ``(term, pos)`` pairs."""
    built: List[QueryTerm] = []
    for t in terms:
        if isinstance(t, QueryTerm):
            built.append(t)
        elif isinstance(t, str):
            built.append(QueryTerm(t))
        else:
            term, pos = t
            built.append(QueryTerm(term, frozenset(pos) if pos is not None else None))
    return tuple(built)


def query_terms(query: Query) -> List[str]:
    return [q.term for q in query]

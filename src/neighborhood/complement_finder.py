"""Find descriptor words predicated of an actor ("the *angry* dog", "he *felt* scared")."""
from __future__ import annotations

import logging
from typing import Collection, List, Set

from annotation.schemas import Present, SentenceGraph

logger = logging.getLogger(__name__)

# Copular-like verbs whose own complement carries the state
DEFERRED_LEMMAS = {"feel"}


class ComplementFinder:
    def __init__(self, deferred_lemmas: Collection[str] = DEFERRED_LEMMAS):
        self.deferred_lemmas = {w.lower() for w in deferred_lemmas}

    def find(self, sentence: SentenceGraph, actors: Collection[int]) -> Set[int]:
        """Token indices of words describing any of ``actors``.

        - ``amod`` modifiers of an actor
        - heads of ``nsubj``/``nsubjpass`` edges whose modifier is an actor,
          unless the head is a deferred verb ("feel")
        - ``acomp``/``dep`` modifiers of those deferred verbs
        """
        if not isinstance(sentence.dependency_lookup(), Present):
            return set()
        lemmas = sentence.lemma_lookup()
        lemma_values: List[str] = lemmas.value if isinstance(lemmas, Present) else []
        actor_set = set(actors)

        targets: Set[int] = set()
        deferred: Set[int] = set()
        for edge in sentence.edges():
            if edge.relation == "amod" and edge.head in actor_set:
                targets.add(edge.modifier)
            elif edge.relation in ("nsubj", "nsubjpass") and edge.modifier in actor_set:
                head_lemma = lemma_values[edge.head].lower() if edge.head < len(lemma_values) else ""
                if head_lemma in self.deferred_lemmas:
                    deferred.add(edge.head)
                else:
                    targets.add(edge.head)

        for head in deferred:
            for edge in sentence.edges_from(head):
                if edge.relation in ("acomp", "dep"):
                    targets.add(edge.modifier)
        return targets

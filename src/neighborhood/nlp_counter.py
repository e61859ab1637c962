"""Joint frequencies of activity contexts and mental states from parsed documents.

A document supports a search context such as (chase, dog) when every search term
occurs in the sentences covered by the activity participants' coreference chains.
For each supporting document, the mental-state words predicated of those
participants are counted once per sentence.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from tqdm import tqdm

from annotation.schemas import POS_NNS, POS_STATES, POS_VBS, CorefChain, Document, Present, Query, QueryTerm, query_terms
from frequency.oracle import sentence_has_terms, sentence_tokens
from frequency.store import KeyValueStore, cache_key
from frequency.vocabulary import MentalStateVocabulary

from .complement_finder import ComplementFinder
from .coref_matcher import ArgumentChains, CoreferenceChainMatcher

logger = logging.getLogger(__name__)

# (activity, doc_id) -> resolved argument chains
ChainCache = Dict[Tuple[str, str], ArgumentChains]


class ActorMode(str, Enum):
    SUBJECT = "subject"
    OBJECT = "object"
    ALL = "all"


@dataclass
class ContextCounts:
    """Counts gathered for one search context."""

    context: Query
    documents: int
    states: Counter


def search_contexts(
    activity: str,
    actors: Sequence[str],
    extras: Sequence[str] = (),
    with_pos: bool = True,
) -> List[Query]:
    """The bare activity, each (activity, actor) pair and, if given, each (activity, actor, extra)."""
    activity_term = QueryTerm(activity.lower(), POS_VBS if with_pos else None)
    noun_pos = POS_NNS if with_pos else None
    contexts: List[Query] = [(activity_term,)]
    for actor in actors:
        actor_term = QueryTerm(actor.lower(), noun_pos)
        contexts.append((activity_term, actor_term))
        for extra in extras:
            contexts.append((activity_term, actor_term, QueryTerm(extra.lower(), noun_pos)))
    return contexts


class NLPNeighborhoodCounter:
    def __init__(
        self,
        vocabulary: MentalStateVocabulary,
        matcher: Optional[CoreferenceChainMatcher] = None,
        finder: Optional[ComplementFinder] = None,
        target_pos: FrozenSet[str] = POS_STATES,
        mode: ActorMode = ActorMode.ALL,
    ):
        self.vocabulary = vocabulary
        self.matcher = matcher or CoreferenceChainMatcher()
        self.finder = finder or ComplementFinder()
        self.target_pos = target_pos
        self.mode = mode

    def select_chains(self, chains: ArgumentChains) -> List[CorefChain]:
        if self.mode is ActorMode.SUBJECT:
            return list(chains.subjects)
        if self.mode is ActorMode.OBJECT:
            return list(chains.objects)
        return chains.all_chains()

    def process_chains(self, document: Document, chains: Sequence[CorefChain], query: Query, counter: Counter) -> bool:
        """Count mental states around ``chains`` if their sentences contain every query term.

        Returns:
            True if the chains' sentences form a valid highlight for ``query``
        """
        heads_by_sentence: Dict[int, Set[int]] = {}
        for chain in chains:
            for mention in chain.mentions:
                if 0 <= mention.sentence < len(document.sentences):
                    heads_by_sentence.setdefault(mention.sentence, set()).add(mention.head)
        if not heads_by_sentence:
            return False

        highlight_sentences = sorted(heads_by_sentence)
        tokens = [t for i in highlight_sentences for t in sentence_tokens(document.sentences[i])]
        if not sentence_has_terms(tokens, query):
            return False

        for i in highlight_sentences:
            sentence = document.sentences[i]
            lemmas = sentence.lemma_lookup()
            tags = sentence.tag_lookup()
            if not isinstance(lemmas, Present) or not isinstance(tags, Present):
                continue
            targets = self.finder.find(sentence, heads_by_sentence[i])
            words = {lemmas.value[j].lower() for j in targets if tags.value[j] in self.target_pos}
            for word in words:
                if word in counter:
                    counter[word] += 1
        return True

    def argument_chains(
        self,
        activity: str,
        document: Document,
        roles_dir: Optional[Path] = None,
        cache: Optional[ChainCache] = None,
    ) -> ArgumentChains:
        key = (activity.lower(), document.doc_id)
        if cache is not None and key in cache:
            return cache[key]
        roles = self.matcher.roles_for(document, roles_dir)
        chains = self.matcher.find_argument_chains(activity, document, roles)
        if cache is not None:
            cache[key] = chains
        return chains

    def resolve_documents(
        self,
        activity: str,
        documents: Sequence[Document],
        roles_dir: Optional[Path] = None,
    ) -> ChainCache:
        """Argument chains of ``activity`` for every document, resolved once each."""
        resolved: ChainCache = {}
        for doc in tqdm(documents, desc=f"Arguments ({activity})", unit="doc", ncols=80):
            try:
                self.argument_chains(activity, doc, roles_dir, resolved)
            except Exception as e:
                logger.error("Error resolving arguments in %s: %s", doc.doc_id, e)
                continue
        return resolved

    def count_context(
        self,
        documents: Sequence[Document],
        context: Query,
        roles_dir: Optional[Path] = None,
        cache: Optional[ChainCache] = None,
    ) -> ContextCounts:
        """Count supporting documents and mental states for one search context.

        The first term of ``context`` is the activity. A fresh counter is
        returned for every call.
        """
        activity = context[0].term
        counter = self.vocabulary.new_counter()
        supported = 0
        for doc in tqdm(documents, desc=" ".join(query_terms(context)), unit="doc", ncols=80):
            try:
                chains = self.argument_chains(activity, doc, roles_dir, cache)
                if self.process_chains(doc, self.select_chains(chains), context, counter):
                    supported += 1
            except Exception as e:
                logger.error("Error processing %s: %s", doc.doc_id, e)
                continue
        return ContextCounts(context=context, documents=supported, states=counter)

    def _is_cached(self, context: Query, store: KeyValueStore) -> bool:
        terms = query_terms(context)
        for state in self.vocabulary:
            if cache_key(terms + [state]) not in store:
                return False
        return len(terms) < 2 or cache_key(terms) in store

    def compute_joint_frequencies(
        self,
        documents: Sequence[Document],
        contexts: Sequence[Query],
        store: KeyValueStore,
        roles_dir: Optional[Path] = None,
        overwrite: bool = False,
        resolved: Optional[ChainCache] = None,
    ) -> Dict[str, int]:
        """Persist ``context + [state]`` counts for every state, and each multi-term context count.

        Contexts whose records already exist are skipped unless ``overwrite``.
        Argument chains are resolved at most once per document and activity
        within the call; ``resolved`` seeds them from an earlier pass.

        Returns:
            Map of context key to number of supporting documents, for contexts processed
        """
        cache: ChainCache = dict(resolved or {})
        processed: Dict[str, int] = {}
        for context in contexts:
            key = cache_key(query_terms(context))
            if not overwrite and self._is_cached(context, store):
                logger.info("Frequencies for '%s' already cached; skipping", key)
                continue

            counts = self.count_context(documents, context, roles_dir, cache)
            terms = query_terms(context)
            for state, freq in sorted(counts.states.items()):
                store.put(cache_key(terms + [state]), int(freq), overwrite=overwrite)
            if len(terms) > 1:
                store.put(key, counts.documents, overwrite=overwrite)

            nonzero = {w: c for w, c in counts.states.items() if c}
            logger.info("Search terms: %s | supporting documents: %d", " ".join(terms), counts.documents)
            logger.info("State counts: %s", nonzero)
            processed[key] = counts.documents
        return processed

"""Reconcile the two argument sources and extend arguments through coreference chains.

Dependency parses and semantic-role labels disagree often enough that neither is
trusted blindly. Each activity occurrence takes its arguments from whichever source
resolved it more completely. The resulting argument heads (dependency side) and
spans (role side) are then matched against the document's coreference chains.
"""
from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from annotation.loader import RoleParseError, lookup_roles
from annotation.schemas import CorefChain, Document, Lookup, Missing, Present, RoleSentence

from .argument_resolver import ArgumentCandidates, ArgumentResolver

logger = logging.getLogger(__name__)

MIN_OVERLAP_RATIO = 0.3


@dataclass
class ResolutionStats:
    """Diagnostic counters accumulated over a run."""

    activity_instances: int = 0
    dependency_successes: int = 0
    dependency_failures: int = 0
    role_successes: int = 0
    total_failures: int = 0
    role_parse_errors: int = 0
    extended_sentences: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class ArgumentTargets:
    """Resolved arguments of one role (subject or object) across a document."""

    heads: Dict[int, Set[int]] = field(default_factory=dict)  # sentence -> token heads
    spans: Dict[int, Set[Tuple[int, int]]] = field(default_factory=dict)  # sentence -> [start, end)

    def add(self, sentence: int, candidates: List, from_roles: bool) -> None:
        if not candidates:
            return
        target = self.spans if from_roles else self.heads
        target.setdefault(sentence, set()).update(candidates)

    def sentences(self) -> Set[int]:
        return set(self.heads) | set(self.spans)


@dataclass
class ArgumentChains:
    subjects: List[CorefChain] = field(default_factory=list)
    objects: List[CorefChain] = field(default_factory=list)
    activity_sentences: Set[int] = field(default_factory=set)

    def all_chains(self) -> List[CorefChain]:
        return self.subjects + self.objects


class CoreferenceChainMatcher:
    """Find the coreference chains that refer to an activity's participants."""

    def __init__(
        self,
        resolver: Optional[ArgumentResolver] = None,
        min_overlap: float = MIN_OVERLAP_RATIO,
        debug: bool = False,
    ):
        self.resolver = resolver or ArgumentResolver()
        self.min_overlap = min_overlap
        self.debug = debug or bool(int(os.getenv("MSD_DEBUG", "0")))
        self.stats = ResolutionStats()

    def roles_for(self, document: Document, roles_dir: Optional[Path]) -> Lookup:
        """Load the role annotation for ``document``, counting malformed files."""
        try:
            return lookup_roles(roles_dir, document)
        except RoleParseError as e:
            self.stats.role_parse_errors += 1
            logger.warning("Role file for %s is malformed: %s", document.doc_id, e)
            return Missing(f"parse error: {e}")

    def reconcile(self, activity: str, document: Document, roles: Lookup) -> Tuple[ArgumentTargets, ArgumentTargets]:
        """Pick an argument source per activity occurrence.

        Returns:
            (subject targets, object targets) for the whole document
        """
        subjects = ArgumentTargets()
        objects = ArgumentTargets()
        role_doc = roles.value if isinstance(roles, Present) and roles.value.aligned_with(document) else None

        for s_idx, sentence in enumerate(document.sentences):
            deps = self.resolver.resolve(activity, sentence)
            if not deps:
                continue

            role_sentence: Optional[RoleSentence] = None
            if role_doc is not None:
                candidate = role_doc.sentences[s_idx]
                lemmas = sentence.lemma_lookup()
                if isinstance(lemmas, Present) and len(candidate.lemmas) == len(lemmas.value):
                    role_sentence = candidate
            role_args: Dict[int, ArgumentCandidates] = (
                self.resolver.resolve_roles(role_sentence, list(deps)) if role_sentence is not None else {}
            )

            for head, dep_args in deps.items():
                self.stats.activity_instances += 1
                chosen, from_roles = self._choose(dep_args, role_args.get(head), role_sentence is not None)
                if chosen is None:
                    continue
                subjects.add(s_idx, chosen.subjects, from_roles)
                objects.add(s_idx, chosen.objects, from_roles)

        return subjects, objects

    def _choose(
        self,
        dep_args: ArgumentCandidates,
        role_args: Optional[ArgumentCandidates],
        roles_available: bool,
    ) -> Tuple[Optional[ArgumentCandidates], bool]:
        if dep_args.has_both() or not roles_available:
            if dep_args.has_both():
                self.stats.dependency_successes += 1
            elif not dep_args.has_any():
                self.stats.dependency_failures += 1
            return dep_args, False
        if role_args is not None and role_args.has_both():
            self.stats.role_successes += 1
            return role_args, True
        if dep_args.has_any():
            return dep_args, False
        if role_args is not None and role_args.has_any():
            self.stats.dependency_failures += 1
            return role_args, True
        self.stats.total_failures += 1
        return None, False

    def match_chains(self, chains: List[CorefChain], targets: ArgumentTargets) -> List[CorefChain]:
        """Select the chains that refer to the resolved arguments.

        A chain with a mention whose head is a dependency argument is taken as
        is. Otherwise a mention whose head falls inside a role span that overlaps
        it enough yields a derived chain whose mention is widened to cover the
        span. Each span keeps only its best-overlapping derived chain.
        """
        direct: List[CorefChain] = []
        derived: Dict[Tuple[int, int, int], Tuple[float, CorefChain]] = {}

        for chain in chains:
            for m_idx, mention in enumerate(chain.mentions):
                if mention.head in targets.heads.get(mention.sentence, ()):
                    direct.append(chain)
                    break

                spans = targets.spans.get(mention.sentence)
                if not spans:
                    continue
                best: Optional[Tuple[float, Tuple[int, int]]] = None
                for start, end in sorted(spans):
                    if not (start <= mention.head < end):
                        continue
                    intersection = min(end, mention.end) - max(start, mention.start)
                    if intersection <= 0:
                        continue
                    union = max(end, mention.end) - min(start, mention.start)
                    ratio = intersection / union
                    if ratio >= self.min_overlap and (best is None or ratio > best[0]):
                        best = (ratio, (start, end))

                if best is not None:
                    ratio, (start, end) = best
                    merged = mention.with_offsets(min(start, mention.start), max(end, mention.end))
                    key = (mention.sentence, start, end)
                    current = derived.get(key)
                    if current is None or ratio > current[0]:
                        derived[key] = (ratio, chain.with_mention(m_idx, merged))
                    break

        return direct + [chain for _, chain in derived.values()]

    def find_argument_chains(self, activity: str, document: Document, roles: Optional[Lookup] = None) -> ArgumentChains:
        """Coreference chains for the subjects and objects of ``activity`` in ``document``."""
        roles = roles if roles is not None else Missing("no role annotation")
        subject_targets, object_targets = self.reconcile(activity, document, roles)
        result = ArgumentChains(
            subjects=self.match_chains(document.chains, subject_targets),
            objects=self.match_chains(document.chains, object_targets),
            activity_sentences=subject_targets.sentences() | object_targets.sentences(),
        )

        covered = {s for chain in result.all_chains() for s in chain.sentences()}
        self.stats.extended_sentences += len(covered - result.activity_sentences)

        if self.debug:
            for chain in result.all_chains():
                logger.debug(
                    "[%s] chain %d: %s", document.doc_id, chain.chain_id,
                    " | ".join(
                        " ".join(document.sentences[m.sentence].words[m.start:m.end]) for m in chain.mentions
                    ),
                )
        return result

"""Locate the subject and object participants of each activity occurrence."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from annotation.schemas import POS_VBS, Present, RoleSentence, SentenceGraph

logger = logging.getLogger(__name__)

# Extra object relations for specific activities ("chased after the thief")
DEFAULT_OBJECT_EXTENSIONS: Dict[str, Tuple[str, ...]] = {
    "chase": ("prep_after",),
}


@dataclass
class ArgumentCandidates:
    """Token indices (dependency side) or spans (role side) for one activity occurrence."""

    subjects: List = field(default_factory=list)
    objects: List = field(default_factory=list)

    def has_both(self) -> bool:
        return bool(self.subjects) and bool(self.objects)

    def has_any(self) -> bool:
        return bool(self.subjects) or bool(self.objects)


class ArgumentResolver:
    """Resolve activity arguments from dependency edges and semantic-role labels."""

    def __init__(self, object_extensions: Optional[Mapping[str, Sequence[str]]] = None):
        extensions = DEFAULT_OBJECT_EXTENSIONS if object_extensions is None else object_extensions
        self.object_extensions = {k.lower(): tuple(v) for k, v in extensions.items()}

    def activity_heads(self, activity: str, sentence: SentenceGraph) -> List[int]:
        """Token indices whose lemma is ``activity`` and whose tag is a verb tag."""
        lemmas = sentence.lemma_lookup()
        tags = sentence.tag_lookup()
        if not isinstance(lemmas, Present) or not isinstance(tags, Present):
            return []
        target = activity.lower()
        return [
            i for i, (lemma, tag) in enumerate(zip(lemmas.value, tags.value))
            if lemma.lower() == target and tag in POS_VBS
        ]

    def resolve(self, activity: str, sentence: SentenceGraph) -> Dict[int, ArgumentCandidates]:
        """Map each activity head in ``sentence`` to its dependency arguments.

        Passive clauses with an ``agent`` take the agent as subject and the
        passive subject as object; otherwise ``nsubj``/``dobj`` plus any
        activity-specific object relations are used. Heads in a sentence without
        a parse map to empty candidates; sentences without lemmas or tags resolve
        to an empty map.
        """
        extensions = self.object_extensions.get(activity.lower(), ())

        resolved: Dict[int, ArgumentCandidates] = {}
        for head in self.activity_heads(activity, sentence):
            by_relation: Dict[str, List[int]] = {}
            for edge in sentence.edges_from(head):
                by_relation.setdefault(edge.relation, []).append(edge.modifier)

            args = ArgumentCandidates()
            if "agent" in by_relation:
                args.subjects.extend(by_relation["agent"])
                args.objects.extend(by_relation.get("nsubjpass", []))
            else:
                args.subjects.extend(by_relation.get("nsubj", []))
                args.objects.extend(by_relation.get("dobj", []))
                for relation in extensions:
                    args.objects.extend(by_relation.get(relation, []))
            resolved[head] = args
        return resolved

    @staticmethod
    def resolve_roles(role_sentence: RoleSentence, heads: Sequence[int]) -> Dict[int, ArgumentCandidates]:
        """Map each head that carries role labels to its A0 (subject) and A1 (object) spans."""
        resolved: Dict[int, ArgumentCandidates] = {}
        for head in heads:
            if head not in role_sentence.role_labels:
                continue
            args = ArgumentCandidates()
            for arg in role_sentence.role_labels[head]:
                name = arg.name.upper()
                if name == "A0":
                    args.subjects.append((arg.start, arg.end))
                elif name == "A1":
                    args.objects.append((arg.start, arg.end))
            resolved[head] = args
        return resolved

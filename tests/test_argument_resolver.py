from __future__ import annotations

from annotation.schemas import RoleArgument, RoleSentence, SentenceGraph
from neighborhood.argument_resolver import ArgumentResolver


def test_active_voice_subject_and_object(active_chase) -> None:
    resolved = ArgumentResolver().resolve("chase", active_chase)
    assert list(resolved) == [2]
    assert resolved[2].subjects == [1]
    assert resolved[2].objects == [4]
    assert resolved[2].has_both()


def test_passive_voice_uses_agent_as_subject(passive_chase) -> None:
    resolved = ArgumentResolver().resolve("CHASE", passive_chase)
    assert resolved[3].subjects == [6]
    assert resolved[3].objects == [1]


def test_chase_after_extension(chase_after) -> None:
    resolved = ArgumentResolver().resolve("chase", chase_after)
    assert resolved[2].subjects == [1]
    assert resolved[2].objects == [5]


def test_extensions_are_per_activity(chase_after) -> None:
    resolver = ArgumentResolver(object_extensions={"follow": ("prep_after",)})
    resolved = resolver.resolve("chase", chase_after)
    assert resolved[2].objects == []


def test_noun_occurrence_is_not_an_activity() -> None:
    sentence = SentenceGraph(
        words=["The", "chase", "ended"],
        lemmas=["the", "chase", "end"],
        tags=["DT", "NN", "VBD"],
        dependencies=[(1, 0, "det"), (2, 1, "nsubj")],
    )
    assert ArgumentResolver().resolve("chase", sentence) == {}


def test_missing_lemmas_yield_nothing(active_chase) -> None:
    sentence = SentenceGraph(words=active_chase.words, tags=active_chase.tags, dependencies=[(2, 1, "nsubj")])
    assert ArgumentResolver().resolve("chase", sentence) == {}


def test_missing_parse_gives_empty_candidates(active_chase) -> None:
    sentence = SentenceGraph(words=active_chase.words, lemmas=active_chase.lemmas, tags=active_chase.tags)
    resolved = ArgumentResolver().resolve("chase", sentence)
    assert list(resolved) == [2]
    assert not resolved[2].has_any()


def test_each_occurrence_resolves_independently() -> None:
    # dogs chase cats , cats chase mice
    sentence = SentenceGraph(
        words=["dogs", "chase", "cats", ",", "cats", "chase", "mice"],
        lemmas=["dog", "chase", "cat", ",", "cat", "chase", "mouse"],
        tags=["NNS", "VBP", "NNS", ",", "NNS", "VBP", "NNS"],
        dependencies=[(1, 0, "nsubj"), (1, 2, "dobj"), (1, 5, "conj"), (5, 4, "nsubj"), (5, 6, "dobj")],
    )
    resolved = ArgumentResolver().resolve("chase", sentence)
    assert resolved[1].subjects == [0] and resolved[1].objects == [2]
    assert resolved[5].subjects == [4] and resolved[5].objects == [6]


def test_role_arguments_a0_a1() -> None:
    role_sentence = RoleSentence(
        lemmas=["the", "police", "chase", "the", "thief"],
        role_labels={
            2: [RoleArgument("a0", 0, 2), RoleArgument("V", 2, 3), RoleArgument("A1", 3, 5)],
            4: [RoleArgument("A0", 3, 5)],
        },
    )
    resolved = ArgumentResolver.resolve_roles(role_sentence, [2, 3])
    assert list(resolved) == [2]
    assert resolved[2].subjects == [(0, 2)]
    assert resolved[2].objects == [(3, 5)]

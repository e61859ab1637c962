from __future__ import annotations

from pathlib import Path

import pytest

from annotation.loader import (
    RoleParseError,
    document_from_dict,
    load_corpus,
    load_role_document,
    lookup_roles,
    parse_role_lines,
    save_corpus,
)
from annotation.schemas import Document, Missing, Present, RoleArgument, SentenceGraph

ROLE_FILE = """1

4
The dog chased it

(S1 (S (NP (DT The) (NN dog)) (VP (VBD chased) (NP (PRP it)))))

0 DT "the" 0 (A0*
1 NN "dog" 0 *)
2 VBD "chase" 1 (V*)
3 PRP "it" 0 (A1*)
"""


def test_parse_role_file(tmp_path: Path) -> None:
    path = tmp_path / "doc-1.txt"
    path.write_text(ROLE_FILE, encoding="utf-8")
    roles = load_role_document(path)
    assert len(roles.sentences) == 1
    sentence = roles.sentences[0]
    assert sentence.lemmas == ["the", "dog", "chase", "it"]
    assert sentence.role_labels == {
        2: [RoleArgument("A0", 0, 2), RoleArgument("V", 2, 3), RoleArgument("A1", 3, 4)],
    }


@pytest.mark.parametrize(
    "text",
    [
        "",
        "x\n",
        "1\nnot blank\n",
        # head flagged but no relation columns
        "1\n\n1\nmeta\n\n(S1)\n\n0 NN \"dog\" 1\n",
        # argument never closed
        "1\n\n1\nmeta\n\n(S1)\n\n0 NN \"dog\" 1 (A0*\n",
        # truncated token table
        "1\n\n2\nmeta\n\n(S1)\n\n0 NN \"dog\" 1 (V*)\n",
    ],
)
def test_malformed_role_files(text: str) -> None:
    with pytest.raises(RoleParseError):
        parse_role_lines(iter(text.splitlines()))


def test_lookup_roles_alignment(tmp_path: Path) -> None:
    (tmp_path / "aligned.txt").write_text(ROLE_FILE, encoding="utf-8")
    (tmp_path / "twosent.txt").write_text(ROLE_FILE, encoding="utf-8")
    one = Document("aligned", [SentenceGraph(["The", "dog", "chased", "it"])])
    two = Document("twosent", [SentenceGraph(["a"]), SentenceGraph(["b"])])

    assert isinstance(lookup_roles(tmp_path, one), Present)
    assert isinstance(lookup_roles(tmp_path, two), Missing)
    assert isinstance(lookup_roles(tmp_path, Document("absent", [])), Missing)
    assert isinstance(lookup_roles(None, one), Missing)


def test_document_from_dict_handles_missing_annotations() -> None:
    doc = document_from_dict({
        "doc_id": "d1",
        "sentences": [
            {"words": ["Dogs", "bark"], "lemmas": ["dog", "bark"], "tags": None, "dependencies": [[1, 0, "nsubj"]]},
            {"words": ["Hi"]},
        ],
        "corefs": [[{"sentence": 0, "head": 0, "start": 0, "end": 1}], []],
    })
    first, second = doc.sentences
    assert isinstance(first.lemma_lookup(), Present)
    assert isinstance(first.tag_lookup(), Missing)
    assert [(e.head, e.modifier, e.relation) for e in first.edges()] == [(1, 0, "nsubj")]
    assert isinstance(second.dependency_lookup(), Missing)
    assert len(doc.chains) == 1
    assert doc.chains[0].mentions[0].head == 0


def test_out_of_range_dependencies_are_dropped() -> None:
    sentence = SentenceGraph(["a", "b"], dependencies=[(0, 1, "dep"), (0, 5, "dep")])
    assert len(sentence.edges()) == 1


def test_corpus_file_round_trip(tmp_path: Path, dog_document: Document) -> None:
    path = tmp_path / "corpus" / "docs.jsonl"
    save_corpus([dog_document], path)
    loaded = load_corpus(path)
    assert loaded[0].doc_id == "doc-1"
    assert loaded[0].sentences[1].lemmas == ["the", "dog", "be", "angry", "."]
    assert loaded[0].chains == dog_document.chains
    with pytest.raises(FileNotFoundError):
        load_corpus(tmp_path / "nope.jsonl")

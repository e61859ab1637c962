"""Load annotated documents (JSONL) and semantic-role files (SwiRL column format)."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import jsonlines

from .schemas import (
    CorefChain,
    Document,
    Lookup,
    Mention,
    Missing,
    Present,
    RoleArgument,
    RoleDocument,
    RoleSentence,
    SentenceGraph,
)

logger = logging.getLogger(__name__)


class RoleParseError(ValueError):
    """Raised when a semantic-role file does not follow the column format."""


def document_from_dict(row: Dict[str, Any]) -> Document:
    sentences = [
        SentenceGraph(
            words=s.get("words", []),
            lemmas=s.get("lemmas"),
            tags=s.get("tags"),
            dependencies=[tuple(d) for d in s["dependencies"]] if s.get("dependencies") is not None else None,
        )
        for s in row.get("sentences", [])
    ]
    chains: List[CorefChain] = []
    for chain_id, raw_chain in enumerate(row.get("corefs", []) or []):
        mentions = tuple(
            Mention(
                sentence=int(m["sentence"]),
                head=int(m["head"]),
                start=int(m["start"]),
                end=int(m["end"]),
                chain_id=chain_id,
            )
            for m in raw_chain
        )
        if mentions:
            chains.append(CorefChain(chain_id, mentions))
    return Document(doc_id=str(row.get("doc_id", "")), sentences=sentences, chains=chains)


def document_to_dict(doc: Document) -> Dict[str, Any]:
    return {
        "doc_id": doc.doc_id,
        "sentences": [s.to_dict() for s in doc.sentences],
        "corefs": [
            [{"sentence": m.sentence, "head": m.head, "start": m.start, "end": m.end} for m in chain.mentions]
            for chain in doc.chains
        ],
    }


def iter_corpus(path: Path) -> Iterator[Document]:
    """Stream documents from a JSONL corpus file."""
    if not path.exists():
        raise FileNotFoundError(f"Corpus file not found: {path}")
    with jsonlines.open(path) as reader:
        for row in reader:
            yield document_from_dict(row)


def load_corpus(path: Path) -> List[Document]:
    docs = list(iter_corpus(path))
    logger.info("Loaded %d documents from %s", len(docs), path)
    return docs


def save_corpus(docs: List[Document], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with jsonlines.open(path, mode="w") as writer:
        for doc in docs:
            writer.write(document_to_dict(doc))


def _next_line(lines: Iterator[str]) -> str:
    try:
        return next(lines)
    except StopIteration:
        raise RoleParseError("Unexpected end of file") from None


def _read_role_sentence(lines: Iterator[str]) -> RoleSentence:
    header = _next_line(lines).strip()
    try:
        tokens_count = int(header.split(" ")[0])
    except ValueError:
        raise RoleParseError(f"Expected a token count, got {header!r}") from None
    _next_line(lines)
    if _next_line(lines).strip():
        raise RoleParseError("Expected an empty line between sentence formats")

    # Skip the bracketed parse tree, terminated by a blank line
    while _next_line(lines).strip():
        pass

    lemmas: List[str] = []
    heads: List[int] = []
    columns: Optional[List[List[List[Any]]]] = None  # per relation: [name, start, end]
    for i in range(tokens_count):
        parts = _next_line(lines).split()
        if len(parts) < 4:
            raise RoleParseError(f"Malformed token row {i}: {parts}")
        lemmas.append(parts[2].strip('"'))
        if parts[3] == "1":
            heads.append(i)
        if columns is None:
            columns = [[] for _ in range(len(parts) - 4)]
        for j, args in enumerate(columns):
            if j + 4 >= len(parts):
                raise RoleParseError(f"Token row {i} is missing relation column {j}")
            cell = parts[j + 4].strip()
            if cell.startswith("("):
                args.append([cell[1:cell.rfind("*")], i, -1])
            if cell.endswith(")"):
                if not args:
                    raise RoleParseError(f"Argument closed before opening in row {i}")
                args[-1][2] = i + 1

    columns = columns or []
    if len(heads) != len(columns):
        raise RoleParseError("Unbalanced number of relation heads and arguments")

    role_labels: Dict[int, List[RoleArgument]] = {}
    for head, args in zip(heads, columns):
        for name, start, end in args:
            if not (0 <= start < end <= tokens_count):
                raise RoleParseError(f"Invalid argument offsets {name}: [{start}, {end})")
            role_labels.setdefault(head, []).append(RoleArgument(name, start, end))
    return RoleSentence(lemmas=lemmas, role_labels=role_labels)


def parse_role_lines(lines: Iterator[str]) -> RoleDocument:
    header = _next_line(lines).strip()
    try:
        sentences_count = int(header.split(" ")[0])
    except ValueError:
        raise RoleParseError(f"Expected a sentence count, got {header!r}") from None

    sentences: List[RoleSentence] = []
    for _ in range(sentences_count):
        if _next_line(lines).strip():
            raise RoleParseError("Expected an empty line before a sentence")
        sentences.append(_read_role_sentence(lines))
    return RoleDocument(sentences)


def load_role_document(path: Path) -> RoleDocument:
    """Parse a semantic-role file. Raises ``RoleParseError`` on malformed input."""
    with path.open("r", encoding="utf-8") as f:
        return parse_role_lines(line.rstrip("\n") for line in f)


def lookup_roles(roles_dir: Optional[Path], doc: Document) -> Lookup:
    """Find, parse and align the role file for ``doc``.

    Returns:
        ``Present(RoleDocument)`` when a well-formed file with the same sentence
        count exists, otherwise ``Missing`` with the reason. A malformed file
        raises ``RoleParseError``.
    """
    if roles_dir is None:
        return Missing("no role directory")
    path = roles_dir / f"{doc.doc_id}.txt"
    if not path.exists():
        return Missing(f"no role file {path.name}")
    roles = load_role_document(path)
    if not roles.aligned_with(doc):
        logger.debug(
            "Discarding roles for %s: %d role sentences vs %d parsed sentences",
            doc.doc_id, len(roles.sentences), len(doc.sentences),
        )
        return Missing("sentence count mismatch")
    return Present(roles)

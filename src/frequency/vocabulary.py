"""Mental-state vocabulary: the fixed set of descriptor words being scored."""
from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from spacy.language import Language

from annotation.spacy_adapter import load_pipeline

logger = logging.getLogger(__name__)


class MentalStateVocabulary:
    def __init__(self, words: Iterable[str]):
        self.words: List[str] = sorted({w.strip().lower() for w in words if w.strip()})
        self._word_set = frozenset(self.words)

    def __iter__(self) -> Iterator[str]:
        return iter(self.words)

    def __len__(self) -> int:
        return len(self.words)

    def __contains__(self, word: str) -> bool:
        return word.lower() in self._word_set

    def new_counter(self) -> Counter:
        """Fresh per-query counter with every word present at zero."""
        return Counter({w: 0 for w in self.words})

    @classmethod
    def from_file(cls, path: Path, lemmatize: bool = False, nlp: Optional[Language] = None) -> "MentalStateVocabulary":
        """Load one word per line; optionally reduce each word to its spaCy lemma."""
        if not path.exists():
            raise FileNotFoundError(f"Vocabulary file not found: {path}")
        words = [line.strip().lower() for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
        if lemmatize:
            nlp = nlp or load_pipeline()
            lemmas = []
            for doc in nlp.pipe(words):
                lemma = doc[0].lemma_ if len(doc) and doc.has_annotation("LEMMA") else ""
                lemmas.append(lemma.lower() or doc.text.lower())
            words = lemmas
        vocab = cls(words)
        logger.info("Loaded %d mental-state words from %s", len(vocab), path)
        return vocab

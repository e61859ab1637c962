"""Content-addressed key-value store for persisted frequencies and score maps.

Keys are built from the query's terms (sorted, lowercased, joined with ``-``) so
the same term set always lands on the same record. A record holds either a single
integer count or a JSON word -> score map. Existing records are authoritative:
``put`` leaves them alone unless ``overwrite`` is set.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

logger = logging.getLogger(__name__)

StoreValue = Union[int, Dict[str, float]]

KEY_SEPARATOR = "-"


def _escape_term(term: str) -> str:
    return term.replace("%", "%25").replace(KEY_SEPARATOR, "%2D")


def cache_key(terms: Iterable[str]) -> str:
    """Sorted, lowercased terms joined with ``-``.

    A ``-`` inside a term is written as ``%2D`` (and ``%`` as ``%25``), so the
    single term "well-being" does not share a key with ("being", "well").
    """
    return KEY_SEPARATOR.join(sorted(_escape_term(t.strip().lower()) for t in terms))


def encode_value(value: StoreValue) -> str:
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True) + "\n"
    return f"{int(value)}\n"


def decode_value(text: str) -> StoreValue:
    text = text.strip()
    if text.startswith("{"):
        return json.loads(text)
    return int(text)


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[StoreValue]:
        """Return the stored value or ``None`` when the key is absent."""

    @abstractmethod
    def _write(self, key: str, value: StoreValue) -> None:
        ...

    @abstractmethod
    def __contains__(self, key: str) -> bool:
        ...

    def put(self, key: str, value: StoreValue, overwrite: bool = False) -> bool:
        """Persist ``value`` under ``key``.

        Returns:
            True if written, False if the key already existed and was kept
        """
        if not overwrite and key in self:
            return False
        self._write(key, value)
        return True


class FileSystemStore(KeyValueStore):
    """One ``<key>.txt`` file per record under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.txt"

    def __contains__(self, key: str) -> bool:
        return self.path_for(key).exists()

    def get(self, key: str) -> Optional[StoreValue]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return decode_value(path.read_text(encoding="utf-8"))

    def _write(self, key: str, value: StoreValue) -> None:
        self.path_for(key).write_text(encode_value(value), encoding="utf-8")


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, StoreValue]] = None):
        self.records: Dict[str, StoreValue] = dict(initial or {})

    def __contains__(self, key: str) -> bool:
        return key in self.records

    def __len__(self) -> int:
        return len(self.records)

    def get(self, key: str) -> Optional[StoreValue]:
        return self.records.get(key)

    def _write(self, key: str, value: StoreValue) -> None:
        self.records[key] = value
